from pathlib import Path

import pytest

from tokenstunt.diagnostics import build_setup_report
from tokenstunt.models import CodeBlockKind, Store


@pytest.fixture
def populated():
    store = Store.open_in_memory()
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/main.ts", 111, "typescript", 0)
    store.insert_code_block(
        file_id,
        "main",
        CodeBlockKind.FUNCTION,
        1,
        10,
        "function main() {}",
        "function main()",
        "",
        None,
    )
    yield store, Path("/test")
    store.close()


def test_no_files_indexed():
    store = Store.open_in_memory()
    report = build_setup_report(store, Path("/empty-project"), False)
    assert "No files indexed" in report
    assert "tokenstunt index" in report
    assert "Files" in report
    assert "       Files  0\n" in report
    assert "/empty-project" in report
    assert "Languages" not in report


def test_no_embeddings(populated):
    store, root = populated
    report = build_setup_report(store, root, False)
    assert "Not configured" in report
    assert "config.toml" in report
    assert "Files" in report
    assert "No files indexed" not in report
    assert "Languages" in report
    assert "typescript" in report


def test_header_and_counts(populated):
    store, root = populated
    report = build_setup_report(store, root, False)
    assert report.startswith("\u25c6 Setup  Token Stunt\n\n")
    assert " Code Blocks  1\n" in report
    assert "Dependencies  0 (0 resolved)\n" in report


def test_with_embeddings(populated):
    store, root = populated
    block_id = store.lookup_symbol("main", None)[0].id
    store.insert_embedding(block_id, [0.1, 0.2, 0.3], "test")
    report = build_setup_report(store, root, True)
    assert "Configured" in report
    assert "Not configured" not in report
    assert "1/1" in report
    assert "100%" in report


def test_partial_embeddings(populated):
    store, root = populated
    repo_id = store.ensure_repo("/test", "test")
    file_id = store.upsert_file(repo_id, "src/other.ts", 222, "typescript", 0)
    store.insert_code_block(
        file_id,
        "other",
        CodeBlockKind.FUNCTION,
        1,
        5,
        "function other() {}",
        "function other()",
        "",
        None,
    )
    block_id = store.lookup_symbol("main", None)[0].id
    store.insert_embedding(block_id, [0.1, 0.2, 0.3], "test")

    report = build_setup_report(store, root, True)
    assert "1/2" in report
    assert "50%" in report