"""Index health report: counts, languages and embedding coverage."""

from __future__ import annotations

from pathlib import Path

from tokenstunt import render
from tokenstunt.models import Store

_EMBEDDINGS_GUIDE = (
    "  To enable semantic search, create a config at\n"
    "  `~/.cache/tokenstunt/<project>/config.toml`:\n\n"
    "  ```toml\n"
    "  [embeddings]\n"
    "  enabled = true\n"
    '  provider = "ollama"\n'
    '  model = "nomic-embed-text"\n'
    '  endpoint = "http://localhost:11434"\n'
    "  dimensions = 768\n"
    "  ```\n"
)


def build_setup_report(store: Store, root: str | Path, has_embeddings: bool) -> str:
    """Describe the state of the index rooted at ``root``."""
    file_count = store.file_count()
    block_count = store.block_count()
    dep_total, dep_resolved = store.dependency_count()

    parts = [render.header("Setup", "Token Stunt"), "\n\n"]
    for label, value in (
        ("Root", str(root)),
        ("Database", str(store.db_path)),
        ("Files", str(file_count)),
        ("Code Blocks", str(block_count)),
        ("Dependencies", f"{dep_total} ({dep_resolved} resolved)"),
    ):
        parts.append(render.kv_line(label, value))
        parts.append("\n")

    if file_count == 0:
        parts.append("\n")
        parts.append(
            render.notice("No files indexed. Run `tokenstunt index` or restart the server.")
        )
        parts.append("\n")

    lang_stats = store.get_language_stats()
    if lang_stats:
        items = [render.TreeItem(label=f"{lang:<16} {count}") for lang, count in lang_stats]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Languages", items))

    parts.append("\n")
    if has_embeddings:
        coverage = render.bar_with_label(store.embedding_count(), block_count, 20)
        parts.append(f"  {render.DIAMOND} Embeddings  Configured\n  {render.TRUNK}\n")
        parts.append(render.render_list([render.TreeItem(label=f"Coverage  {coverage}")]))
    else:
        parts.append(f"  {render.DIAMOND} Embeddings  Not configured\n")
        parts.append("\n")
        parts.append(_EMBEDDINGS_GUIDE)

    return "".join(parts)