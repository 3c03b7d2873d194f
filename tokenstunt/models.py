"""Code-block model and the SQLite-backed index store."""

from __future__ import annotations

import sqlite3
from array import array
from collections import Counter
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, TypeVar

T = TypeVar("T")


class CodeBlockKind(Enum):
    """The kind of symbol a code block defines."""

    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    INTERFACE = "interface"
    TYPE_ALIAS = "type_alias"
    CONSTANT = "constant"
    VARIABLE = "variable"
    MODULE = "module"
    TRAIT = "trait"
    IMPL = "impl"

    def as_str(self) -> str:
        return self.value


def parse_kind(value: Optional[str]) -> Optional[CodeBlockKind]:
    """Return the kind named by ``value``, or None when it names no kind."""
    if value is None:
        return None
    try:
        return CodeBlockKind(value.strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class CodeBlock:
    """One indexed symbol together with the file it lives in."""

    id: int
    file_id: int
    name: str
    kind: CodeBlockKind
    start_line: int
    end_line: int
    content: str
    signature: str
    docstring: str
    parent_id: Optional[int]
    file_path: Optional[str]
    language: Optional[str]


_SCHEMA = """
CREATE TABLE IF NOT EXISTS repos (
    id INTEGER PRIMARY KEY,
    root TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY,
    repo_id INTEGER NOT NULL REFERENCES repos(id) ON DELETE CASCADE,
    path TEXT NOT NULL,
    content_hash INTEGER NOT NULL,
    language TEXT NOT NULL,
    mtime INTEGER NOT NULL,
    UNIQUE (repo_id, path)
);
CREATE TABLE IF NOT EXISTS code_blocks (
    id INTEGER PRIMARY KEY,
    file_id INTEGER NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    kind TEXT NOT NULL,
    start_line INTEGER NOT NULL,
    end_line INTEGER NOT NULL,
    content TEXT NOT NULL,
    signature TEXT NOT NULL,
    docstring TEXT NOT NULL,
    parent_id INTEGER REFERENCES code_blocks(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_code_blocks_name ON code_blocks(name);
CREATE INDEX IF NOT EXISTS idx_code_blocks_file ON code_blocks(file_id);
CREATE VIRTUAL TABLE IF NOT EXISTS code_blocks_fts
    USING fts5(name, content, signature, docstring);
CREATE TABLE IF NOT EXISTS dependencies (
    id INTEGER PRIMARY KEY,
    source_id INTEGER NOT NULL REFERENCES code_blocks(id) ON DELETE CASCADE,
    target_id INTEGER REFERENCES code_blocks(id) ON DELETE SET NULL,
    target_name TEXT NOT NULL,
    kind TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_dependencies_source ON dependencies(source_id);
CREATE INDEX IF NOT EXISTS idx_dependencies_target ON dependencies(target_id);
CREATE TABLE IF NOT EXISTS embeddings (
    block_id INTEGER PRIMARY KEY REFERENCES code_blocks(id) ON DELETE CASCADE,
    vector BLOB NOT NULL,
    dimensions INTEGER NOT NULL,
    model TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS overview_cache (
    scope TEXT NOT NULL,
    version INTEGER NOT NULL,
    content TEXT NOT NULL,
    PRIMARY KEY (scope, version)
);
"""

_BLOCK_COLUMNS = (
    "cb.id, cb.file_id, cb.name, cb.kind, cb.start_line, cb.end_line, "
    "cb.content, cb.signature, cb.docstring, cb.parent_id, f.path, f.language"
)
_BLOCKS_FROM = "code_blocks cb LEFT JOIN files f ON f.id = cb.file_id"
_PREFIX_MATCH = "substr(f.path, 1, length(?)) = ?"


def _row_to_block(row: tuple) -> CodeBlock:
    return CodeBlock(
        id=row[0],
        file_id=row[1],
        name=row[2],
        kind=CodeBlockKind(row[3]),
        start_line=row[4],
        end_line=row[5],
        content=row[6],
        signature=row[7],
        docstring=row[8],
        parent_id=row[9],
        file_path=row[10],
        language=row[11],
    )


def _encode_vector(vector: Iterable[float]) -> bytes:
    return array("f", vector).tobytes()


def _decode_vector(blob: bytes) -> list[float]:
    values = array("f")
    values.frombytes(blob)
    return values.tolist()


class Store:
    """Index of repositories, files, code blocks, dependencies and embeddings."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        self._path = Path(path)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)

    @classmethod
    def open(cls, path: str | Path) -> "Store":
        return cls(path)

    @classmethod
    def open_in_memory(cls) -> "Store":
        return cls(":memory:")

    @property
    def db_path(self) -> Path:
        return self._path

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _writing(self) -> Iterator[sqlite3.Connection]:
        with self._conn:
            yield self._conn
            self._conn.execute("DELETE FROM overview_cache")

    def write_transaction(self, action: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``action`` on the connection inside one committed transaction."""
        with self._writing() as conn:
            return action(conn)

    # --- writes -----------------------------------------------------------

    def ensure_repo(self, root: str, name: str) -> int:
        with self._writing() as conn:
            conn.execute(
                "INSERT INTO repos (root, name) VALUES (?, ?) "
                "ON CONFLICT(root) DO UPDATE SET name = excluded.name",
                (root, name),
            )
            (repo_id,) = conn.execute(
                "SELECT id FROM repos WHERE root = ?", (root,)
            ).fetchone()
        return repo_id

    def upsert_file(
        self, repo_id: int, path: str, content_hash: int, language: str, mtime: int
    ) -> int:
        with self._writing() as conn:
            conn.execute(
                "INSERT INTO files (repo_id, path, content_hash, language, mtime) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(repo_id, path) DO UPDATE SET "
                "content_hash = excluded.content_hash, "
                "language = excluded.language, mtime = excluded.mtime",
                (repo_id, path, content_hash, language, mtime),
            )
            (file_id,) = conn.execute(
                "SELECT id FROM files WHERE repo_id = ? AND path = ?", (repo_id, path)
            ).fetchone()
        return file_id

    def insert_code_block(
        self,
        file_id: int,
        name: str,
        kind: CodeBlockKind,
        start_line: int,
        end_line: int,
        content: str,
        signature: str,
        docstring: str,
        parent_id: Optional[int],
    ) -> int:
        with self._writing() as conn:
            cursor = conn.execute(
                "INSERT INTO code_blocks (file_id, name, kind, start_line, end_line, "
                "content, signature, docstring, parent_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    file_id,
                    name,
                    kind.as_str(),
                    start_line,
                    end_line,
                    content,
                    signature,
                    docstring,
                    parent_id,
                ),
            )
            block_id = cursor.lastrowid
            conn.execute(
                "INSERT INTO code_blocks_fts (rowid, name, content, signature, docstring) "
                "VALUES (?, ?, ?, ?, ?)",
                (block_id, name, content, signature, docstring),
            )
        return block_id

    def insert_dependency(
        self, source_id: int, target_id: Optional[int], target_name: str, kind: str
    ) -> int:
        with self._writing() as conn:
            cursor = conn.execute(
                "INSERT INTO dependencies (source_id, target_id, target_name, kind) "
                "VALUES (?, ?, ?, ?)",
                (source_id, target_id, target_name, kind),
            )
        return cursor.lastrowid

    def insert_embedding(self, block_id: int, vector: Iterable[float], model: str) -> None:
        values = list(vector)
        with self._writing() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO embeddings (block_id, vector, dimensions, model) "
                "VALUES (?, ?, ?, ?)",
                (block_id, _encode_vector(values), len(values), model),
            )

    # --- reads ------------------------------------------------------------

    def _blocks(self, where: str, params: tuple = (), order: str = "cb.id") -> list[CodeBlock]:
        rows = self._conn.execute(
            f"SELECT {_BLOCK_COLUMNS} FROM {_BLOCKS_FROM} WHERE {where} ORDER BY {order}",
            params,
        ).fetchall()
        return [_row_to_block(row) for row in rows]

    def lookup_symbol(self, name: str, kind: Optional[CodeBlockKind] = None) -> list[CodeBlock]:
        if kind is None:
            return self._blocks("cb.name = ?", (name,))
        return self._blocks("cb.name = ? AND cb.kind = ?", (name, kind.as_str()))

    def get_blocks_by_file_path(self, path: str) -> list[CodeBlock]:
        return self._blocks("f.path = ?", (path,), order="cb.start_line, cb.id")

    def get_exported_symbols(self, scope: Optional[str] = None) -> list[CodeBlock]:
        """Top-level symbols, optionally limited to paths under ``scope``."""
        if scope is None:
            return self._blocks("cb.parent_id IS NULL", order="f.path, cb.start_line, cb.id")
        return self._blocks(
            f"cb.parent_id IS NULL AND {_PREFIX_MATCH}",
            (scope, scope),
            order="f.path, cb.start_line, cb.id",
        )

    def search_fts(
        self,
        query: str,
        language: Optional[str] = None,
        kind: Optional[str] = None,
        scope: Optional[str] = None,
        limit: int = 10,
    ) -> list[tuple[CodeBlock, float]]:
        """Full-text search; scores are BM25 ranks, lower is better."""
        if not query.strip():
            return []
        conditions = ["code_blocks_fts MATCH ?"]
        params: list[object] = [query]
        if language is not None:
            conditions.append("f.language = ?")
            params.append(language)
        if kind is not None:
            conditions.append("cb.kind = ?")
            params.append(kind)
        if scope is not None:
            conditions.append(_PREFIX_MATCH)
            params.extend((scope, scope))
        params.append(limit)
        sql = (
            f"SELECT {_BLOCK_COLUMNS}, bm25(code_blocks_fts) AS score "
            "FROM code_blocks_fts "
            "JOIN code_blocks cb ON cb.id = code_blocks_fts.rowid "
            "JOIN files f ON f.id = cb.file_id "
            f"WHERE {' AND '.join(conditions)} "
            "ORDER BY score LIMIT ?"
        )
        rows = self._conn.execute(sql, params).fetchall()
        return [(_row_to_block(row[:12]), row[12]) for row in rows]

    def get_embeddings_by_block_ids(self, block_ids: Iterable[int]) -> list[tuple[int, list[float]]]:
        ids = list(block_ids)
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = self._conn.execute(
            f"SELECT block_id, vector FROM embeddings WHERE block_id IN ({placeholders}) "
            "ORDER BY block_id",
            ids,
        ).fetchall()
        return [(block_id, _decode_vector(blob)) for block_id, blob in rows]

    def _related(self, join_column: str, filter_column: str, block_id: int) -> list[tuple[CodeBlock, str]]:
        rows = self._conn.execute(
            f"SELECT {_BLOCK_COLUMNS}, d.kind FROM dependencies d "
            f"JOIN code_blocks cb ON cb.id = d.{join_column} "
            "LEFT JOIN files f ON f.id = cb.file_id "
            f"WHERE d.{filter_column} = ? ORDER BY d.id",
            (block_id,),
        ).fetchall()
        return [(_row_to_block(row[:12]), row[12]) for row in rows]

    def get_dependents(self, block_id: int) -> list[tuple[CodeBlock, str]]:
        """Blocks that depend on ``block_id``, with the dependency kind."""
        return self._related("source_id", "target_id", block_id)

    def get_dependencies(self, block_id: int) -> list[tuple[CodeBlock, str]]:
        """Resolved blocks that ``block_id`` depends on, with the dependency kind."""
        return self._related("target_id", "source_id", block_id)

    def _scalar(self, sql: str) -> int:
        (value,) = self._conn.execute(sql).fetchone()
        return value

    def file_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM files")

    def block_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM code_blocks")

    def embedding_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM embeddings")

    def dependency_count(self) -> tuple[int, int]:
        """Return (total, resolved) dependency counts."""
        total, resolved = self._conn.execute(
            "SELECT COUNT(*), COUNT(target_id) FROM dependencies"
        ).fetchone()
        return total, resolved

    def get_language_stats(self) -> list[tuple[str, int]]:
        """Files per language, most common first."""
        rows = self._conn.execute(
            "SELECT language, COUNT(*) AS n FROM files GROUP BY language "
            "ORDER BY n DESC, language"
        ).fetchall()
        return [(language, count) for language, count in rows]

    def get_directory_stats(self, scope: Optional[str] = None) -> list[tuple[str, int, int]]:
        """Return (directory, file count, block count) for each directory."""
        rows = self._conn.execute(
            "SELECT f.path, COUNT(cb.id) FROM files f "
            "LEFT JOIN code_blocks cb ON cb.file_id = f.id GROUP BY f.id"
        ).fetchall()
        files: Counter[str] = Counter()
        blocks: Counter[str] = Counter()
        for path, block_total in rows:
            if scope is not None and not path.startswith(scope):
                continue
            directory = path.rsplit("/", 1)[0] if "/" in path else "."
            files[directory] += 1
            blocks[directory] += block_total
        return [(directory, files[directory], blocks[directory]) for directory in sorted(files)]

    def get_overview_cache(self, scope: str, version: int) -> Optional[str]:
        row = self._conn.execute(
            "SELECT content FROM overview_cache WHERE scope = ? AND version = ?",
            (scope, version),
        ).fetchone()
        return row[0] if row else None

    def set_overview_cache(self, scope: str, version: int, content: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO overview_cache (scope, version, content) "
                "VALUES (?, ?, ?)",
                (scope, version, content),
            )