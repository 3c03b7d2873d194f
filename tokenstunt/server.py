"""Code-search tool server: search, symbol lookup, context, overview and impact."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Protocol

from tokenstunt import formatting, render
from tokenstunt.diagnostics import build_setup_report
from tokenstunt.impact import format_impact, walk_dependents
from tokenstunt.models import CodeBlock, Store, parse_kind
from tokenstunt.overview import build_overview
from tokenstunt.search import SearchEngine, SearchQuery

SERVER_NAME = "tokenstunt"
SERVER_VERSION = "1.0.0"
DEFAULT_HYBRID_ALPHA = 0.4
DEFAULT_LIMIT = 20
DEFAULT_USAGES_LIMIT = 20
OVERVIEW_CACHE_VERSION = 1

TOOLS = {
    "ts_search": (
        "Semantic code search \u2014 returns exact function/class/type bodies ranked by "
        "relevance. Use instead of Grep+Read when searching by concept or keyword. "
        "Saves 95% tokens vs reading full files."
    ),
    "ts_symbol": (
        "Exact symbol lookup by name \u2014 returns the full definition with file path "
        "and line numbers. Faster than Grep for known symbol names."
    ),
    "ts_context": (
        "Symbol definition + dependency graph \u2014 shows what this symbol calls and "
        "what calls it. Use to understand coupling before modifying code."
    ),
    "ts_overview": (
        "Project structure overview \u2014 module tree, language breakdown, public API "
        "surface, and entry points. Start here to orient in an unfamiliar codebase."
    ),
    "ts_setup": (
        "Project diagnostics: index health, languages, embeddings status, and "
        "configuration guidance."
    ),
    "ts_impact": (
        "Blast radius analysis: shows all symbols and files affected by changing a "
        "given symbol. Use before refactoring."
    ),
    "ts_file": (
        "All symbols in a file with signatures and line numbers. Use instead of Read "
        "when you need to understand file structure."
    ),
    "ts_usages": (
        "Find all call sites and usages of a symbol. Shows the actual code at each "
        "usage location."
    ),
}

INSTRUCTIONS = (
    "Token Stunt provides AST-level semantic code search. Use ts_search instead of "
    "Grep+Read when looking for code by concept \u2014 it returns exact symbol bodies, "
    "saving 95% of tokens. Use ts_symbol for exact name lookups. Use ts_file to "
    "understand a file's structure without reading the whole file. Use ts_usages to "
    "find all call sites of a symbol. Use ts_context to understand what a symbol "
    "calls and what calls it. Use ts_impact before refactoring to understand blast "
    "radius. Use ts_overview to orient in the project. Use ts_setup to check index "
    "health. Only use Read for files you need to modify. Recommended workflow: "
    "ts_overview \u2192 ts_search \u2192 ts_symbol \u2192 ts_file/ts_usages \u2192 "
    "ts_context/ts_impact \u2192 Read."
)


class Embedder(Protocol):
    """Something that turns texts into embedding vectors."""

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]: ...

    def dimensions(self) -> int: ...

    def model_name(self) -> str: ...

    async def health_check(self) -> None: ...


class ToolError(Exception):
    """An internal failure while running a tool."""


@contextmanager
def _internal_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise ToolError(str(exc)) from exc


def _matches_file(block: CodeBlock, file_filter: Optional[str]) -> bool:
    if file_filter is None:
        return True
    return block.file_path is not None and file_filter in block.file_path


def _location(block: CodeBlock) -> str:
    return f"{block.file_path or 'unknown'}:{block.start_line}-{block.end_line}"


def _relation_items(related: Sequence[tuple[CodeBlock, str]]) -> list[render.TreeItem]:
    return [
        render.TreeItem(
            label=f"{render.kind_label(block.kind)}  {block.name:<24} "
            f"{_location(block):<28} {render.capitalize(kind)}"
        )
        for block, kind in related
    ]


class TokenStuntServer:
    """Answers code-navigation tool calls from an indexed store."""

    def __init__(
        self,
        store: Store,
        root: str | Path,
        has_embeddings: bool = False,
        embedder: Optional[Embedder] = None,
        hybrid_alpha: float = DEFAULT_HYBRID_ALPHA,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.store = store
        self.root = Path(root)
        self.has_embeddings = has_embeddings
        self.embedder = embedder
        self.hybrid_alpha = hybrid_alpha
        self.default_limit = default_limit

    def get_info(self) -> dict[str, Any]:
        """Server identity, capabilities and usage instructions."""
        return {
            "serverInfo": {
                "name": SERVER_NAME,
                "version": SERVER_VERSION,
                "title": "Token Stunt",
                "description": (
                    "Smart code search for Claude Code. Finds the exact code you "
                    "need \u2014 saves 95% of tokens."
                ),
            },
            "capabilities": {"tools": dict(TOOLS)},
            "instructions": INSTRUCTIONS,
        }

    def _engine(self) -> SearchEngine:
        return SearchEngine(self.store, self.hybrid_alpha)

    async def _embed_query(self, text: str) -> Optional[list[float]]:
        if self.embedder is None:
            return None
        try:
            vectors = await self.embedder.embed_batch([text])
        except Exception:
            return None
        return list(vectors[-1]) if vectors else None

    async def ts_search(
        self,
        query: str,
        scope: Optional[str] = None,
        language: Optional[str] = None,
        symbol_kind: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> str:
        query_embedding = await self._embed_query(query)
        search_query = SearchQuery(
            text=query,
            scope=scope,
            language=language,
            symbol_kind=parse_kind(symbol_kind),
            limit=self.default_limit if limit is None else limit,
            query_embedding=query_embedding,
        )
        with _internal_errors():
            results = self._engine().search(search_query)

        if not results:
            return "No results found."

        total = len(results)
        start = offset or 0
        page = [(result.block, result.score) for result in results[start:]]
        output = formatting.format_blocks(query, page)
        if start > 0 or total > len(page) + start:
            output += f"\n\nShowing {len(page)} of {total} results (offset {start})"
        return output

    async def ts_symbol(
        self, name: str, kind: Optional[str] = None, file: Optional[str] = None
    ) -> str:
        with _internal_errors():
            found = self._engine().lookup_symbol(name, parse_kind(kind))
        results = [block for block in found if _matches_file(block, file)]
        if not results:
            return f"Symbol '{name}' not found."
        return (
            render.header("Symbol", name)
            + "\n\n"
            + formatting.format_symbol_blocks([(block, None) for block in results])
        )

    async def ts_context(
        self,
        symbol: str,
        direction: Optional[str] = None,
        file: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> str:
        with _internal_errors():
            found = self.store.lookup_symbol(symbol, parse_kind(kind))
        symbols = [block for block in found if _matches_file(block, file)]
        if not symbols:
            return f"Symbol '{symbol}' not found."

        target = symbols[0]
        parts = [
            render.header("Context", f"{symbol}  {_location(target)}"),
            "\n\n",
            render.code_block(target.language or "text", target.content),
        ]

        way = direction or "both"
        sections = []
        if way in ("dependencies", "both"):
            sections.append(("Dependencies", self.store.get_dependencies))
        if way in ("dependents", "both"):
            sections.append(("Dependents", self.store.get_dependents))

        for title, fetch in sections:
            with _internal_errors():
                related = fetch(target.id)
            if related:
                parts.append("\n\n")
                parts.append(render.render_tree_with_trunk(title, _relation_items(related)))

        return "".join(parts)

    async def ts_overview(self, scope: Optional[str] = None) -> str:
        scope_key = scope or ""
        with _internal_errors():
            cached = self.store.get_overview_cache(scope_key, OVERVIEW_CACHE_VERSION)
        if cached is not None:
            return cached
        with _internal_errors():
            output = build_overview(self.store, self.root, scope_key)
        try:
            self.store.set_overview_cache(scope_key, OVERVIEW_CACHE_VERSION, output)
        except sqlite3.Error:
            pass
        return output

    async def ts_setup(self) -> str:
        with _internal_errors():
            return build_setup_report(self.store, self.root, self.has_embeddings)

    async def ts_impact(self, symbol: str, max_depth: Optional[int] = None) -> str:
        with _internal_errors():
            result = walk_dependents(self.store, symbol, max_depth)
        return format_impact(result)

    async def ts_file(self, path: str, kind: Optional[str] = None) -> str:
        kind_filter = parse_kind(kind)
        with _internal_errors():
            blocks = self.store.get_blocks_by_file_path(path)
        if kind_filter is not None:
            blocks = [block for block in blocks if block.kind == kind_filter]
        return formatting.format_file_blocks(path, blocks)

    async def ts_usages(
        self, symbol: str, kind: Optional[str] = None, limit: Optional[int] = None
    ) -> str:
        max_usages = DEFAULT_USAGES_LIMIT if limit is None else limit
        with _internal_errors():
            symbols = self.store.lookup_symbol(symbol, parse_kind(kind))
        if not symbols:
            return f"Symbol '{symbol}' not found."

        usages: list[tuple[CodeBlock, str]] = []
        for found in symbols:
            with _internal_errors():
                usages.extend(self.store.get_dependents(found.id))
        return formatting.format_usages(symbol, usages[:max_usages])