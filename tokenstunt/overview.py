"""Project overview: counts, languages, modules, public API and entry points."""

from __future__ import annotations

from pathlib import Path

from tokenstunt import render
from tokenstunt.models import Store

ENTRY_POINT_PREFIXES = ("main.", "index.", "app.", "mod.", "lib.")
PUBLIC_API_LIMIT = 20
BAR_WIDTH = 20


def _is_entry_point(path: str) -> bool:
    filename = path.rsplit("/", 1)[-1]
    return filename.startswith(ENTRY_POINT_PREFIXES)


def build_overview(store: Store, root: str | Path, scope: str) -> str:
    """Summarise the indexed project, limited to paths under ``scope`` if given."""
    parts = [
        render.header("Overview", str(root)),
        "\n\n",
        render.kv_line("Files", str(store.file_count())),
        "\n",
        render.kv_line("Code Blocks", str(store.block_count())),
        "\n",
    ]

    lang_stats = store.get_language_stats()
    if lang_stats:
        max_count = max((count for _, count in lang_stats), default=1)
        items = [
            render.TreeItem(
                label=f"{lang:<16} {count:>3} files  "
                f"{render.bar(count / max_count, BAR_WIDTH)}"
            )
            for lang, count in lang_stats
        ]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Languages", items))

    scope_arg = scope or None

    dir_stats = store.get_directory_stats(scope_arg)
    if dir_stats:
        items = [
            render.TreeItem(label=f"{directory:<16} {files:>3} files   {blocks:>4} blocks")
            for directory, files, blocks in dir_stats
        ]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Modules", items))

    symbols = store.get_exported_symbols(scope_arg)
    if symbols:
        items = [
            render.TreeItem(
                label=f"{render.kind_label(symbol.kind)}  {symbol.name:<24} "
                f"{symbol.file_path or 'unknown'}"
            )
            for symbol in symbols[:PUBLIC_API_LIMIT]
        ]
        if len(symbols) > PUBLIC_API_LIMIT:
            items.append(render.TreeItem(label=f"... {len(symbols) - PUBLIC_API_LIMIT} more"))
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Public API", items))

    entry_paths = sorted(
        {
            symbol.file_path
            for symbol in symbols
            if symbol.file_path is not None and _is_entry_point(symbol.file_path)
        }
    )
    if entry_paths:
        items = [render.TreeItem(label=path) for path in entry_paths]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Entry Points", items))

    return "".join(parts)