"""Text layouts for search results, file listings and usages."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from tokenstunt import render
from tokenstunt.models import CodeBlock


def _location(block: CodeBlock) -> str:
    file_path = block.file_path or "unknown"
    return f"{file_path}:{block.start_line}-{block.end_line}"


def _format_block_entry(block: CodeBlock) -> tuple[str, str, str]:
    """Return the header line, language and content for one block."""
    header_line = f"  {render.kind_label(block.kind)}  {block.name:<24} {_location(block)}"
    return header_line, block.language or "text", block.content


def format_blocks(query: str, blocks: Sequence[tuple[CodeBlock, Optional[float]]]) -> str:
    """Search results with a header and each block's code."""
    if not blocks:
        return ""
    count = len(blocks)
    hint = f"{count} results" if not query else f'"{query}"  {count} results'
    parts = [render.header("Search", hint), "\n"]
    for block, _score in blocks:
        header_line, language, content = _format_block_entry(block)
        parts.append(f"\n{header_line}\n\n")
        parts.append(render.code_block(language, content))
        parts.append("\n")
    return "".join(parts)


def format_file_blocks(path: str, blocks: Sequence[CodeBlock]) -> str:
    """Every symbol of one file with its signature and code."""
    if not blocks:
        return f"No symbols found in '{path}'."
    parts = [render.header("File", f"{path}  {len(blocks)} symbols"), "\n"]
    for block in blocks:
        parts.append(
            f"\n  {render.kind_label(block.kind)}  {block.name:<24} "
            f"lines {block.start_line}-{block.end_line}\n"
        )
        if block.signature:
            parts.append(f"  {block.signature}\n")
        parts.append("\n")
        parts.append(render.code_block(block.language or "text", block.content))
        parts.append("\n")
    return "".join(parts)


def format_usages(symbol: str, usages: Sequence[tuple[CodeBlock, str]]) -> str:
    """Call sites of a symbol with the code at each."""
    if not usages:
        return f"No usages found for '{symbol}'."
    parts = [render.header("Usages", f"{symbol}  {len(usages)} call sites"), "\n"]
    for block, dep_kind in usages:
        parts.append(
            f"\n  {render.kind_label(block.kind)}  {block.name:<24} "
            f"{_location(block):<28} {render.capitalize(dep_kind)}\n\n"
        )
        parts.append(render.code_block(block.language or "text", block.content))
        parts.append("\n")
    return "".join(parts)


def format_symbol_blocks(blocks: Sequence[tuple[CodeBlock, Optional[float]]]) -> str:
    """Symbol definitions one after another, without a header."""
    entries = []
    for block, _score in blocks:
        header_line, language, content = _format_block_entry(block)
        entries.append(f"{header_line}\n\n{render.code_block(language, content)}\n")
    return "\n".join(entries)