"""Plain-text rendering primitives: headers, bars, trees and code fences."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from tokenstunt.models import CodeBlockKind

LABEL_WIDTH = 12
KIND_WIDTH = 9

DIAMOND = "\u25c6"
FULL_BLOCK = "\u2588"
LIGHT_SHADE = "\u2591"
TRUNK = "\u2502"
BRANCH = "\u251c\u2500"
LAST_BRANCH = "\u2514\u2500"

_KIND_NAMES = {
    CodeBlockKind.FUNCTION: "Function",
    CodeBlockKind.METHOD: "Method",
    CodeBlockKind.CLASS: "Class",
    CodeBlockKind.STRUCT: "Struct",
    CodeBlockKind.ENUM: "Enum",
    CodeBlockKind.INTERFACE: "Interface",
    CodeBlockKind.TYPE_ALIAS: "Type",
    CodeBlockKind.CONSTANT: "Constant",
    CodeBlockKind.VARIABLE: "Variable",
    CodeBlockKind.MODULE: "Module",
    CodeBlockKind.TRAIT: "Trait",
    CodeBlockKind.IMPL: "Impl",
}


def bar(ratio: float, width: int) -> str:
    """A progress bar of ``width`` cells followed by a percentage."""
    scaled = ratio * width
    filled = 0 if math.isnan(scaled) else max(0, math.floor(scaled + 0.5))
    empty = max(0, width - filled)
    pct = 0 if math.isnan(ratio) else max(0, int(ratio * 100.0))
    return f"{FULL_BLOCK * filled}{LIGHT_SHADE * empty} {pct}%"


def bar_with_label(current: int, total: int, width: int) -> str:
    """A bar prefixed with ``current/total``."""
    if total == 0:
        return f"{current}/{total}  {LIGHT_SHADE * width} 0%"
    return f"{current}/{total}  {bar(current / total, width)}"


def header(title: str, subtitle: str) -> str:
    if not subtitle:
        return f"{DIAMOND} {title}"
    return f"{DIAMOND} {title}  {subtitle}"


def notice(message: str) -> str:
    return f"{DIAMOND} {message}"


def kv(label: str, value: str, width: int) -> str:
    return f"{label:>{width}}  {value}"


def kv_line(label: str, value: str) -> str:
    return kv(label, value, LABEL_WIDTH)


def kind_label(kind: CodeBlockKind) -> str:
    """The kind's display name, padded to a fixed width."""
    return f"{_KIND_NAMES[kind]:<{KIND_WIDTH}}"


def capitalize(s: str) -> str:
    """Upper-case the first character and leave the rest untouched."""
    return s[:1].upper() + s[1:]


def code_block(language: str, content: str) -> str:
    """Wrap ``content`` in a fenced code block."""
    newline = "" if content.endswith("\n") else "\n"
    return f"```{language}\n{content}{newline}```"


@dataclass
class TreeItem:
    label: str


def render_list(items: Sequence[TreeItem]) -> str:
    last = max(len(items) - 1, 0)
    return "".join(
        f"  {LAST_BRANCH if i == last else BRANCH} {item.label}\n"
        for i, item in enumerate(items)
    )


def render_tree_with_trunk(title: str, items: Sequence[TreeItem]) -> str:
    return f"  {DIAMOND} {title}\n  {TRUNK}\n" + render_list(items)