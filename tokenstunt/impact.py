"""Blast-radius analysis: which symbols and files depend on a given symbol."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from tokenstunt import render
from tokenstunt.models import CodeBlockKind, Store

MAX_DEPTH_CAP = 5
DEFAULT_MAX_DEPTH = 3


@dataclass
class ImpactNode:
    """A symbol reached while walking dependents, and how far away it is."""

    name: str
    kind: CodeBlockKind
    file_path: str
    dep_kind: str
    depth: int


@dataclass
class ImpactResult:
    """Every dependent of ``source`` and the files they live in."""

    source: str
    dependents: list[ImpactNode] = field(default_factory=list)
    affected_files: list[str] = field(default_factory=list)


def walk_dependents(store: Store, source: str, max_depth: Optional[int] = None) -> ImpactResult:
    """Breadth-first walk over the blocks that depend on ``source``.

    The depth defaults to 3 and never exceeds 5. Each block is visited once,
    so dependency cycles end the walk.
    """
    limit = min(DEFAULT_MAX_DEPTH if max_depth is None else max_depth, MAX_DEPTH_CAP)

    symbols = store.lookup_symbol(source, None)
    if not symbols:
        return ImpactResult(source=source)

    visited = {symbol.id for symbol in symbols}
    queue = deque((symbol.id, 0) for symbol in symbols)
    dependents: list[ImpactNode] = []
    affected_files: set[str] = set()

    while queue:
        block_id, depth = queue.popleft()
        if depth >= limit:
            continue
        for block, dep_kind in store.get_dependents(block_id):
            if block.id in visited:
                continue
            visited.add(block.id)
            file_path = block.file_path or ""
            affected_files.add(file_path)
            dependents.append(
                ImpactNode(
                    name=block.name,
                    kind=block.kind,
                    file_path=file_path,
                    dep_kind=dep_kind,
                    depth=depth + 1,
                )
            )
            queue.append((block.id, depth + 1))

    return ImpactResult(
        source=source,
        dependents=dependents,
        affected_files=sorted(affected_files),
    )


def _node_label(node: ImpactNode) -> str:
    return (
        f"{render.kind_label(node.kind)}  {node.name:<24} "
        f"{node.file_path:<28} {render.capitalize(node.dep_kind)}"
    )


def format_impact(result: ImpactResult) -> str:
    """Dependents grouped by depth, followed by the affected files."""
    if not result.dependents:
        return (
            render.header("Impact", result.source)
            + "\n\n  No dependents found. This symbol can be safely modified.\n"
        )

    subtitle = (
        f"{result.source}  {len(result.dependents)} dependents, "
        f"{len(result.affected_files)} files"
    )
    parts = [render.header("Impact", subtitle), "\n"]

    deepest = max(node.depth for node in result.dependents)
    for depth in range(1, deepest + 1):
        nodes = [node for node in result.dependents if node.depth == depth]
        if not nodes:
            continue
        label = "Direct" if depth == 1 else f"Depth {depth}"
        items = [render.TreeItem(label=_node_label(node)) for node in nodes]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk(label, items))

    if result.affected_files:
        items = [render.TreeItem(label=path) for path in result.affected_files]
        parts.append("\n")
        parts.append(render.render_tree_with_trunk("Affected Files", items))

    return "".join(parts)