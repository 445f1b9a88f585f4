"""Tree navigation: lookup, breadcrumbs, siblings."""

from collections.abc import Iterator
from dataclasses import dataclass

from layermap.models.node import Node


@dataclass(frozen=True)
class NodeContext:
    """A node together with where it sits in the tree."""

    node: Node
    parent_id: str | None
    siblings: tuple[Node, ...]
    index: int


def iter_nodes(nodes: tuple[Node, ...]) -> Iterator[Node]:
    """Yield every node depth-first, parents before children, in sibling order."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


def find_context(
    nodes: tuple[Node, ...],
    node_id: str,
    *,
    parent_id: str | None = None,
) -> NodeContext | None:
    """Locate a node and its sibling group. Returns None if absent."""
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return NodeContext(node=node, parent_id=parent_id, siblings=nodes, index=index)
        found = find_context(node.children, node_id, parent_id=node.id)
        if found is not None:
            return found
    return None


def find_node(nodes: tuple[Node, ...], node_id: str) -> Node | None:
    context = find_context(nodes, node_id)
    return context.node if context else None


def get_breadcrumbs(nodes: tuple[Node, ...], node_id: str) -> tuple[Node, ...]:
    """Get the ancestors of a node, root first, excluding the node itself.

    Returns an empty tuple for root nodes and for unknown ids.
    """
    for node in nodes:
        if node.id == node_id:
            return ()
        trail = get_breadcrumbs(node.children, node_id)
        if trail or any(child.id == node_id for child in node.children):
            return (node, *trail)
    return ()


def get_siblings(
    nodes: tuple[Node, ...],
    node_id: str,
    *,
    count: int = 3,
) -> tuple[tuple[Node, ...], tuple[Node, ...]]:
    """Get up to ``count`` siblings before and after a node.

    Returns (siblings_before, siblings_after) tuples.
    """
    context = find_context(nodes, node_id)
    if context is None:
        return (), ()
    start = max(0, context.index - count)
    before = context.siblings[start : context.index]
    after = context.siblings[context.index + 1 : context.index + 1 + count]
    return before, after


def is_descendant(node: Node, candidate_id: str) -> bool:
    """True if ``candidate_id`` is somewhere below ``node``."""
    return any(n.id == candidate_id for n in iter_nodes(node.children))
