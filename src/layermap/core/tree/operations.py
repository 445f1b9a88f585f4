"""Pure structural operations on node tuples.

Every function returns a new tuple of root nodes; inputs are never modified.
Structural operations leave level/order/parent/colour fields stale; callers
run :func:`normalize` over the whole tree before exposing the result.
"""

import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import Any

from layermap.core.colors import resolve_color
from layermap.core.tree.navigation import find_node, is_descendant
from layermap.errors import InvalidMoveError, NodeNotFoundError
from layermap.models.node import Node, Template


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize(
    nodes: tuple[Node, ...],
    template: Template,
    *,
    parent_id: str | None = None,
    level: int = 0,
) -> tuple[Node, ...]:
    """Re-derive parent_id, order, level and colour for every node.

    A manually chosen colour survives as long as the node stays on the same
    level; once its level changes it falls back to the template colour.
    """
    result: list[Node] = []
    for order, node in enumerate(nodes):
        keep_color = node.color_overridden and node.level == level
        result.append(
            replace(
                node,
                parent_id=parent_id,
                order=order,
                level=level,
                background_color=(
                    node.background_color if keep_color else resolve_color(template, level)
                ),
                color_overridden=keep_color,
                children=normalize(node.children, template, parent_id=node.id, level=level + 1),
            )
        )
    return tuple(result)


def _rebuild(
    nodes: tuple[Node, ...],
    node_id: str,
    fn: Callable[[Node], Node],
) -> tuple[tuple[Node, ...], bool]:
    """Replace the node with ``node_id`` by ``fn(node)``; report whether it was found."""
    result: list[Node] = []
    found = False
    for node in nodes:
        if found:
            result.append(node)
        elif node.id == node_id:
            result.append(fn(node))
            found = True
        else:
            children, found = _rebuild(node.children, node_id, fn)
            result.append(replace(node, children=children) if found else node)
    return tuple(result), found


def update_node(
    nodes: tuple[Node, ...],
    node_id: str,
    fn: Callable[[Node], Node],
) -> tuple[Node, ...]:
    """Apply ``fn`` to one node. Raises NodeNotFoundError if absent."""
    updated, found = _rebuild(nodes, node_id, fn)
    if not found:
        raise NodeNotFoundError(node_id)
    return updated


def insert_node(
    nodes: tuple[Node, ...],
    node: Node,
    *,
    parent_id: str | None = None,
    index: int | None = None,
) -> tuple[Node, ...]:
    """Insert ``node`` under ``parent_id`` (root when None).

    ``index`` is clamped to ``[0, len(siblings)]``; None appends.
    """

    def _insert(siblings: tuple[Node, ...]) -> tuple[Node, ...]:
        pos = len(siblings) if index is None else max(0, min(index, len(siblings)))
        return (*siblings[:pos], node, *siblings[pos:])

    if parent_id is None:
        return _insert(nodes)
    return update_node(nodes, parent_id, lambda p: replace(p, children=_insert(p.children)))


def remove_node(nodes: tuple[Node, ...], node_id: str) -> tuple[tuple[Node, ...], Node]:
    """Detach a node and its subtree.

    Returns (remaining roots, detached node). Raises NodeNotFoundError if absent.
    """
    removed: list[Node] = []

    def _remove(siblings: tuple[Node, ...]) -> tuple[Node, ...]:
        result: list[Node] = []
        for node in siblings:
            if node.id == node_id and not removed:
                removed.append(node)
            elif removed:
                result.append(node)
            else:
                result.append(replace(node, children=_remove(node.children)))
        return tuple(result)

    remaining = _remove(nodes)
    if not removed:
        raise NodeNotFoundError(node_id)
    return remaining, removed[0]


def move_node(
    nodes: tuple[Node, ...],
    node_id: str,
    *,
    new_parent_id: str | None,
    new_order: int,
) -> tuple[Node, ...]:
    """Move a subtree to ``new_order`` under ``new_parent_id`` (root when None).

    The subtree's internal shape is untouched. ``new_order`` is clamped to
    the target sibling count after the node has been detached.
    """
    moving = find_node(nodes, node_id)
    if moving is None:
        raise NodeNotFoundError(node_id)
    if new_parent_id is not None:
        if new_parent_id == node_id or is_descendant(moving, new_parent_id):
            raise InvalidMoveError(node_id, new_parent_id)
        if find_node(nodes, new_parent_id) is None:
            raise NodeNotFoundError(new_parent_id)

    remaining, detached = remove_node(nodes, node_id)
    return insert_node(remaining, detached, parent_id=new_parent_id, index=new_order)


def build_nodes(
    specs: Iterable[Mapping[str, Any]],
    template: Template,
    *,
    parent_id: str | None = None,
    level: int = 0,
) -> tuple[Node, ...]:
    """Create fresh nodes from nested ``{"title", "notes", "children"}`` mappings."""
    result: list[Node] = []
    for order, spec in enumerate(specs):
        node_id = new_id()
        result.append(
            Node(
                id=node_id,
                title=spec["title"],
                notes=spec.get("notes", ""),
                background_color=resolve_color(template, level),
                children=build_nodes(
                    spec.get("children", ()), template, parent_id=node_id, level=level + 1
                ),
                parent_id=parent_id,
                order=order,
                level=level,
            )
        )
    return tuple(result)
