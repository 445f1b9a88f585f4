"""Editing session: the current map, the map list and undo history.

All node operations act on the current map. Each one builds a complete new
tree, normalises levels and colours over the whole tree, and only then
commits it (current map, map list entry, history snapshot). If anything
raises before the commit the session is unchanged.
"""

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Literal

from loguru import logger

from layermap.config import DEFAULT_NODE_TITLE, HISTORY_LIMIT
from layermap.core.colors import is_hex_color, resolve_color
from layermap.core.history import History
from layermap.core.templates import default_nodes
from layermap.core.tree import operations as ops
from layermap.core.tree.navigation import find_context, find_node
from layermap.errors import MapNotFoundError, NoCurrentMapError, NodeNotFoundError
from layermap.models.node import LayerMap, LevelChange, LevelChangeStatus, Node, Template

Direction = Literal["promote", "demote"]

ChangeListener = Callable[[LayerMap | None], None]

_UNSET: Any = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LayerMapSession:
    """State container for one user's editing session.

    Sessions share nothing; create one per user/context.
    """

    def __init__(
        self,
        maps: Iterable[LayerMap] = (),
        *,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._maps: list[LayerMap] = list(maps)
        self._current: LayerMap | None = None
        self.history = History(history_limit)
        self._clock = clock
        # Called with the current map after every change to it.
        self._listeners: list[ChangeListener] = []

    # --- State ---

    @property
    def maps(self) -> tuple[LayerMap, ...]:
        return tuple(self._maps)

    @property
    def current_map(self) -> LayerMap | None:
        return self._current

    def require_current_map(self) -> LayerMap:
        """The current map; raises NoCurrentMapError when none is loaded."""
        if self._current is None:
            raise NoCurrentMapError()
        return self._current

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def get_map(self, map_id: str) -> LayerMap:
        for layer_map in self._maps:
            if layer_map.id == map_id:
                return layer_map
        raise MapNotFoundError(map_id)

    def find_node(self, node_id: str) -> Node:
        """Look up a node in the current map."""
        node = find_node(self.require_current_map().root_nodes, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    # --- Map operations ---

    def create_map(self, name: str, template: Template | str) -> LayerMap:
        """Create a map pre-populated with the template's starter nodes."""
        template = Template(template)
        now = self._clock()
        layer_map = LayerMap(
            id=ops.new_id(),
            name=name,
            created_at=now,
            updated_at=now,
            root_nodes=default_nodes(template),
            template=template,
        )
        self._maps.append(layer_map)
        self._set_current(layer_map)
        self.history.reset(layer_map)
        logger.info("Created map {!r} ({}) id={}", name, template.value, layer_map.id)
        return layer_map

    def load_map(self, map_id: str) -> LayerMap:
        """Make a stored map current, re-deriving its levels and colours."""
        layer_map = self.get_map(map_id)
        layer_map = replace(
            layer_map, root_nodes=ops.normalize(layer_map.root_nodes, layer_map.template)
        )
        self._replace_in_list(layer_map)
        self._set_current(layer_map)
        self.history.reset(layer_map)
        logger.debug("Loaded map {}", map_id)
        return layer_map

    def import_map(self, layer_map: LayerMap) -> LayerMap:
        """Adopt an externally supplied map (replacing one with the same id)."""
        layer_map = replace(
            layer_map, root_nodes=ops.normalize(layer_map.root_nodes, layer_map.template)
        )
        if not self._replace_in_list(layer_map):
            self._maps.append(layer_map)
        self._set_current(layer_map)
        self.history.reset(layer_map)
        logger.info("Imported map {!r} id={}", layer_map.name, layer_map.id)
        return layer_map

    def update_map(self, layer_map: LayerMap) -> LayerMap:
        """Replace a stored map wholesale and make it current.

        Saving the current map adds a history step; saving another map makes
        it current with a fresh history.
        """
        self.get_map(layer_map.id)
        layer_map = replace(
            layer_map,
            root_nodes=ops.normalize(layer_map.root_nodes, layer_map.template),
            updated_at=self._clock(),
        )
        if self._current is None or self._current.id != layer_map.id:
            self._replace_in_list(layer_map)
            self._set_current(layer_map)
            self.history.reset(layer_map)
            return layer_map
        return self._commit(layer_map)

    def rename_map(self, name: str) -> LayerMap:
        current = self.require_current_map()
        return self._commit(replace(current, name=name, updated_at=self._clock()))

    def delete_map(self, map_id: str) -> None:
        """Remove a map. Clears the current map and its history if it was current."""
        self.get_map(map_id)
        self._maps = [m for m in self._maps if m.id != map_id]
        if self._current is not None and self._current.id == map_id:
            self._set_current(None)
            self.history.reset()
        logger.info("Deleted map {}", map_id)

    # --- Node operations ---

    def add_node(
        self,
        parent_id: str | None = None,
        *,
        title: str = DEFAULT_NODE_TITLE,
        notes: str = "",
        background_color: str | None = None,
    ) -> Node:
        """Append a new node under ``parent_id`` (root level when None)."""
        current = self.require_current_map()
        level = 0
        if parent_id is not None:
            parent = find_node(current.root_nodes, parent_id)
            if parent is None:
                raise NodeNotFoundError(parent_id)
            level = parent.level + 1
        if background_color is not None and not is_hex_color(background_color):
            msg = f"Not a #RRGGBB colour: {background_color!r}"
            raise ValueError(msg)

        node = Node(
            id=ops.new_id(),
            title=title,
            notes=notes,
            background_color=(
                background_color.upper() if background_color
                else resolve_color(current.template, level)
            ),
            parent_id=parent_id,
            level=level,
            color_overridden=background_color is not None,
        )
        updated = self._mutate(lambda roots: ops.insert_node(roots, node, parent_id=parent_id))
        logger.debug("Added node {} under {}", node.id, parent_id or "root")
        return self._node_in(updated, node.id)

    def update_node(
        self,
        node_id: str,
        *,
        title: str = _UNSET,
        notes: str = _UNSET,
        background_color: str | None = _UNSET,
    ) -> Node:
        """Edit a node's fields.

        Passing a colour pins it until the node changes level; passing
        ``background_color=None`` returns the node to its level colour.
        """
        if title is _UNSET and notes is _UNSET and background_color is _UNSET:
            msg = "No fields to update"
            raise ValueError(msg)
        if background_color not in (_UNSET, None) and not is_hex_color(background_color):
            msg = f"Not a #RRGGBB colour: {background_color!r}"
            raise ValueError(msg)
        template = self.require_current_map().template

        def _apply(node: Node) -> Node:
            changes: dict[str, Any] = {}
            if title is not _UNSET:
                changes["title"] = title
            if notes is not _UNSET:
                changes["notes"] = notes
            if background_color is None:
                changes["background_color"] = resolve_color(template, node.level)
                changes["color_overridden"] = False
            elif background_color is not _UNSET:
                changes["background_color"] = background_color.upper()
                changes["color_overridden"] = True
            return replace(node, **changes)

        updated = self._mutate(lambda roots: ops.update_node(roots, node_id, _apply))
        logger.debug("Updated node {}", node_id)
        return self._node_in(updated, node_id)

    def delete_node(self, node_id: str) -> Node:
        """Remove a node and its whole subtree; returns the removed node."""
        removed: list[Node] = []

        def _delete(roots: tuple[Node, ...]) -> tuple[Node, ...]:
            remaining, node = ops.remove_node(roots, node_id)
            removed.append(node)
            return remaining

        self._mutate(_delete)
        logger.debug("Deleted node {}", node_id)
        return removed[0]

    def move_node(
        self,
        node_id: str,
        new_parent_id: str | None = None,
        new_order: int = 0,
    ) -> Node:
        """Move a node (with its subtree) to ``new_order`` under ``new_parent_id``."""
        updated = self._mutate(
            lambda roots: ops.move_node(
                roots, node_id, new_parent_id=new_parent_id, new_order=new_order
            )
        )
        logger.debug("Moved node {} to {}[{}]", node_id, new_parent_id or "root", new_order)
        return self._node_in(updated, node_id)

    def change_level(self, node_id: str, direction: Direction) -> LevelChange:
        """Promote (out one level) or demote (into the previous sibling) a node.

        Refusals come back as a LevelChange with ``changed`` False.
        """
        if direction not in ("promote", "demote"):
            msg = f"direction must be 'promote' or 'demote', got {direction!r}"
            raise ValueError(msg)
        roots = self.require_current_map().root_nodes
        context = find_context(roots, node_id)
        if context is None:
            raise NodeNotFoundError(node_id)
        title = context.node.title

        if direction == "promote":
            if context.parent_id is None:
                return LevelChange(
                    LevelChangeStatus.ALREADY_ROOT,
                    node_id,
                    f"{title!r} is already at the top level",
                )
            parent_context = find_context(roots, context.parent_id)
            if parent_context is None:
                raise NodeNotFoundError(context.parent_id)
            self.move_node(node_id, parent_context.parent_id, parent_context.index + 1)
            return LevelChange(LevelChangeStatus.PROMOTED, node_id, f"{title!r} moved up a level")

        if context.index == 0:
            return LevelChange(
                LevelChangeStatus.NO_PREVIOUS_SIBLING,
                node_id,
                f"{title!r} has no previous sibling to move under",
            )
        new_parent = context.siblings[context.index - 1]
        self.move_node(node_id, new_parent.id, len(new_parent.children))
        return LevelChange(LevelChangeStatus.DEMOTED, node_id, f"{title!r} moved down a level")

    def promote(self, node_id: str) -> LevelChange:
        return self.change_level(node_id, "promote")

    def demote(self, node_id: str) -> LevelChange:
        return self.change_level(node_id, "demote")

    def copy_node(self, node_id: str) -> Node:
        """Duplicate a node (without its children) as the last of its siblings."""
        source = self.find_node(node_id)
        copy = replace(
            source,
            id=ops.new_id(),
            title=f"{source.title} (copy)",
            children=(),
        )
        updated = self._mutate(
            lambda roots: ops.insert_node(roots, copy, parent_id=source.parent_id)
        )
        logger.debug("Copied node {} to {}", node_id, copy.id)
        return self._node_in(updated, copy.id)

    # --- History ---

    def undo(self) -> bool:
        """Step back one snapshot. Returns False at the start of history."""
        return self._restore(self.history.undo())

    def redo(self) -> bool:
        """Step forward one snapshot. Returns False at the end of history."""
        return self._restore(self.history.redo())

    # --- Internals ---

    def _mutate(self, fn: Callable[[tuple[Node, ...]], tuple[Node, ...]]) -> LayerMap:
        current = self.require_current_map()
        roots = ops.normalize(fn(current.root_nodes), current.template)
        return self._commit(replace(current, root_nodes=roots, updated_at=self._clock()))

    def _commit(self, layer_map: LayerMap) -> LayerMap:
        self._replace_in_list(layer_map)
        self.history.push(layer_map)
        self._set_current(layer_map)
        return layer_map

    def _restore(self, snapshot: LayerMap | None) -> bool:
        if snapshot is None:
            return False
        self._replace_in_list(snapshot)
        self._set_current(snapshot)
        return True

    def _replace_in_list(self, layer_map: LayerMap) -> bool:
        for i, existing in enumerate(self._maps):
            if existing.id == layer_map.id:
                self._maps[i] = layer_map
                return True
        return False

    def _set_current(self, layer_map: LayerMap | None) -> None:
        self._current = layer_map
        for listener in list(self._listeners):
            listener(layer_map)

    @staticmethod
    def _node_in(layer_map: LayerMap, node_id: str) -> Node:
        node = find_node(layer_map.root_nodes, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node
