"""Tests for LayerMapSession: map lifecycle, node edits and undo/redo."""

from dataclasses import replace

import pytest

from layermap.core.colors import resolve_color
from layermap.core.tree.navigation import find_node, iter_nodes
from layermap.errors import (
    InvalidMoveError,
    MapNotFoundError,
    NoCurrentMapError,
    NodeNotFoundError,
)
from layermap.models.node import LayerMap, LevelChangeStatus, Node, Template
from layermap.session import LayerMapSession
from tests.unit.conftest import make_clock


def _assert_consistent(layer_map: LayerMap) -> None:
    """Check level, parent, order and colour of every node against its position."""

    def _walk(nodes: tuple[Node, ...], parent_id: str | None, level: int) -> None:
        assert [n.order for n in nodes] == list(range(len(nodes)))
        for node in nodes:
            assert node.level == level, node.id
            assert node.parent_id == parent_id, node.id
            if not node.color_overridden:
                assert node.background_color == resolve_color(layer_map.template, level)
            _walk(node.children, node.id, level + 1)

    _walk(layer_map.root_nodes, None, 0)


def _current(session: LayerMapSession) -> LayerMap:
    assert session.current_map is not None
    return session.current_map


def _child_ids(session: LayerMapSession, node_id: str) -> list[str]:
    return [c.id for c in session.find_node(node_id).children]


# --- Map lifecycle ---


def test_create_sitemap_then_add_child(session: LayerMapSession) -> None:
    """Create a sitemap map and add one child under the first root."""
    layer_map = session.create_map("Test", "sitemap")

    assert len(layer_map.root_nodes) == 4
    assert all(n.level == 0 for n in layer_map.root_nodes)
    assert all(n.background_color == "#2563EB" for n in layer_map.root_nodes)

    first = layer_map.root_nodes[0]
    node = session.add_node(first.id, title="X")

    assert node.level == 1
    assert node.background_color == "#10B981"
    assert len(_current(session).root_nodes[0].children) == 1


def test_create_map_uses_template_defaults(session: LayerMapSession) -> None:
    custom = session.create_map("Blank", Template.CUSTOM)
    wbs = session.create_map("Plan", Template.WBS)

    assert custom.root_nodes == ()
    assert len(wbs.root_nodes) == 5
    assert max(n.level for n in iter_nodes(wbs.root_nodes)) == 2
    _assert_consistent(wbs)
    assert session.current_map == wbs
    assert [m.name for m in session.maps] == ["Blank", "Plan"]


def test_create_map_resets_history(session: LayerMapSession) -> None:
    session.create_map("One", "sitemap")
    session.add_node(title="extra")

    session.create_map("Two", "sitemap")

    assert len(session.history) == 1
    assert session.undo() is False


def test_load_map_recomputes_stale_levels(sample_map: LayerMap) -> None:
    stale_roots = tuple(
        replace(n, level=7, background_color="#000000", order=9) for n in sample_map.root_nodes
    )
    session = LayerMapSession([replace(sample_map, root_nodes=stale_roots)])

    loaded = session.load_map("m1")

    _assert_consistent(loaded)
    assert session.maps[0] == loaded


def test_load_unknown_map_raises(session: LayerMapSession) -> None:
    with pytest.raises(MapNotFoundError):
        session.load_map("missing")


def test_node_operation_without_current_map_raises(session: LayerMapSession) -> None:
    with pytest.raises(NoCurrentMapError):
        session.add_node(title="orphan")


def test_require_current_map(session: LayerMapSession, sample_session: LayerMapSession) -> None:
    with pytest.raises(NoCurrentMapError):
        session.require_current_map()
    assert sample_session.require_current_map().id == "m1"


def test_delete_current_map_clears_state(sample_session: LayerMapSession) -> None:
    sample_session.add_node(title="extra")

    sample_session.delete_map("m1")

    assert sample_session.current_map is None
    assert sample_session.maps == ()
    assert len(sample_session.history) == 0


def test_delete_other_map_keeps_current(sample_session: LayerMapSession) -> None:
    other = sample_session.create_map("Other", "custom")
    sample_session.load_map("m1")

    sample_session.delete_map(other.id)

    assert _current(sample_session).id == "m1"
    assert [m.id for m in sample_session.maps] == ["m1"]


def test_update_current_map_adds_history_step(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)

    saved = sample_session.update_map(replace(before, name="Renamed"))

    assert saved.name == "Renamed"
    assert len(sample_session.history) == 2
    assert sample_session.undo() is True
    assert _current(sample_session) == before


def test_update_other_map_makes_it_current(sample_map: LayerMap) -> None:
    other = replace(sample_map, id="m2", name="Other")
    session = LayerMapSession([sample_map, other], clock=make_clock())
    session.load_map("m1")

    session.update_map(replace(other, name="Other v2"))

    assert _current(session).id == "m2"
    assert _current(session).name == "Other v2"
    assert len(session.history) == 1


def test_update_unknown_map_raises(sample_session: LayerMapSession, sample_map: LayerMap) -> None:
    with pytest.raises(MapNotFoundError):
        sample_session.update_map(replace(sample_map, id="nope"))


def test_rename_map_updates_list_and_timestamp(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)

    renamed = sample_session.rename_map("New name")

    assert renamed.name == "New name"
    assert renamed.updated_at > before.updated_at
    assert sample_session.get_map("m1").name == "New name"


def test_import_map_replaces_same_id(sample_session: LayerMapSession, sample_map: LayerMap) -> None:
    imported = sample_session.import_map(replace(sample_map, name="Imported"))

    assert [m.name for m in sample_session.maps] == ["Imported"]
    assert _current(sample_session) == imported


# --- Node operations ---


def test_add_node_appends_with_next_order(sample_session: LayerMapSession) -> None:
    node = sample_session.add_node("a", title="Blog", notes="weekly")

    assert _child_ids(sample_session, "a") == ["a1", "a2", node.id]
    assert node.order == 2
    assert node.notes == "weekly"
    assert node.parent_id == "a"


def test_add_node_defaults_and_root_level(sample_session: LayerMapSession) -> None:
    node = sample_session.add_node()

    assert node.title == "新しいノード"
    assert node.level == 0
    assert [n.id for n in _current(sample_session).root_nodes][-1] == node.id


def test_add_node_with_explicit_colour(sample_session: LayerMapSession) -> None:
    node = sample_session.add_node("a1", title="Red", background_color="#ff0000")

    assert node.background_color == "#FF0000"
    assert node.color_overridden is True


def test_add_node_rejects_bad_colour(sample_session: LayerMapSession) -> None:
    with pytest.raises(ValueError, match="colour"):
        sample_session.add_node(title="x", background_color="red")


def test_add_node_unknown_parent_leaves_state_unchanged(
    sample_session: LayerMapSession,
) -> None:
    before = _current(sample_session)

    with pytest.raises(NodeNotFoundError):
        sample_session.add_node("missing", title="x")

    assert _current(sample_session) == before
    assert len(sample_session.history) == 1


def test_update_node_changes_fields(sample_session: LayerMapSession) -> None:
    node = sample_session.update_node("a2", title="Company", notes="since 1999")

    assert node.title == "Company"
    assert node.notes == "since 1999"
    assert node.background_color == resolve_color(Template.SITEMAP, 1)


def test_update_node_requires_a_field(sample_session: LayerMapSession) -> None:
    with pytest.raises(ValueError, match="No fields"):
        sample_session.update_node("a2")


def test_update_node_unknown_id_raises(sample_session: LayerMapSession) -> None:
    with pytest.raises(NodeNotFoundError):
        sample_session.update_node("missing", title="x")
    assert len(sample_session.history) == 1


def test_colour_override_survives_unrelated_edits(sample_session: LayerMapSession) -> None:
    """A pinned colour stays through title edits and structural changes elsewhere."""
    sample_session.update_node("a2", background_color="#123456")

    sample_session.update_node("a2", title="Renamed")
    sample_session.add_node("b", title="Form")
    sample_session.delete_node("a1a")

    node = sample_session.find_node("a2")
    assert node.background_color == "#123456"
    assert node.color_overridden is True
    _assert_consistent(_current(sample_session))


def test_colour_override_cleared_by_level_change(sample_session: LayerMapSession) -> None:
    sample_session.update_node("a2", background_color="#123456")

    sample_session.promote("a2")

    node = sample_session.find_node("a2")
    assert node.level == 0
    assert node.background_color == resolve_color(Template.SITEMAP, 0)
    assert node.color_overridden is False


def test_colour_override_reset_with_none(sample_session: LayerMapSession) -> None:
    sample_session.update_node("a2", background_color="#123456")

    node = sample_session.update_node("a2", background_color=None)

    assert node.background_color == resolve_color(Template.SITEMAP, 1)
    assert node.color_overridden is False


def test_delete_node_cascades_to_descendants(sample_session: LayerMapSession) -> None:
    removed = sample_session.delete_node("a1")

    assert removed.id == "a1"
    remaining = {n.id for n in iter_nodes(_current(sample_session).root_nodes)}
    assert remaining == {"a", "a2", "b"}
    assert sample_session.find_node("a2").order == 0


def test_delete_unknown_node_raises(sample_session: LayerMapSession) -> None:
    with pytest.raises(NodeNotFoundError):
        sample_session.delete_node("missing")


def test_move_node_preserves_subtree_shape(sample_session: LayerMapSession) -> None:
    """Moving a1 to the top level keeps its children and shifts their levels."""
    sample_session.add_node("a1", title="Gadgets")
    before = sample_session.find_node("a1")

    moved = sample_session.move_node("a1", None, 1)

    assert [n.id for n in _current(sample_session).root_nodes] == ["a", "a1", "b"]
    assert [c.title for c in moved.children] == [c.title for c in before.children]
    assert moved.level == 0
    assert all(c.level == 1 for c in moved.children)
    assert moved.children[0].background_color == resolve_color(Template.SITEMAP, 1)
    _assert_consistent(_current(sample_session))


def test_move_node_clamps_order(sample_session: LayerMapSession) -> None:
    sample_session.move_node("b", "a", 99)

    assert _child_ids(sample_session, "a") == ["a1", "a2", "b"]


def test_move_into_own_subtree_is_rejected_atomically(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)

    with pytest.raises(InvalidMoveError):
        sample_session.move_node("a", "a1a", 0)

    assert _current(sample_session) == before
    assert len(sample_session.history) == 1


def test_promote_places_node_after_former_parent(sample_session: LayerMapSession) -> None:
    result = sample_session.promote("a1a")

    assert result.status is LevelChangeStatus.PROMOTED
    assert result.changed is True
    assert _child_ids(sample_session, "a") == ["a1", "a1a", "a2"]
    assert sample_session.find_node("a1a").level == 1


def test_promote_root_is_refused(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)

    result = sample_session.promote("a")

    assert result.status is LevelChangeStatus.ALREADY_ROOT
    assert result.changed is False
    assert "top level" in result.message
    assert _current(sample_session) == before


def test_demote_moves_under_previous_sibling(sample_session: LayerMapSession) -> None:
    result = sample_session.demote("a2")

    assert result.status is LevelChangeStatus.DEMOTED
    assert _child_ids(sample_session, "a1") == ["a1a", "a2"]
    assert sample_session.find_node("a2").level == 2


def test_demote_first_sibling_is_refused(sample_session: LayerMapSession) -> None:
    result = sample_session.demote("a1")

    assert result.status is LevelChangeStatus.NO_PREVIOUS_SIBLING
    assert result.changed is False
    assert len(sample_session.history) == 1


def test_change_level_rejects_unknown_direction(sample_session: LayerMapSession) -> None:
    with pytest.raises(ValueError, match="direction"):
        sample_session.change_level("a1", "sideways")  # type: ignore[arg-type]


def test_change_level_unknown_node_raises(sample_session: LayerMapSession) -> None:
    with pytest.raises(NodeNotFoundError):
        sample_session.demote("missing")


def test_copy_node_appends_childless_copy(sample_session: LayerMapSession) -> None:
    copy = sample_session.copy_node("a1")

    assert copy.title == "Products (copy)"
    assert copy.children == ()
    assert copy.id != "a1"
    assert _child_ids(sample_session, "a") == ["a1", "a2", copy.id]


def test_invariants_hold_after_mixed_operations(sample_session: LayerMapSession) -> None:
    extra = sample_session.add_node("a1a", title="Deep")
    sample_session.add_node(extra.id, title="Deeper")
    sample_session.add_node(extra.id, title="Deepest")
    sample_session.demote("b")
    sample_session.move_node("a1", "b", 0)
    sample_session.promote(extra.id)
    sample_session.delete_node("a2")
    sample_session.copy_node("a1a")

    layer_map = _current(sample_session)
    _assert_consistent(layer_map)
    ids = [n.id for n in iter_nodes(layer_map.root_nodes)]
    assert len(ids) == len(set(ids))


# --- History ---


def test_undo_redo_round_trip(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)
    sample_session.add_node("a", title="New")
    after = _current(sample_session)

    assert sample_session.undo() is True
    assert _current(sample_session) == before
    assert sample_session.redo() is True
    assert _current(sample_session) == after
    assert sample_session.undo() is True
    assert _current(sample_session) == before
    assert sample_session.get_map("m1") == before


def test_undo_and_redo_at_boundaries_are_noops(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)

    assert sample_session.undo() is False
    assert sample_session.redo() is False
    assert _current(sample_session) == before


def test_new_edit_after_undo_discards_redo(sample_session: LayerMapSession) -> None:
    sample_session.add_node(title="one")
    sample_session.undo()

    sample_session.add_node(title="two")

    assert sample_session.redo() is False
    titles = [n.title for n in _current(sample_session).root_nodes]
    assert "two" in titles
    assert "one" not in titles


def test_history_limit_caps_snapshots(sample_map: LayerMap) -> None:
    session = LayerMapSession([sample_map], history_limit=3)
    session.load_map("m1")

    for i in range(5):
        session.add_node(title=f"n{i}")

    assert len(session.history) == 3
    assert session.undo() is True
    assert session.undo() is True
    assert session.undo() is False


# --- Listeners and isolation ---


def test_listeners_see_every_change(sample_session: LayerMapSession) -> None:
    before = _current(sample_session)
    seen: list[LayerMap | None] = []
    unsubscribe = sample_session.subscribe(seen.append)

    sample_session.add_node(title="x")
    sample_session.undo()
    unsubscribe()
    sample_session.redo()

    assert len(seen) == 2
    assert seen[0] != before
    assert seen[1] == before


def test_sessions_do_not_share_state(sample_map: LayerMap) -> None:
    first = LayerMapSession([sample_map])
    second = LayerMapSession([sample_map])
    first.load_map("m1")
    second.load_map("m1")

    first.add_node(title="only in first")

    assert len(_current(second).root_nodes) == 2
    assert len(second.history) == 1
