"""Tests for the undo/redo snapshot history."""

from dataclasses import replace

import pytest

from layermap.core.history import History
from layermap.models.node import LayerMap


def _versions(base: LayerMap, count: int) -> list[LayerMap]:
    return [replace(base, name=f"v{i}") for i in range(count)]


def test_empty_history_cannot_move() -> None:
    history = History()

    assert history.current is None
    assert history.undo() is None
    assert history.redo() is None
    assert len(history) == 0


def test_reset_starts_with_single_snapshot(sample_map: LayerMap) -> None:
    history = History()
    history.push(replace(sample_map, name="old"))

    history.reset(sample_map)

    assert history.snapshots == (sample_map,)
    assert history.index == 0
    assert history.can_undo is False


def test_undo_and_redo_walk_the_cursor(sample_map: LayerMap) -> None:
    v0, v1, v2 = _versions(sample_map, 3)
    history = History()
    history.reset(v0)
    history.push(v1)
    history.push(v2)

    assert history.undo() == v1
    assert history.undo() == v0
    assert history.undo() is None
    assert history.redo() == v1
    assert history.redo() == v2
    assert history.redo() is None


def test_push_after_undo_truncates_redo_tail(sample_map: LayerMap) -> None:
    v0, v1, v2, v3 = _versions(sample_map, 4)
    history = History()
    history.reset(v0)
    history.push(v1)
    history.push(v2)
    history.undo()

    history.push(v3)

    assert history.snapshots == (v0, v1, v3)
    assert history.can_redo is False


def test_push_drops_oldest_beyond_max_size(sample_map: LayerMap) -> None:
    versions = _versions(sample_map, 5)
    history = History(max_size=3)
    history.reset(versions[0])

    for version in versions[1:]:
        history.push(version)

    assert history.snapshots == tuple(versions[2:])
    assert history.index == 2
    assert history.current == versions[4]


def test_max_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="max_size"):
        History(max_size=0)
