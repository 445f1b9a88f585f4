"""Shared test fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from layermap.core.tree.operations import normalize
from layermap.models.node import LayerMap, Node, Template
from layermap.session import LayerMapSession

# id -> (title, children ids); roots are "a" and "b".
SAMPLE_TREE: dict[str, tuple[str, list[str]]] = {
    "a": ("Home", ["a1", "a2"]),
    "a1": ("Products", ["a1a"]),
    "a1a": ("Widgets", []),
    "a2": ("About", []),
    "b": ("Contact", []),
}
SAMPLE_ROOTS = ["a", "b"]


def build_sample_nodes(template: Template = Template.SITEMAP) -> tuple[Node, ...]:
    """Build the sample tree with known ids, levels and colours filled in."""

    def _make(node_id: str) -> Node:
        title, children = SAMPLE_TREE[node_id]
        return Node(
            id=node_id,
            title=title,
            background_color="",
            children=tuple(_make(c) for c in children),
        )

    return normalize(tuple(_make(r) for r in SAMPLE_ROOTS), template)


def make_clock(start: datetime | None = None) -> Callable[[], datetime]:
    """Return a clock that advances one second per call."""
    current = [start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)]

    def _tick() -> datetime:
        value = current[0]
        current[0] = value + timedelta(seconds=1)
        return value

    return _tick


@pytest.fixture
def sample_nodes() -> tuple[Node, ...]:
    return build_sample_nodes()


@pytest.fixture
def sample_map(sample_nodes: tuple[Node, ...]) -> LayerMap:
    stamp = datetime(2024, 1, 1, 9, 30, tzinfo=UTC)
    return LayerMap(
        id="m1",
        name="Sample",
        created_at=stamp,
        updated_at=stamp,
        root_nodes=sample_nodes,
        template=Template.SITEMAP,
    )


@pytest.fixture
def session() -> LayerMapSession:
    """An empty session with a deterministic clock."""
    return LayerMapSession(clock=make_clock())


@pytest.fixture
def sample_session(sample_map: LayerMap) -> LayerMapSession:
    """A session with the sample map loaded as current."""
    session = LayerMapSession([sample_map], clock=make_clock())
    session.load_map(sample_map.id)
    return session
