"""Tests for markdown outline rendering."""

from dataclasses import replace

from layermap.core.tree.markdown import render_outline
from layermap.core.tree.operations import update_node
from layermap.models.node import Node


def test_render_outline_indents_by_level(sample_nodes: tuple[Node, ...]) -> None:
    md = render_outline(sample_nodes)

    assert md.splitlines() == [
        "- Home",
        "    - Products",
        "        - Widgets",
        "    - About",
        "- Contact",
    ]


def test_render_outline_with_depth_limit_shows_truncation(
    sample_nodes: tuple[Node, ...],
) -> None:
    md = render_outline(sample_nodes, max_depth=1)

    assert "Widgets" not in md
    assert "... (1 more child, id=a1)" in md


def test_render_outline_includes_notes_and_ids(sample_nodes: tuple[Node, ...]) -> None:
    nodes = update_node(sample_nodes, "b", lambda n: replace(n, notes="form\nmap"))

    md = render_outline(nodes, include_ids=True)

    assert "- Contact  [id=b]" in md
    assert "  > form\n  > map\n" in md


def test_render_outline_without_notes(sample_nodes: tuple[Node, ...]) -> None:
    nodes = update_node(sample_nodes, "b", lambda n: replace(n, notes="hidden"))

    assert "hidden" not in render_outline(nodes, include_notes=False)


def test_render_outline_multiline_titles(sample_nodes: tuple[Node, ...]) -> None:
    nodes = update_node(sample_nodes, "a2", lambda n: replace(n, title="About\nTeam"))

    md = render_outline(nodes)

    assert "    - About\n      Team\n" in md


def test_render_outline_empty() -> None:
    assert render_outline(()) == ""
