"""Render node trees as markdown outlines."""

import io

from layermap.models.node import Node


def render_outline(
    nodes: tuple[Node, ...],
    *,
    max_depth: int | None = None,
    include_notes: bool = True,
    include_ids: bool = False,
) -> str:
    """Render nodes and their descendants as an indented bullet list.

    Args:
        nodes: Sibling nodes to start from (usually a map's root nodes).
        max_depth: Max levels below the start nodes to include (None = unlimited).
        include_notes: Whether to include node notes.
        include_ids: Append each node's id, for picking targets on the CLI.

    Returns:
        Markdown string with bullet-list hierarchy.
    """
    out = io.StringIO()

    def _write(siblings: tuple[Node, ...], depth: int) -> None:
        for node in siblings:
            indent = "    " * depth
            lines = node.title.split("\n")
            suffix = f"  [id={node.id}]" if include_ids else ""
            out.write(f"{indent}- {lines[0]}{suffix}\n")
            for line in lines[1:]:
                out.write(f"{indent}  {line}\n")

            if include_notes and node.notes:
                for note_line in node.notes.split("\n"):
                    out.write(f"{indent}  > {note_line}\n")

            if not node.children:
                continue
            if max_depth is not None and depth >= max_depth:
                count = len(node.children)
                noun = "child" if count == 1 else "children"
                out.write(f"{indent}    - ... ({count} more {noun}, id={node.id})\n")
                continue
            _write(node.children, depth + 1)

    _write(nodes, 0)
    return out.getvalue()
