"""Flatten a node tree into spreadsheet rows."""

from dataclasses import replace

from layermap.config import GRID_COLUMNS, MIN_GRID_ROWS, TABULAR_HEADER, TABULAR_MAX_LEVEL
from layermap.models.node import FlatNode, Grid, Node, Template


def flatten(nodes: tuple[Node, ...], template: Template | str) -> tuple[FlatNode, ...]:
    """Lay nodes out one per row, pre-order, in sibling order.

    A node's descendants occupy the rows directly below it, and its
    ``last_child_row_index`` is the row of its last descendant (its own row
    for leaves). Tabular templates drop nodes deeper than level 2 entirely.
    """
    max_level = TABULAR_MAX_LEVEL if Template(template).is_tabular else None
    result: list[FlatNode] = []

    def _visit(siblings: tuple[Node, ...], level: int, parent_row: int | None) -> None:
        for node in siblings:
            row = len(result)
            result.append(
                FlatNode(
                    node=node,
                    level=level,
                    row_index=row,
                    parent_row_index=parent_row,
                    last_child_row_index=row,
                )
            )
            if max_level is None or level < max_level:
                _visit(node.children, level + 1, row)
            if len(result) - 1 != row:
                result[row] = replace(result[row], last_child_row_index=len(result) - 1)

    _visit(nodes, 0, None)
    return tuple(result)


def build_grid(nodes: tuple[Node, ...], template: Template | str) -> Grid:
    """Place flattened nodes on a fixed-width grid of titles.

    Default mode puts each title in the column matching its level. Tabular
    mode adds the header row on top and leaves the metadata columns empty.
    """
    template = Template(template)
    flat_nodes = flatten(nodes, template)
    header_rows = 1 if template.is_tabular else 0
    row_count = max(len(flat_nodes) + header_rows, MIN_GRID_ROWS)

    cells = [[""] * GRID_COLUMNS for _ in range(row_count)]
    if header_rows:
        cells[0][: len(TABULAR_HEADER)] = TABULAR_HEADER
    for flat in flat_nodes:
        if flat.level < GRID_COLUMNS:
            cells[flat.row_index + header_rows][flat.level] = flat.node.title

    return Grid(
        template=template,
        rows=tuple(tuple(row) for row in cells),
        flat_nodes=flat_nodes,
        header_rows=header_rows,
    )
