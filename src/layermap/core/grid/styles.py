"""Cell styling that reproduces the legacy spreadsheet macro.

Rules run in a fixed order and later rules overwrite earlier ones for the
same cell property:

1. every used column gets a pale wash of its header colour;
2. each row's first value column is found from node positions;
3. that cell gets a stronger fill plus top/left borders;
4. cells to its right, up to the last used column, get the same fill plus
   top/bottom borders;
5. cells to its left get a right border;
6. a medium frame is drawn around the used rectangle;
7. sitemaps extend each node's colour down its column over its subtree rows;
8. tabular templates box the header row and the metadata columns.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from layermap.config import GRID_COLUMNS, TABULAR_HEADER, TABULAR_MAX_LEVEL
from layermap.core.colors import header_color, with_alpha
from layermap.models.node import CellBorders, CellStyle, Grid, Template

WASH_ALPHA = 0x4D
TEXT_ALPHA = 0x80
SPAN_ALPHA = 0x30
TABULAR_FILL = "#F3F4F6"

THIN = "thin"
MEDIUM = "medium"


def cell_key(row: int, col: int) -> str:
    return f"{row}-{col}"


@dataclass
class _CellDraft:
    background_color: str | None = None
    borders: dict[str, str] = field(default_factory=dict)

    def freeze(self) -> CellStyle:
        return CellStyle(
            background_color=self.background_color, borders=CellBorders(**self.borders)
        )


class _StyleSheet:
    """Mutable scratch space while the rules run."""

    def __init__(self) -> None:
        self.cells: dict[str, _CellDraft] = {}

    def _draft(self, row: int, col: int) -> _CellDraft:
        return self.cells.setdefault(cell_key(row, col), _CellDraft())

    def fill(self, row: int, col: int, color: str) -> None:
        self._draft(row, col).background_color = color

    def border(self, row: int, col: int, **sides: str) -> None:
        self._draft(row, col).borders.update(sides)

    def box(self, row: int, col: int, color: str) -> None:
        self.fill(row, col, color)
        self.border(row, col, top=THIN, left=THIN, bottom=THIN, right=THIN)

    def freeze(self) -> dict[str, CellStyle]:
        return {key: draft.freeze() for key, draft in self.cells.items()}


def compute_styles(grid: Grid) -> dict[str, CellStyle]:
    """Compute per-cell fill and borders for a grid, keyed ``"row-col"``.

    Occupancy comes from node positions, so retitling a node never changes
    any style.
    """
    sheet = _StyleSheet()
    offset = grid.header_rows
    placed = [flat for flat in grid.flat_nodes if flat.level < GRID_COLUMNS]

    first_value_col: dict[int, int] = {}
    for flat in placed:
        row = flat.row_index + offset
        first_value_col[row] = min(first_value_col.get(row, flat.level), flat.level)

    max_row = max(first_value_col, default=offset - 1)
    max_col = max(first_value_col.values(), default=-1)

    for col in range(max_col + 1):
        wash = with_alpha(header_color(col), WASH_ALPHA)
        for row in range(offset, max_row + 1):
            sheet.fill(row, col, wash)

    for row, first in sorted(first_value_col.items()):
        strong = with_alpha(header_color(first), TEXT_ALPHA)
        sheet.fill(row, first, strong)
        sheet.border(row, first, top=THIN, left=THIN)
        for col in range(first + 1, max_col + 1):
            sheet.fill(row, col, strong)
            sheet.border(row, col, top=THIN, bottom=THIN)
        for col in range(first):
            sheet.border(row, col, right=THIN)

    for row in range(offset, max_row + 1):
        for col in range(max_col + 1):
            if row == offset:
                sheet.border(row, col, top=MEDIUM)
            if row == max_row:
                sheet.border(row, col, bottom=MEDIUM)
            if col == 0:
                sheet.border(row, col, left=MEDIUM)
            if col == max_col:
                sheet.border(row, col, right=MEDIUM)

    if grid.template is Template.SITEMAP:
        occupied = {(flat.row_index + offset, flat.level) for flat in placed}
        for flat in placed:
            span = with_alpha(flat.node.background_color, SPAN_ALPHA)
            for row in range(flat.row_index + 1, flat.last_child_row_index + 1):
                if (row + offset, flat.level) not in occupied:
                    sheet.fill(row + offset, flat.level, span)

    if grid.template.is_tabular:
        fill = with_alpha(TABULAR_FILL, 0xFF)
        for col in range(len(TABULAR_HEADER)):
            sheet.box(0, col, fill)
        for row in range(offset, max_row + 1):
            for col in range(TABULAR_MAX_LEVEL + 1, len(TABULAR_HEADER)):
                sheet.box(row, col, fill)

    return sheet.freeze()


def used_extent(styles: Mapping[str, CellStyle]) -> tuple[int, int]:
    """Return (last row, last column) touched by any style, or (-1, -1)."""
    if not styles:
        return -1, -1
    coords = [tuple(int(part) for part in key.split("-")) for key in styles]
    return max(r for r, _ in coords), max(c for _, c in coords)
