"""Encode a styled grid as an .xlsx workbook."""

import io
from collections.abc import Mapping
from datetime import datetime

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE, Cell
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from layermap.config import (
    EXPORT_COLUMN_WIDTH,
    EXPORT_FONT,
    EXPORT_INFO_SHEET_TITLE,
    EXPORT_SHEET_TITLE,
    GRID_COLUMNS,
)
from layermap.core.colors import composite_on_white
from layermap.core.grid.styles import cell_key, used_extent
from layermap.models.node import CellBorders, CellStyle, Grid, Template

RULE_SUMMARY: tuple[str, ...] = (
    "Styling rules:",
    "1. Column-wide background colours from the header palette",
    "2. Text cell colours extend to the right",
    "3. Borders applied per the macro rules",
    "4. Medium frame around the data range",
    "",
    "Border rules:",
    "- Text cells: top and left borders",
    "- Right extension cells: top and bottom borders",
    "- Left cells: internal vertical borders",
    "- Outer frame: medium borders around the entire range",
)

_BLACK = "000000"


def _set_text(ws: Worksheet, row: int, column: int, value: str) -> Cell:
    """Write a plain string cell; text starting with "=" stays text."""
    value = ILLEGAL_CHARACTERS_RE.sub("", value)
    cell = ws.cell(row=row, column=column, value=value or None)
    if value:
        cell.data_type = "s"
    return cell


def _fill(color: str) -> PatternFill:
    return PatternFill("solid", fgColor=composite_on_white(color))


def _font(*, bold: bool = False, size: int = 10) -> Font:
    return Font(name=EXPORT_FONT, bold=bold, size=size, color=_BLACK)


def _border(borders: CellBorders) -> Border:
    def side(style: str | None) -> Side:
        return Side(style=style, color=_BLACK) if style else Side()

    return Border(
        left=side(borders.left),
        right=side(borders.right),
        top=side(borders.top),
        bottom=side(borders.bottom),
    )


def _write_grid(ws: Worksheet, grid: Grid, styles: Mapping[str, CellStyle]) -> None:
    for r, row in enumerate(grid.rows):
        for c, value in enumerate(row):
            cell = _set_text(ws, r + 1, c + 1, value)
            has_text = bool(value.strip())
            cell.alignment = Alignment(
                horizontal="left" if has_text else "center", vertical="center"
            )
            cell.font = _font(bold=has_text, size=11 if has_text else 10)

            style = styles.get(cell_key(r, c))
            if style is None:
                continue
            if style.background_color:
                cell.fill = _fill(style.background_color)
            if not style.borders.is_empty():
                cell.border = _border(style.borders)


def _write_info(
    ws: Worksheet,
    *,
    map_name: str,
    template: Template,
    exported_at: datetime,
    max_row: int,
    max_col: int,
) -> None:
    rows: list[tuple[str, ...]] = [
        ("LayerMap Export Information",),
        ("",),
        ("Map Name:", map_name),
        ("Template:", template.value),
        ("Export Date:", exported_at.isoformat(timespec="seconds")),
        ("Max Row:", str(max_row)),
        ("Max Col:", str(max_col)),
        ("",),
        *((line,) for line in RULE_SUMMARY),
    ]
    for r, row in enumerate(rows, start=1):
        for c, value in enumerate(row, start=1):
            _set_text(ws, r, c, value).font = _font()

    title = ws.cell(row=1, column=1)
    title.font = _font(bold=True, size=16)
    title.fill = PatternFill("solid", fgColor="E6F3FF")
    title.alignment = Alignment(horizontal="center", vertical="center")
    thick = Side(style="thick", color=_BLACK)
    title.border = Border(left=thick, right=thick, top=thick, bottom=thick)

    ws.column_dimensions["A"].width = 35
    ws.column_dimensions["B"].width = 45


def encode_spreadsheet(
    grid: Grid,
    styles: Mapping[str, CellStyle],
    map_name: str,
    template: Template | str,
    *,
    exported_at: datetime | None = None,
) -> bytes:
    """Render the grid and its styles into .xlsx bytes.

    Fills are composited over white since cells cannot carry alpha. A second
    sheet records the map name, template, export time and styling summary.
    """
    template = Template(template)
    exported_at = exported_at or datetime.now().astimezone()

    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_TITLE
    _write_grid(ws, grid, styles)

    max_row, max_col = used_extent(styles)
    for col in range(1, max(max_col + 1, GRID_COLUMNS) + 1):
        ws.column_dimensions[get_column_letter(col)].width = EXPORT_COLUMN_WIDTH

    _write_info(
        wb.create_sheet(EXPORT_INFO_SHEET_TITLE),
        map_name=map_name,
        template=template,
        exported_at=exported_at,
        max_row=max_row,
        max_col=max_col,
    )

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
