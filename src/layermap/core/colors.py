"""Level palettes and colour arithmetic."""

import string

from layermap.config import MAX_PALETTE_LEVEL
from layermap.models.node import Template

TEMPLATE_PALETTES: dict[Template, tuple[str, ...]] = {
    Template.SITEMAP: ("#2563EB", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6"),
    Template.WBS: ("#3B82F6", "#06B6D4", "#10B981", "#F59E0B", "#EF4444"),
    Template.CONTENT_CALENDAR: ("#8B5CF6", "#EC4899", "#F97316", "#84CC16", "#06B6D4"),
    Template.CUSTOM: ("#6366F1", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6"),
}

# Column wash colours, cycled by column index.
HEADER_PALETTE: tuple[str, ...] = (
    "#2563EB",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#F97316",
    "#84CC16",
)


def resolve_color(template: Template | str, level: int) -> str:
    """Return the palette colour for a tree level.

    Negative levels map to the root colour, levels past the palette reuse the
    deepest entry.
    """
    palette = TEMPLATE_PALETTES[Template(template)]
    return palette[max(0, min(level, MAX_PALETTE_LEVEL))]


def header_color(column: int) -> str:
    return HEADER_PALETTE[column % len(HEADER_PALETTE)]


def with_alpha(hex_color: str, alpha: int) -> str:
    """Append an alpha byte to a ``#RRGGBB`` colour."""
    rgb = hex_color.lstrip("#")[:6].upper()
    return f"#{rgb}{alpha:02X}"


def _parse_hex(hex_color: str) -> tuple[int, int, int, float]:
    clean = hex_color.lstrip("#")
    if len(clean) not in (6, 8):
        msg = f"Not a #RRGGBB or #RRGGBBAA colour: {hex_color!r}"
        raise ValueError(msg)
    r, g, b = (int(clean[i : i + 2], 16) for i in (0, 2, 4))
    alpha = int(clean[6:8], 16) / 255 if len(clean) == 8 else 1.0
    return r, g, b, alpha


def composite_on_white(hex_color: str) -> str:
    """Blend a ``#RRGGBBAA`` colour over white and return opaque ``RRGGBB``.

    Spreadsheets have no per-cell alpha, so the translucent on-screen colour
    is flattened the way a browser draws it over a white page.
    """
    r, g, b, alpha = _parse_hex(hex_color)
    blended = (round(c * alpha + 255 * (1 - alpha)) for c in (r, g, b))
    return "".join(f"{c:02X}" for c in blended)


def is_hex_color(value: str) -> bool:
    """True for ``#RRGGBB`` strings."""
    clean = value[1:] if value.startswith("#") else ""
    return len(clean) == 6 and all(c in string.hexdigits for c in clean)
