"""Memoised grid + style rendering for live previews."""

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

from layermap.core.grid.flatten import build_grid
from layermap.core.grid.styles import compute_styles
from layermap.models.node import CellStyle, Grid, LayerMap, Node, Template


@dataclass(frozen=True)
class GridPreview:
    grid: Grid
    styles: Mapping[str, CellStyle]


@lru_cache(maxsize=32)
def render_preview(nodes: tuple[Node, ...], template: Template) -> GridPreview:
    """Build the grid and styles for a tree.

    Trees are immutable values, so equal trees share one cached result.
    """
    grid = build_grid(nodes, template)
    return GridPreview(grid=grid, styles=MappingProxyType(compute_styles(grid)))


def preview_map(layer_map: LayerMap) -> GridPreview:
    return render_preview(layer_map.root_nodes, layer_map.template)
