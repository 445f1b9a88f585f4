"""Layer maps: hierarchical outlines rendered as styled spreadsheet grids."""

from layermap.models.node import LayerMap, Node, Template
from layermap.protocols import MapStoreProtocol
from layermap.session import LayerMapSession
from layermap.storage import MapStore

__all__ = ["LayerMap", "LayerMapSession", "MapStore", "MapStoreProtocol", "Node", "Template"]
