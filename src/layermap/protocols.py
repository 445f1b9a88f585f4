"""Protocols for dependency injection in the editing surfaces."""

from typing import Protocol, runtime_checkable

from layermap.models.node import LayerMap


@runtime_checkable
class MapStoreProtocol(Protocol):
    """Protocol for map list persistence used by the CLI and MCP server."""

    def load(self) -> list[LayerMap]:
        """Return every saved map (empty when nothing is stored)."""
        ...

    def save(self, maps: list[LayerMap] | tuple[LayerMap, ...]) -> bool:
        """Persist the full map list; return whether anything changed."""
        ...
