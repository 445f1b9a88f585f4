"""Exceptions raised by the layer map engine and exporters."""


class LayerMapError(Exception):
    """Base class for all layermap errors."""


class NodeNotFoundError(LayerMapError, LookupError):
    """An operation referenced a node id that is not in the current map."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node {node_id!r} not found")
        self.node_id = node_id


class MapNotFoundError(LayerMapError, LookupError):
    """An operation referenced a map id that is not in the map list."""

    def __init__(self, map_id: str) -> None:
        super().__init__(f"Map {map_id!r} not found")
        self.map_id = map_id


class NoCurrentMapError(LayerMapError):
    """A node operation was requested while no map is loaded."""

    def __init__(self) -> None:
        super().__init__("No map is currently loaded")


class ExportError(LayerMapError):
    """Building or saving an export artifact failed."""

    def __init__(self, cause: str | Exception) -> None:
        super().__init__(f"export failed: {cause}")
        self.cause = cause


class InvalidMoveError(LayerMapError, ValueError):
    """A move would place a node inside its own subtree."""

    def __init__(self, node_id: str, target_id: str) -> None:
        super().__init__(f"Cannot move node {node_id!r} under its own descendant {target_id!r}")
        self.node_id = node_id
        self.target_id = target_id


class ExportCancelledError(ExportError):
    """The caller gave up on an export before the file was put in place."""

    def __init__(self, map_id: str) -> None:
        super().__init__(f"map {map_id!r} export was cancelled")
        self.map_id = map_id
