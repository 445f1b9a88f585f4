"""Domain models for layer maps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Template(str, Enum):
    """Map template; selects palette, default nodes and grid mode."""

    SITEMAP = "sitemap"
    WBS = "wbs"
    CONTENT_CALENDAR = "content-calendar"
    CUSTOM = "custom"

    @property
    def is_tabular(self) -> bool:
        """Tabular templates render parent/child/grandchild plus metadata columns."""
        return self in (Template.WBS, Template.CONTENT_CALENDAR)


@dataclass(frozen=True)
class Node:
    """A single titled, colored node in a layer map tree."""

    id: str
    title: str
    background_color: str
    notes: str = ""
    children: tuple["Node", ...] = ()
    parent_id: str | None = None
    order: int = 0
    level: int = 0
    color_overridden: bool = False


@dataclass(frozen=True)
class LayerMap:
    """A named tree of nodes with a template."""

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    root_nodes: tuple[Node, ...]
    template: Template


@dataclass(frozen=True)
class FlatNode:
    """A node placed on a grid row."""

    node: Node
    level: int
    row_index: int
    parent_row_index: int | None = None
    last_child_row_index: int = 0


@dataclass(frozen=True)
class CellBorders:
    """Border weight per side: None, "thin" or "medium"."""

    top: str | None = None
    left: str | None = None
    bottom: str | None = None
    right: str | None = None

    def is_empty(self) -> bool:
        return not (self.top or self.left or self.bottom or self.right)


@dataclass(frozen=True)
class CellStyle:
    """Computed style of one grid cell.

    ``background_color`` is ``#RRGGBBAA`` with the display opacity baked in.
    """

    background_color: str | None = None
    borders: CellBorders = field(default_factory=CellBorders)


@dataclass(frozen=True)
class Grid:
    """Spreadsheet-like rendering of a tree."""

    template: Template
    rows: tuple[tuple[str, ...], ...]
    flat_nodes: tuple[FlatNode, ...]
    header_rows: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0


class LevelChangeStatus(str, Enum):
    """Outcome of a promote/demote request."""

    PROMOTED = "promoted"
    DEMOTED = "demoted"
    ALREADY_ROOT = "already_root"
    NO_PREVIOUS_SIBLING = "no_previous_sibling"


@dataclass(frozen=True)
class LevelChange:
    """Result of a level change; ``changed`` is False for the refused cases."""

    status: LevelChangeStatus
    node_id: str
    message: str

    @property
    def changed(self) -> bool:
        return self.status in (LevelChangeStatus.PROMOTED, LevelChangeStatus.DEMOTED)
