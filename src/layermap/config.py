"""Configuration constants for layermap."""

import os
from pathlib import Path

# Directory with saved maps. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/layermap").expanduser(),
    Path("~/.layermap").expanduser(),
    Path("~/.config/layermap").expanduser(),
]

# Overrides DATA_DIRECTORIES when set.
DATA_DIR_ENV: str = "LAYERMAP_DATA_DIR"

# Name of the map list file inside the data directory.
MAPS_FILENAME: str = "layer-maps.json"

# Palette depth; deeper levels reuse the last entry.
MAX_PALETTE_LEVEL: int = 4

# Title given to nodes added without one.
DEFAULT_NODE_TITLE: str = "新しいノード"

# Undo snapshots kept per session.
HISTORY_LIMIT: int = 100

# Grid shape.
GRID_COLUMNS: int = 15
MIN_GRID_ROWS: int = 15

# Tabular templates (wbs, content-calendar) place levels 0-2 in the first three
# columns and keep five metadata columns after them.
TABULAR_MAX_LEVEL: int = 2
TABULAR_HEADER: tuple[str, ...] = (
    "親タスク",
    "子タスク",
    "孫タスク",
    "担当者名",
    "開始日",
    "終了日",
    "ステータス",
    "進捗率",
)

# Spreadsheet export.
EXPORT_FONT: str = "Meiryo"
EXPORT_COLUMN_WIDTH: int = 18
EXPORT_SHEET_TITLE: str = "LayerMap"
EXPORT_INFO_SHEET_TITLE: str = "Information"


def resolve_data_directory() -> Path:
    """Return the data directory: env override, then first existing candidate.

    Falls back to the first candidate when none exists yet.
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
