"""File-backed map list storage."""

import os
import tempfile
from pathlib import Path

from loguru import logger

from layermap.config import MAPS_FILENAME
from layermap.models.node import LayerMap
from layermap.serialization import dumps_maps, loads_maps


class MapStore:
    """Keep the whole map list in one JSON file inside ``data_dir``.

    - Saving identical content does not touch the file.
    - Writes go to a temp file first and are renamed into place, so a crash
      never leaves a half-written list.
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        dry_run: bool = False,
        filename: str = MAPS_FILENAME,
    ) -> None:
        self.data_dir = Path(data_dir).expanduser().resolve()
        self.dry_run = dry_run

        self.path = (self.data_dir / filename).resolve()
        if self.path.parent != self.data_dir:
            msg = f"Path escapes data dir: {str(self.path)!r}"
            raise ValueError(msg)

        logger.debug("Map store ready, path {!r}, dry_run {!r}", str(self.path), dry_run)
        # Counters for the last save(), used in log output and tests.
        self.num_written = 0
        self.num_skipped = 0

    def load(self) -> list[LayerMap]:
        """Read all maps. A missing file means no maps yet."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No map file at {}", self.path)
            return []
        maps = loads_maps(text)
        logger.debug("Loaded {} map(s) from {}", len(maps), self.path)
        return maps

    def save(self, maps: list[LayerMap] | tuple[LayerMap, ...]) -> bool:
        """Write the map list. Returns True when the file changed (or would)."""
        contents = dumps_maps(maps)
        try:
            if self.path.read_text(encoding="utf-8") == contents:
                self.num_skipped += 1
                logger.debug("Map file unchanged, not writing")
                return False
            action = "update"
        except (FileNotFoundError, UnicodeDecodeError):
            action = "create"

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, str(self.path))
            return True

        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".maps-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.num_written += 1
        logger.debug("Wrote ({}) {} map(s) to {!r}", action, len(maps), str(self.path))
        return True
