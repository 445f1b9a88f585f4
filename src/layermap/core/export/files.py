"""Write export artifacts to disk without leaving partial files."""

import asyncio
import os
import re
import tempfile
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path

from loguru import logger

from layermap.core.export.delimited import encode_csv
from layermap.core.export.spreadsheet import encode_spreadsheet
from layermap.core.grid.preview import preview_map
from layermap.errors import ExportCancelledError, ExportError
from layermap.models.node import LayerMap, Template

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class ExportFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"


def export_filename(
    map_name: str,
    template: Template | str,
    extension: str,
    timestamp: datetime,
) -> str:
    """``{map}_{template}_{YYYY-MM-DDTHH-MM-SS}.{ext}``, safe as a bare filename."""
    safe_name = _UNSAFE_CHARS.sub("", map_name).strip(" .") or "layermap"
    return f"{safe_name}_{Template(template).value}_{timestamp:%Y-%m-%dT%H-%M-%S}.{extension}"


def encode_map(
    layer_map: LayerMap, fmt: ExportFormat | str, *, exported_at: datetime | None = None
) -> bytes:
    preview = preview_map(layer_map)
    if ExportFormat(fmt) is ExportFormat.XLSX:
        return encode_spreadsheet(
            preview.grid,
            preview.styles,
            layer_map.name,
            layer_map.template,
            exported_at=exported_at,
        )
    text = encode_csv(preview.grid, layer_map.name, layer_map.template, exported_at=exported_at)
    return text.encode("utf-8")


def export_map(
    layer_map: LayerMap,
    out_dir: str | Path,
    fmt: ExportFormat | str = ExportFormat.XLSX,
    *,
    exported_at: datetime | None = None,
    cancel: threading.Event | None = None,
) -> Path:
    """Encode a map and write it into ``out_dir``; returns the written path.

    The file appears complete or not at all. Any failure, from encoding to
    the final rename, is raised as ExportError. Once ``cancel`` is set the
    target is never written and ExportCancelledError is raised.
    """
    exported_at = exported_at or datetime.now().astimezone()
    tmp_name: str | None = None
    try:
        fmt = ExportFormat(fmt)
        out_dir = Path(out_dir)
        target = out_dir / export_filename(
            layer_map.name, layer_map.template, fmt.value, exported_at
        )
        payload = encode_map(layer_map, fmt, exported_at=exported_at)

        fd, tmp_name = tempfile.mkstemp(dir=out_dir, prefix=".export-", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        if cancel is not None and cancel.is_set():
            raise ExportCancelledError(layer_map.id)
        os.replace(tmp_name, target)
        tmp_name = None
    except ExportCancelledError:
        logger.info("Export of map {} cancelled", layer_map.id)
        raise
    except Exception as e:
        logger.exception("Export of map {} failed", layer_map.id)
        raise ExportError(e) from e
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)

    logger.info("Exported {!r} to {}", layer_map.name, target)
    return target


async def export_map_async(
    layer_map: LayerMap,
    out_dir: str | Path,
    fmt: ExportFormat | str = ExportFormat.XLSX,
    *,
    exported_at: datetime | None = None,
) -> Path:
    """Run export_map in a worker thread as one awaitable unit.

    Cancelling the awaiting task stops the worker from putting the file in
    place, even though the thread itself runs on until it checks.
    """
    cancel = threading.Event()
    try:
        return await asyncio.to_thread(
            export_map, layer_map, out_dir, fmt, exported_at=exported_at, cancel=cancel
        )
    except asyncio.CancelledError:
        cancel.set()
        raise
