"""Plain CSV rendering of a grid."""

import csv
import io
from datetime import datetime

from layermap.models.node import Grid, Template


def encode_csv(
    grid: Grid,
    map_name: str,
    template: Template | str,
    *,
    exported_at: datetime | None = None,
) -> str:
    """Metadata lines, a blank line, then one CSV record per grid row.

    Fields with commas, quotes or newlines are quoted and embedded quotes are
    doubled, so any CSV reader gets the titles back unchanged.
    """
    template = Template(template)
    exported_at = exported_at or datetime.now().astimezone()

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(["LayerMap Export"])
    writer.writerow(["Map Name:", map_name])
    writer.writerow(["Template:", template.value])
    writer.writerow(["Export Date:", exported_at.isoformat(timespec="seconds")])
    writer.writerow([])
    writer.writerows(grid.rows)
    return out.getvalue()
