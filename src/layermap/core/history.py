"""Linear snapshot history for undo/redo."""

from layermap.config import HISTORY_LIMIT
from layermap.models.node import LayerMap


class History:
    """Whole-map snapshots plus a cursor.

    Pushing after an undo discards every snapshot past the cursor. When the
    stack grows beyond ``max_size`` the oldest snapshot is dropped.
    """

    def __init__(self, max_size: int = HISTORY_LIMIT) -> None:
        if max_size < 1:
            msg = f"max_size must be positive, got {max_size!r}"
            raise ValueError(msg)
        self.max_size = max_size
        self._snapshots: list[LayerMap] = []
        self._index = -1

    @property
    def index(self) -> int:
        return self._index

    @property
    def snapshots(self) -> tuple[LayerMap, ...]:
        return tuple(self._snapshots)

    @property
    def current(self) -> LayerMap | None:
        if self._index < 0:
            return None
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def reset(self, snapshot: LayerMap | None = None) -> None:
        """Start over with a single snapshot, or empty."""
        self._snapshots = [snapshot] if snapshot is not None else []
        self._index = len(self._snapshots) - 1

    def push(self, snapshot: LayerMap) -> None:
        """Append a snapshot after the cursor, truncating any redo tail."""
        del self._snapshots[self._index + 1 :]
        self._snapshots.append(snapshot)
        while len(self._snapshots) > self.max_size:
            self._snapshots.pop(0)
        self._index = len(self._snapshots) - 1

    def undo(self) -> LayerMap | None:
        """Step back; None when already at the oldest snapshot."""
        if not self.can_undo:
            return None
        self._index -= 1
        return self._snapshots[self._index]

    def redo(self) -> LayerMap | None:
        """Step forward; None when already at the newest snapshot."""
        if not self.can_redo:
            return None
        self._index += 1
        return self._snapshots[self._index]

    def __len__(self) -> int:
        return len(self._snapshots)