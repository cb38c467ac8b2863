"""In-memory snapshot store.

Single writer (the poller), many readers.  Replacement is a reference
swap, so readers always see either the old or the new payload.
"""

from __future__ import annotations

from biosync.models.attendance import AttendancePayload


class SnapshotStore:
    """Holds the current :class:`AttendancePayload`, or ``None`` before the first cycle."""

    def __init__(self) -> None:
        self._current: AttendancePayload | None = None
        self._version = 0

    def get(self) -> AttendancePayload | None:
        return self._current

    def replace(self, payload: AttendancePayload) -> None:
        """Make *payload* current; the previous one is simply dropped."""
        self._current = payload
        self._version += 1

    @property
    def version(self) -> int:
        """Number of replacements since start."""
        return self._version

    @property
    def is_empty(self) -> bool:
        return self._current is None
