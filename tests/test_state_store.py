from __future__ import annotations

from biosync.models.attendance import AttendancePayload
from biosync.state.store import SnapshotStore


def test_store_is_empty_before_first_replace() -> None:
    store = SnapshotStore()

    assert store.get() is None
    assert store.is_empty
    assert store.version == 0


def test_replace_swaps_whole_payload() -> None:
    store = SnapshotStore()
    first = AttendancePayload(timestamp=1)
    second = AttendancePayload(timestamp=2)

    store.replace(first)
    held = store.get()
    store.replace(second)

    assert held is first
    assert held.timestamp == 1
    assert store.get() is second
    assert store.version == 2
    assert not store.is_empty
