"""Snapshot assembly: year-window filtering and name resolution."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from dateutil import tz

from biosync._constants import UNKNOWN_USER_NAME
from biosync.models.attendance import (
    AttendanceLog,
    AttendancePayload,
    DeviceDetails,
    RawAttendanceRecord,
    UserRecord,
)


def local_now() -> datetime:
    """Current time in the host's zone.

    The attached ``tzlocal`` resolves offsets per instant, so dates derived
    from it (January 1, naive device times) get their own DST offset.
    """
    return datetime.now(tz.tzlocal())


def start_of_year(now: datetime) -> datetime:
    """Local midnight on January 1 of *now*'s year, in *now*'s zone."""
    return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def _aware(value: datetime, now: datetime) -> datetime:
    # Terminals report wall-clock time; naive values share now's zone.
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value


def filter_current_year(records: Iterable[RawAttendanceRecord], now: datetime) -> list[RawAttendanceRecord]:
    """Keep records with ``start_of_year(now) <= record_time <= now``."""
    lower = start_of_year(now)
    return [record for record in records if lower <= _aware(record.record_time, now) <= now]


def resolve_logs(records: Iterable[RawAttendanceRecord], users: Iterable[UserRecord]) -> list[AttendanceLog]:
    """Attach the employee name to each record (``"Unknown"`` when unmatched)."""
    names = {user.user_id: user.name for user in users}
    return [
        AttendanceLog(
            sn=record.sn,
            employee_id=record.user_id,
            name=names.get(record.user_id, UNKNOWN_USER_NAME),
            record_time=record.record_time,
            type=record.type,
            state=record.state,
        )
        for record in records
    ]


def build_payload(
    device_details: DeviceDetails,
    users: Iterable[UserRecord],
    records: Iterable[RawAttendanceRecord],
    *,
    now: datetime | None = None,
) -> AttendancePayload:
    """Build an immutable snapshot stamped with *now*.

    Parameters
    ----------
    device_details
        Terminal metadata captured at startup.
    users
        Canonical users, unique by id.
    records
        Canonical punch records, unfiltered.
    now
        Aware construction time.  Defaults to :func:`local_now`.
    """
    if now is None:
        now = local_now()
    user_list = tuple(users)
    logs = resolve_logs(filter_current_year(records, now), user_list)
    return AttendancePayload(
        timestamp=int(now.timestamp() * 1000),
        device_details=device_details,
        users=user_list,
        logs=tuple(logs),
    )
