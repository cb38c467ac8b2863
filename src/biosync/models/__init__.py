"""Data models for terminal records and attendance snapshots."""

from biosync.models._base import DeviceRecordModel, RecordTime, parse_record_time
from biosync.models.attendance import (
    AttendanceLog,
    AttendancePayload,
    DeviceDetails,
    DeviceInfo,
    RawAttendanceRecord,
    UserRecord,
)

__all__ = [
    "AttendanceLog",
    "AttendancePayload",
    "DeviceDetails",
    "DeviceInfo",
    "DeviceRecordModel",
    "RawAttendanceRecord",
    "RecordTime",
    "UserRecord",
    "parse_record_time",
]
