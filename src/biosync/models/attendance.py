"""Attendance snapshot models."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from biosync.models._base import DeviceRecordModel, RecordTime


class UserRecord(DeviceRecordModel):
    """A user enrolled on the terminal.

    Parameters
    ----------
    user_id : int
        Unique user identifier (``userId`` / ``user_id`` / ``uid``).
    name : str
        Display name.
    role : int
        Role or privilege level.
    """

    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId", "uid"))
    name: str = ""
    role: int = Field(default=0, validation_alias=AliasChoices("role", "privilege"))


class RawAttendanceRecord(DeviceRecordModel):
    """A punch record as the terminal reports it."""

    sn: int = Field(default=0, validation_alias=AliasChoices("sn", "uid"))
    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId"))
    record_time: RecordTime = Field(validation_alias=AliasChoices("record_time", "recordTime", "timestamp"))
    type: int = Field(default=0, validation_alias=AliasChoices("type", "punch"))
    state: int = Field(default=0, validation_alias=AliasChoices("state", "status"))


class AttendanceLog(BaseModel):
    """A punch record enriched with the employee name."""

    model_config = ConfigDict(frozen=True)

    sn: int
    employee_id: int
    name: str
    record_time: datetime
    type: int
    state: int


class DeviceInfo(BaseModel):
    """Capacity counters reported by the terminal.

    Keys stay camelCase on the wire (``userCounts``); unknown keys the
    terminal adds are passed through untouched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    user_counts: int = 0
    log_counts: int = 0
    log_capacity: int = 0


class DeviceDetails(BaseModel):
    """Terminal metadata captured once at startup.

    ``DeviceDetails()`` is the all-default record used when the terminal
    cannot be queried: zero counters and empty strings.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    info: DeviceInfo = Field(default_factory=DeviceInfo)
    attendance_size: int = 0
    pin: str = ""
    current_time: str = ""
    serial_number: str = ""
    face_on: str = ""
    ssr: str = ""
    firmware: str = ""
    device_name: str = ""
    platform: str = ""
    os: str = ""
    vendor: str = ""
    product_time: str = ""
    mac_address: str = ""


class AttendancePayload(BaseModel):
    """The snapshot sent to pull clients and realtime subscribers.

    Parameters
    ----------
    timestamp : int
        Construction time in epoch milliseconds.
    device_details : DeviceDetails
        Terminal metadata.
    users : tuple of UserRecord
        Users, unique by ``user_id``.
    logs : tuple of AttendanceLog
        Current-year punch records up to construction time.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int
    device_details: DeviceDetails = Field(default_factory=DeviceDetails)
    users: tuple[UserRecord, ...] = ()
    logs: tuple[AttendanceLog, ...] = ()

    def to_json(self) -> str:
        """Serialize to JSON text (``info`` keeps the terminal's camelCase keys)."""
        return self.model_dump_json(by_alias=True)

    def encode(self) -> bytes:
        """Serialize for the broker and the realtime transport."""
        return self.to_json().encode("utf-8")

    @classmethod
    def decode(cls, data: bytes | str) -> AttendancePayload:
        """Inverse of :meth:`encode`."""
        return cls.model_validate_json(data)
