"""Base model and timestamp coercion for device records.

Every raw device record model inherits from :class:`DeviceRecordModel`
which provides:

* ``from_attributes=True`` so driver objects (not only dicts) validate.
* ``populate_by_name=True`` so canonical snake_case names and the
  driver's aliases (``userId``, ``recordTime``) are both accepted.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000

# JavaScript ``Date.prototype.toString`` shape, e.g.
# ``Tue Oct 14 2025 08:00:00 GMT+0700 (Indochina Time)``.
_JS_DATE_FORMAT = "%a %b %d %Y %H:%M:%S GMT%z"


def parse_record_time(value: Any) -> datetime:
    """Coerce a device timestamp into a :class:`datetime`.

    Accepts datetimes, epoch numbers (seconds **or** milliseconds),
    ISO 8601 strings and JavaScript ``Date`` strings.  Naive values stay
    naive; the payload builder decides which zone they belong to.

    Raises :class:`ValueError` for anything else.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise ValueError(f"unsupported record time {value!r}")
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            pass
        # Drop the trailing "(Zone Name)" of JS date strings.
        head = text.split(" (", 1)[0]
        try:
            return datetime.strptime(head, _JS_DATE_FORMAT)
        except ValueError as exc:
            raise ValueError(f"unsupported record time {value!r}") from exc
    raise ValueError(f"unsupported record time {value!r}")


RecordTime = Annotated[datetime, BeforeValidator(parse_record_time)]
"""Annotated type accepting every timestamp shape the terminal drivers emit."""


class DeviceRecordModel(BaseModel):
    """Base for records read from the attendance terminal."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        from_attributes=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_none(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
