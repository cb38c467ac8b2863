"""Normalization helpers.

Terminal drivers return record lists in one of three shapes: a plain
sequence, a ``{"data": [...]}`` envelope, or a mapping keyed by an
arbitrary id.  Everything downstream works on the canonical list.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from biosync.exceptions import BioSyncNormalizeError
from biosync.models.attendance import RawAttendanceRecord, UserRecord

_logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)


def _as_sequence(value: Any) -> list[Any] | None:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)
    return None


def normalize_records(raw: Any) -> list[Any]:
    """Return the records held by *raw* as a list.

    Shapes are tried in order: sequence, record with a ``data`` sequence
    (key or attribute), mapping of records.  Anything else yields ``[]``.
    """
    records = _as_sequence(raw)
    if records is not None:
        return records

    data = raw.get("data") if isinstance(raw, Mapping) else getattr(raw, "data", None)
    records = _as_sequence(data)
    if records is not None:
        return records

    if isinstance(raw, Mapping):
        return list(raw.values())

    if raw is not None:
        _logger.debug("Unrecognized record container type=%s", type(raw).__name__)
    return []


def _validate_each(model: type[TModel], records: list[Any], kind: str) -> list[TModel]:
    parsed: list[TModel] = []
    for index, record in enumerate(records):
        try:
            parsed.append(model.model_validate(record))
        except ValidationError as exc:
            raise BioSyncNormalizeError(
                f"Invalid {kind} record at index {index}: {exc.error_count()} error(s)",
                kind=kind,
                index=index,
            ) from exc
    return parsed


def normalize_users(raw: Any) -> list[UserRecord]:
    """Normalize a raw user list, keeping one record per ``user_id``.

    A duplicate id overwrites the earlier record's values but keeps its
    position.
    """
    by_id: dict[int, UserRecord] = {}
    for user in _validate_each(UserRecord, normalize_records(raw), "user"):
        by_id[user.user_id] = user
    return list(by_id.values())


def normalize_logs(raw: Any) -> list[RawAttendanceRecord]:
    """Normalize a raw attendance log list.

    Records that fail validation (e.g. an unparseable ``record_time``) are
    dropped with a warning; the rest are returned in order.
    """
    parsed: list[RawAttendanceRecord] = []
    invalid: list[int] = []
    for index, record in enumerate(normalize_records(raw)):
        try:
            parsed.append(RawAttendanceRecord.model_validate(record))
        except ValidationError:
            invalid.append(index)
    if invalid:
        _logger.warning(
            "Dropped %d invalid attendance record(s) at index %s",
            len(invalid),
            invalid[:10],
        )
    return parsed
