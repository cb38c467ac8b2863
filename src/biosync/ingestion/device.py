"""Attendance terminal interface and startup fetches."""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Callable
from typing import Any, Protocol

from biosync._constants import DEVICE_ATTRIBUTES
from biosync.config import BioSyncConfig
from biosync.exceptions import BioSyncConfigError, BioSyncDeviceError
from biosync.ingestion.normalize import normalize_users
from biosync.models.attendance import DeviceDetails, DeviceInfo, UserRecord

_logger = logging.getLogger(__name__)


class AttendanceDevice(Protocol):
    """Structural interface of a terminal driver.

    Every call may fail and may suspend.  List-valued calls return a
    sequence, a ``{"data": [...]}`` envelope or a keyed mapping.
    """

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    async def fetch_info(self) -> Any:
        ...

    async def fetch_attribute(self, name: str) -> str | int:
        ...

    async def fetch_users(self) -> Any:
        ...

    async def fetch_attendance_logs(self) -> Any:
        ...


DeviceFactory = Callable[[BioSyncConfig], AttendanceDevice]


def load_device_factory(path: str) -> DeviceFactory:
    """Import a ``"package.module:callable"`` device factory."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise BioSyncConfigError(f"device_factory must look like 'module:callable', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise BioSyncConfigError(f"Cannot import device factory module {module_name!r}") from exc
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise BioSyncConfigError(f"Device factory {path!r} is not callable")
    return factory


async def fetch_device_details(device: AttendanceDevice) -> DeviceDetails:
    """Read terminal metadata, falling back to ``DeviceDetails()`` on any failure."""
    try:
        raw_info = await device.fetch_info()
        values = await asyncio.gather(*(device.fetch_attribute(name) for name in DEVICE_ATTRIBUTES))
        return DeviceDetails(
            info=DeviceInfo.model_validate(raw_info),
            **dict(zip(DEVICE_ATTRIBUTES, values, strict=True)),
        )
    except Exception:
        _logger.warning("Could not fetch some device details; using defaults", exc_info=True)
        return DeviceDetails()


async def fetch_users(device: AttendanceDevice) -> list[UserRecord]:
    """Fetch and normalize the user list.

    Failures propagate; the caller treats them as fatal at startup.
    """
    try:
        raw_users = await device.fetch_users()
    except Exception as exc:
        raise BioSyncDeviceError(f"User list fetch failed: {exc}", operation="fetch_users") from exc
    users = normalize_users(raw_users)
    _logger.info("Loaded %d users from device", len(users))
    return users
