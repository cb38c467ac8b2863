from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from biosync.broker import LocalBroker
from biosync.config import BioSyncConfig
from biosync.context import AppContext
from biosync.models.attendance import DeviceDetails, UserRecord

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


class FakeDevice:
    """In-memory terminal; every call can be made to fail or block."""

    def __init__(
        self,
        *,
        users: Any = None,
        logs: Any = None,
        info: Any = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.users = users if users is not None else []
        self.logs = logs if logs is not None else []
        self.info = info if info is not None else {"userCounts": 2, "logCounts": 5, "logCapacity": 100000}
        self.attributes = attributes or {}
        self.fail_connect: Exception | None = None
        self.fail_info: Exception | None = None
        self.fail_users: Exception | None = None
        self.fail_logs: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.connected = False
        self.log_calls = 0

    async def connect(self) -> None:
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def fetch_info(self) -> Any:
        if self.fail_info is not None:
            raise self.fail_info
        return self.info

    async def fetch_attribute(self, name: str) -> str | int:
        return self.attributes.get(name, "")

    async def fetch_users(self) -> Any:
        if self.fail_users is not None:
            raise self.fail_users
        return self.users

    async def fetch_attendance_logs(self) -> Any:
        self.log_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_logs is not None:
            raise self.fail_logs
        return self.logs


USERS_RAW = [
    {"userId": 1, "name": "Alice", "role": 0},
    {"userId": 2, "name": "Bob", "role": 0},
]

LOGS_RAW = [
    {"sn": 10, "user_id": 2, "record_time": "2026-03-02T08:00:00+00:00", "type": 1, "state": 0},
    {"sn": 11, "user_id": 2, "record_time": "2023-03-02T08:00:00+00:00", "type": 1, "state": 0},
]


@pytest.fixture
def config() -> BioSyncConfig:
    return BioSyncConfig(broker_enabled=False, client_origin="http://localhost:3000")


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice(users=USERS_RAW, logs=LOGS_RAW)


@pytest.fixture
def context(config: BioSyncConfig) -> AppContext:
    return AppContext(
        config=config,
        broker=LocalBroker(),
        device_details=DeviceDetails(serial_number="SN-1"),
        users=(
            UserRecord(user_id=1, name="Alice", role=0),
            UserRecord(user_id=2, name="Bob", role=0),
        ),
    )


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until *predicate* holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)
