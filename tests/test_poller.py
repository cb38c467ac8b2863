from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Callable
from datetime import datetime

import pytest
from conftest import FakeDevice, wait_for

from biosync.context import AppContext
from biosync.models.attendance import AttendancePayload
from biosync.poller import Poller, PollerState


class _FailingBroker:
    """Local-looking broker whose publish always fails."""

    def __init__(self, inner: object) -> None:
        self._inner = inner

    def __getattr__(self, name: str) -> object:
        return getattr(self._inner, name)

    async def publish(self, channel: str, data: bytes) -> None:
        raise ConnectionError("broker went away")


@pytest.mark.asyncio
async def test_tick_stores_and_publishes(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    received: list[bytes] = []
    context.broker.subscribe(context.channel, received.append)
    poller = Poller(context, device, clock=clock)

    assert await poller.tick() is True

    payload = context.store.get()
    assert payload is not None
    assert [(log.employee_id, log.name) for log in payload.logs] == [(2, "Bob")]
    assert payload.device_details.serial_number == "SN-1"
    assert received == [payload.encode()]
    assert AttendancePayload.decode(received[0]) == payload
    assert poller.state is PollerState.IDLE


@pytest.mark.asyncio
async def test_failed_fetch_keeps_previous_snapshot(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    received: list[bytes] = []
    context.broker.subscribe(context.channel, received.append)
    poller = Poller(context, device, clock=clock)
    await poller.tick()
    previous = context.store.get()

    device.fail_logs = TimeoutError("device timed out")
    assert await poller.tick() is False

    assert context.store.get() is previous
    assert len(received) == 1
    assert poller.state is PollerState.IDLE


@pytest.mark.asyncio
async def test_malformed_log_record_is_dropped_every_cycle(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    device.logs = [
        {"sn": 10, "user_id": 2, "record_time": "2026-03-02T08:00:00+00:00", "type": 1, "state": 0},
        {"sn": 11, "user_id": 2, "record_time": ""},
    ]
    received: list[bytes] = []
    context.broker.subscribe(context.channel, received.append)
    poller = Poller(context, device, clock=clock)

    assert [await poller.tick() for _ in range(3)] == [True, True, True]

    payload = context.store.get()
    assert payload is not None
    assert [log.sn for log in payload.logs] == [10]
    assert context.store.version == 3
    assert len(received) == 3


@pytest.mark.asyncio
async def test_unrecognized_log_shape_yields_empty_logs(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    device.logs = "garbage"
    poller = Poller(context, device, clock=clock)

    assert await poller.tick() is True
    payload = context.store.get()
    assert payload is not None
    assert payload.logs == ()


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    device.gate = asyncio.Event()
    poller = Poller(context, device, clock=clock)

    first = asyncio.create_task(poller.tick())
    await wait_for(lambda: poller.state is PollerState.RUNNING)

    assert await poller.tick() is False
    assert poller.skipped_ticks == 1
    assert device.log_calls == 1

    device.gate.set()
    assert await first is True
    assert context.store.version == 1


@pytest.mark.asyncio
async def test_publish_failure_still_updates_store(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    context.broker = _FailingBroker(context.broker)  # type: ignore[assignment]
    poller = Poller(context, device, clock=clock)

    assert await poller.tick() is True
    assert context.store.get() is not None


@pytest.mark.asyncio
async def test_start_runs_immediately_then_on_interval(
    context: AppContext, device: FakeDevice, clock: Callable[[], datetime]
) -> None:
    context.config = dataclasses.replace(context.config, poll_interval=0.02)
    poller = Poller(context, device, clock=clock)

    await poller.start()
    assert device.log_calls == 1
    assert context.store.version == 1

    await wait_for(lambda: context.store.version >= 3)
    await poller.stop()

    calls = device.log_calls
    await asyncio.sleep(0.05)
    assert device.log_calls == calls
