"""Timer-driven poll cycle: fetch, normalize, build, store, publish."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from biosync.context import AppContext
from biosync.ingestion.device import AttendanceDevice
from biosync.ingestion.normalize import normalize_logs
from biosync.ingestion.payload import build_payload, local_now
from biosync.models.attendance import AttendancePayload

_logger = logging.getLogger(__name__)


class PollerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class Poller:
    """Runs poll cycles once at start and then every ``poll_interval`` seconds.

    Ticks are scheduled on a fixed cadence regardless of how long a cycle
    takes.  A tick that fires while the previous cycle is still running
    is skipped, so there is never more than one writer to the store.
    """

    def __init__(
        self,
        context: AppContext,
        device: AttendanceDevice,
        *,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._context = context
        self._device = device
        self._clock = clock
        self._state = PollerState.IDLE
        self._schedule_task: asyncio.Task[None] | None = None
        self._cycle_tasks: set[asyncio.Task[bool]] = set()
        self._skipped = 0

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def skipped_ticks(self) -> int:
        """Ticks dropped because a cycle was already running."""
        return self._skipped

    async def tick(self) -> bool:
        """Run one cycle unless one is in flight.

        Returns ``True`` when a new snapshot was stored.
        """
        if self._state is PollerState.RUNNING:
            self._skipped += 1
            _logger.warning("Previous poll cycle still running; skipping tick")
            return False
        self._state = PollerState.RUNNING
        try:
            return await self._run_cycle()
        finally:
            self._state = PollerState.IDLE

    async def _run_cycle(self) -> bool:
        context = self._context
        try:
            raw_logs = await self._device.fetch_attendance_logs()
            records = normalize_logs(raw_logs)
            payload = build_payload(context.device_details, context.users, records, now=self._clock())
        except Exception:
            _logger.warning("Poll cycle failed; keeping previous snapshot", exc_info=True)
            return False

        context.store.replace(payload)
        await self._publish(payload)
        return True

    async def _publish(self, payload: AttendancePayload) -> None:
        context = self._context
        try:
            await context.broker.publish(context.channel, payload.encode())
        except Exception:
            _logger.warning("Publish on channel=%s failed", context.channel, exc_info=True)
            return
        _logger.info(
            "Published snapshot users=%d logs=%d via %s broker",
            len(payload.users),
            len(payload.logs),
            context.broker_kind,
        )

    async def start(self) -> None:
        """Run the first cycle now, then keep ticking in the background."""
        if self._schedule_task is not None:
            return
        await self.tick()
        self._schedule_task = asyncio.create_task(self._schedule())

    async def _schedule(self) -> None:
        interval = self._context.config.poll_interval
        while True:
            await asyncio.sleep(interval)
            task = asyncio.create_task(self.tick())
            self._cycle_tasks.add(task)
            task.add_done_callback(self._cycle_tasks.discard)

    async def stop(self) -> None:
        """Stop scheduling and wait for an in-flight cycle to finish."""
        task = self._schedule_task
        self._schedule_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)
