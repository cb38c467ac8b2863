"""Service assembly: startup fetches, broker selection, poller and HTTP server."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from biosync.config import BioSyncConfig
from biosync.context import AppContext, select_broker
from biosync.exceptions import BioSyncDeviceError
from biosync.ingestion.device import AttendanceDevice, fetch_device_details, fetch_users
from biosync.poller import Poller
from biosync.server import create_app

_logger = logging.getLogger(__name__)


async def build_context(config: BioSyncConfig, device: AttendanceDevice) -> AppContext:
    """Connect the terminal, capture its metadata and users, pick a broker.

    Device metadata failures fall back to defaults.  Connect and user-list
    failures propagate and abort startup.
    """
    try:
        await device.connect()
    except Exception as exc:
        raise BioSyncDeviceError(f"Device connect failed: {exc}", operation="connect") from exc
    device_details = await fetch_device_details(device)
    users = await fetch_users(device)
    broker = await select_broker(config)
    return AppContext(
        config=config,
        broker=broker,
        device_details=device_details,
        users=tuple(users),
    )


async def serve(
    config: BioSyncConfig,
    device: AttendanceDevice,
    *,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run the relay until *stop_event* is set (or forever)."""
    _logger.info("Starting with %r", config)
    context = await build_context(config, device)
    poller = Poller(context, device)
    runner = web.AppRunner(create_app(context))
    try:
        await poller.start()
        await runner.setup()
        site = web.TCPSite(runner, config.server_host, config.server_port)
        await site.start()
        _logger.info("Server listening on %s:%s", config.server_host, config.server_port)

        await (stop_event or asyncio.Event()).wait()
    finally:
        await poller.stop()
        await runner.cleanup()
        await context.broker.close()
        try:
            await device.disconnect()
        except Exception:
            _logger.debug("Device disconnect failed", exc_info=True)
