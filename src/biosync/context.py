"""Application context and one-time broker selection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from biosync._mqtt import MqttBroker
from biosync.broker import Broker, BrokerKind, LocalBroker
from biosync.config import BioSyncConfig
from biosync.models.attendance import DeviceDetails, UserRecord
from biosync.state.store import SnapshotStore

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    """Everything the poller and the HTTP surfaces share.

    ``device_details`` and ``users`` are captured once at startup and
    reused by every poll cycle.
    """

    config: BioSyncConfig
    broker: Broker
    store: SnapshotStore = field(default_factory=SnapshotStore)
    device_details: DeviceDetails = field(default_factory=DeviceDetails)
    users: tuple[UserRecord, ...] = ()

    @property
    def channel(self) -> str:
        return self.config.broker_channel

    @property
    def broker_kind(self) -> BrokerKind:
        return self.broker.kind


async def select_broker(config: BioSyncConfig, *, loop: asyncio.AbstractEventLoop | None = None) -> Broker:
    """Connect the MQTT broker, or fall back to the in-process bus for good.

    Never raises: any connect failure selects :class:`LocalBroker` for the
    rest of the process lifetime.
    """
    if not config.broker_enabled:
        _logger.info("Networked broker disabled; using in-process bus")
        return LocalBroker()

    broker = MqttBroker.from_config(config, loop=loop or asyncio.get_running_loop())
    try:
        await broker.connect()
    except Exception:
        _logger.warning(
            "MQTT broker %s:%s unavailable, using in-process bus fallback",
            config.broker_host,
            config.broker_port,
            exc_info=True,
        )
        await broker.close()
        return LocalBroker()

    _logger.info("Connected to MQTT broker %s:%s", config.broker_host, config.broker_port)
    return broker
