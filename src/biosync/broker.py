"""Publish/subscribe abstraction.

Two variants share one interface: the networked MQTT broker
(:class:`biosync._mqtt.MqttBroker`) and the in-process
:class:`LocalBroker`.  Which one is live is decided once at startup and
recorded in :attr:`Broker.kind`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], None]


class BrokerKind(StrEnum):
    NETWORKED = "networked"
    LOCAL = "local"


class Broker(Protocol):
    """Structural interface both broker variants implement.

    Handlers are always invoked on the event loop thread, once per
    publish, in publish order.
    """

    @property
    def kind(self) -> BrokerKind:
        ...

    async def publish(self, channel: str, data: bytes) -> None:
        ...

    def subscribe(self, channel: str, handler: MessageHandler) -> None:
        ...

    def unsubscribe(self, channel: str, handler: MessageHandler) -> None:
        ...

    def subscriber_count(self, channel: str) -> int:
        ...

    async def close(self) -> None:
        ...


class SubscriberRegistry:
    """Per-channel handler lists.

    Only touched from the event loop thread.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[MessageHandler]] = {}

    def add(self, channel: str, handler: MessageHandler) -> bool:
        """Register *handler*; return ``True`` if it is the channel's first."""
        handlers = self._handlers.setdefault(channel, [])
        handlers.append(handler)
        return len(handlers) == 1

    def remove(self, channel: str, handler: MessageHandler) -> bool:
        """Deregister *handler*; return ``True`` if the channel is now empty.

        Removing an unknown handler is a no-op and returns ``False``.
        """
        handlers = self._handlers.get(channel)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if handlers:
            return False
        self._handlers.pop(channel, None)
        return True

    def count(self, channel: str) -> int:
        return len(self._handlers.get(channel, ()))

    def channels(self) -> list[str]:
        return list(self._handlers)

    def dispatch(self, channel: str, data: bytes) -> int:
        """Invoke every handler of *channel*; return how many were called.

        Iterates over a copy so handlers may unsubscribe while being called.
        A failing handler is logged and does not stop delivery to the rest.
        """
        handlers = list(self._handlers.get(channel, ()))
        for handler in handlers:
            try:
                handler(data)
            except Exception:
                _logger.warning("Subscriber handler failed channel=%s", channel, exc_info=True)
        return len(handlers)

    def clear(self) -> None:
        self._handlers.clear()


class LocalBroker:
    """In-process bus; delivery is synchronous within :meth:`publish`."""

    def __init__(self) -> None:
        self._registry = SubscriberRegistry()

    @property
    def kind(self) -> BrokerKind:
        return BrokerKind.LOCAL

    async def publish(self, channel: str, data: bytes) -> None:
        delivered = self._registry.dispatch(channel, data)
        _logger.debug("Local publish channel=%s bytes=%d subscribers=%d", channel, len(data), delivered)

    def subscribe(self, channel: str, handler: MessageHandler) -> None:
        self._registry.add(channel, handler)

    def unsubscribe(self, channel: str, handler: MessageHandler) -> None:
        self._registry.remove(channel, handler)

    def subscriber_count(self, channel: str) -> int:
        return self._registry.count(channel)

    async def close(self) -> None:
        self._registry.clear()
