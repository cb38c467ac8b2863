"""Networked broker backed by MQTT (paho-mqtt)."""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any, cast

import paho.mqtt.client as mqtt

from biosync.broker import BrokerKind, MessageHandler, SubscriberRegistry
from biosync.config import BioSyncConfig
from biosync.exceptions import BioSyncBrokerError


def _build_client_id() -> str:
    return f"biosync_{secrets.token_hex(6)}"


class MqttBroker:
    """Threaded paho-mqtt client that delivers messages onto an asyncio loop.

    The paho network loop runs on its own thread.  Incoming messages are
    handed to the loop with ``call_soon_threadsafe`` so handlers run on
    the loop thread in arrival order.  One MQTT subscription is held per
    channel that has at least one handler.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        keepalive: int = 60,
        connect_timeout: float = 5.0,
        client_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._keepalive = keepalive
        self._connect_timeout = connect_timeout
        self._client_id = client_id or _build_client_id()
        self._logger = logger or logging.getLogger(__name__)
        self._registry = SubscriberRegistry()
        self._client: mqtt.Client | None = None
        self._connack: asyncio.Future[int] | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: BioSyncConfig, *, loop: asyncio.AbstractEventLoop) -> MqttBroker:
        return cls(
            loop=loop,
            host=config.broker_host,
            port=config.broker_port,
            username=config.broker_username,
            password=config.broker_password,
            keepalive=config.broker_keepalive,
            connect_timeout=config.broker_connect_timeout,
        )

    @property
    def kind(self) -> BrokerKind:
        return BrokerKind.NETWORKED

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def _resolve_connack(self, reason_value: int) -> None:
        waiter = self._connack
        if waiter is not None and not waiter.done():
            waiter.set_result(reason_value)

    def _resubscribe(self, client: mqtt.Client) -> None:
        # Runs on the loop thread; the registry is not shared with paho.
        for channel in self._registry.channels():
            self._logger.debug("MQTT subscribing topic=%s", channel)
            client.subscribe(channel, qos=0)

    async def _shutdown_client(self, client: mqtt.Client) -> None:
        try:
            client.disconnect()
        finally:
            await self._loop.run_in_executor(None, client.loop_stop)

    async def connect(self) -> None:
        """Connect and wait for the broker's CONNACK.

        Raises
        ------
        BioSyncBrokerError
            If the TCP connect fails, the broker refuses the session, or
            no CONNACK arrives within ``connect_timeout`` seconds.
        """
        await self.close()
        self._logger.debug(
            "MQTT connect requested host=%s port=%s client_id=%s",
            self._host,
            self._port,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        if self._password:
            client.username_pw_set(self._username, self._password)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._loop.call_soon_threadsafe(self._resolve_connack, reason_code.value)
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            self._loop.call_soon_threadsafe(self._resubscribe, c)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._loop.call_soon_threadsafe(self._registry.dispatch, msg.topic, bytes(msg.payload))

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        self._connack = self._loop.create_future()
        try:
            await self._loop.run_in_executor(None, client.connect, self._host, self._port, self._keepalive)
        except (OSError, ValueError) as exc:
            self._connack = None
            raise BioSyncBrokerError(
                f"MQTT connect to {self._host}:{self._port} failed: {exc}",
                host=self._host,
                port=self._port,
            ) from exc

        client.loop_start()
        try:
            reason_value = await asyncio.wait_for(self._connack, self._connect_timeout)
        except TimeoutError as exc:
            await self._shutdown_client(client)
            raise BioSyncBrokerError(
                f"No CONNACK from {self._host}:{self._port} within {self._connect_timeout}s",
                host=self._host,
                port=self._port,
            ) from exc
        finally:
            self._connack = None
        if reason_value != 0:
            await self._shutdown_client(client)
            raise BioSyncBrokerError(
                f"MQTT broker {self._host}:{self._port} refused connection (reason={reason_value})",
                host=self._host,
                port=self._port,
            )

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    async def publish(self, channel: str, data: bytes) -> None:
        client = self._client
        if client is None:
            raise BioSyncBrokerError("MQTT broker is not connected", host=self._host, port=self._port)
        info = client.publish(channel, data, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BioSyncBrokerError(
                f"MQTT publish to {channel} failed: {mqtt.error_string(info.rc)}",
                host=self._host,
                port=self._port,
            )
        self._logger.debug("MQTT publish topic=%s bytes=%d mid=%s", channel, len(data), info.mid)

    def subscribe(self, channel: str, handler: MessageHandler) -> None:
        first = self._registry.add(channel, handler)
        client = self._client
        if first and client is not None:
            self._logger.debug("MQTT subscribing topic=%s", channel)
            client.subscribe(channel, qos=0)

    def unsubscribe(self, channel: str, handler: MessageHandler) -> None:
        last = self._registry.remove(channel, handler)
        client = self._client
        if last and client is not None:
            self._logger.debug("MQTT unsubscribing topic=%s", channel)
            client.unsubscribe(channel)

    def subscriber_count(self, channel: str) -> int:
        return self._registry.count(channel)

    async def close(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        if was_running:
            self._logger.debug("MQTT disconnect requested")
        await self._shutdown_client(client)
        self._logger.debug("MQTT network loop stopped")
