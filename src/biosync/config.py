"""Service configuration for biosync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from biosync.exceptions import BioSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: Callable[[str], Any]) -> Any:
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise BioSyncConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class BioSyncConfig:
    """Service configuration.

    Parameters
    ----------
    broker_enabled : bool
        Try the networked MQTT broker at startup.  When ``False`` the
        in-process bus is used directly.
    broker_host : str
        MQTT broker host.
    broker_port : int
        MQTT broker port.
    broker_username : str
        MQTT username.
    broker_password : str
        MQTT password.  An empty password disables authentication.  Left out
        of ``repr`` so logging the config never shows it.
    broker_channel : str
        Channel (MQTT topic) snapshots are published on.
    broker_keepalive : int
        MQTT keepalive in seconds.
    broker_connect_timeout : float
        Seconds to wait for the broker CONNACK before falling back.
    device_ip : str
        Attendance terminal address.
    device_port : int
        Attendance terminal port.
    send_timeout : int
        Device send timeout in milliseconds.
    recv_timeout : int
        Device receive timeout in milliseconds.
    device_factory : str or None
        ``"module:callable"`` path of the device driver factory.  The
        callable receives this config and returns an ``AttendanceDevice``.
    poll_interval : float
        Seconds between poll cycles.
    server_host : str
        HTTP listen address.
    server_port : int
        HTTP listen port.
    client_origin : str
        Origin allowed to use the realtime transport (``"*"`` for any).
    """

    broker_enabled: bool = True
    broker_host: str = "127.0.0.1"
    broker_port: int = 1883
    broker_username: str = "default"
    broker_password: str = dataclasses.field(default="", repr=False)
    broker_channel: str = "attendance:updates"
    broker_keepalive: int = 60
    broker_connect_timeout: float = 5.0
    device_ip: str = "192.168.1.1"
    device_port: int = 4370
    send_timeout: int = 20000
    recv_timeout: int = 20000
    device_factory: str | None = None
    poll_interval: float = 60.0
    server_host: str = "0.0.0.0"
    server_port: int = 8090
    client_origin: str = "http://localhost:3000"

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise BioSyncConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if not self.broker_channel:
            raise BioSyncConfigError("broker_channel must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> BioSyncConfig:
        """Create configuration from environment variables.

        Reads optional ``BIOSYNC_*`` variables.  Explicit keyword
        arguments override environment values.

        Raises
        ------
        BioSyncConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BIOSYNC_BROKER_HOST": "broker_host",
            "BIOSYNC_BROKER_USERNAME": "broker_username",
            "BIOSYNC_BROKER_PASSWORD": "broker_password",
            "BIOSYNC_BROKER_CHANNEL": "broker_channel",
            "BIOSYNC_DEVICE_IP": "device_ip",
            "BIOSYNC_DEVICE_FACTORY": "device_factory",
            "BIOSYNC_SERVER_HOST": "server_host",
            "BIOSYNC_CLIENT_ORIGIN": "client_origin",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric settings are parsed separately
        _ENV_NUMERIC_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "BIOSYNC_BROKER_PORT": ("broker_port", int),
            "BIOSYNC_BROKER_KEEPALIVE": ("broker_keepalive", int),
            "BIOSYNC_BROKER_CONNECT_TIMEOUT": ("broker_connect_timeout", float),
            "BIOSYNC_DEVICE_PORT": ("device_port", int),
            "BIOSYNC_SEND_TIMEOUT": ("send_timeout", int),
            "BIOSYNC_RECV_TIMEOUT": ("recv_timeout", int),
            "BIOSYNC_POLL_INTERVAL": ("poll_interval", float),
            "BIOSYNC_SERVER_PORT": ("server_port", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "broker_enabled" not in overrides:
            config_kwargs["broker_enabled"] = _env_bool(env.get("BIOSYNC_BROKER_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
