from __future__ import annotations

import pytest

from biosync.config import BioSyncConfig
from biosync.exceptions import BioSyncConfigError


def test_defaults_match_reference_behavior() -> None:
    config = BioSyncConfig()

    assert config.poll_interval == 60.0
    assert config.broker_channel == "attendance:updates"
    assert config.device_port == 4370
    assert config.server_port == 8090
    assert config.client_origin == "http://localhost:3000"


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIOSYNC_BROKER_HOST", "mqtt.internal")
    monkeypatch.setenv("BIOSYNC_BROKER_PORT", "8883")
    monkeypatch.setenv("BIOSYNC_BROKER_ENABLED", "no")
    monkeypatch.setenv("BIOSYNC_POLL_INTERVAL", "15")
    monkeypatch.setenv("BIOSYNC_DEVICE_FACTORY", "drivers.zk:create")

    config = BioSyncConfig.from_env()

    assert config.broker_host == "mqtt.internal"
    assert config.broker_port == 8883
    assert config.broker_enabled is False
    assert config.poll_interval == 15.0
    assert config.device_factory == "drivers.zk:create"


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIOSYNC_SERVER_PORT", "9000")

    config = BioSyncConfig.from_env(server_port=9100)

    assert config.server_port == 9100


def test_invalid_number_raises_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIOSYNC_DEVICE_PORT", "four")

    with pytest.raises(BioSyncConfigError, match="BIOSYNC_DEVICE_PORT"):
        BioSyncConfig.from_env()


def test_non_positive_poll_interval_rejected() -> None:
    with pytest.raises(BioSyncConfigError):
        BioSyncConfig(poll_interval=0)


def test_repr_leaves_out_broker_password() -> None:
    config = BioSyncConfig(broker_username="relay", broker_password="hunter2")

    assert "hunter2" not in repr(config)
    assert "broker_username='relay'" in repr(config)
