"""biosync - Attendance terminal snapshot relay over MQTT, HTTP and WebSocket."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("biosync")
except PackageNotFoundError:
    __version__ = "0+local"
from biosync.broker import Broker, BrokerKind, LocalBroker
from biosync.config import BioSyncConfig
from biosync.context import AppContext, select_broker
from biosync.exceptions import (
    BioSyncBrokerError,
    BioSyncConfigError,
    BioSyncDeviceError,
    BioSyncError,
    BioSyncNormalizeError,
)
from biosync.ingestion.device import AttendanceDevice
from biosync.models import (
    AttendanceLog,
    AttendancePayload,
    DeviceDetails,
    DeviceInfo,
    UserRecord,
)
from biosync.poller import Poller, PollerState
from biosync.state.store import SnapshotStore

__all__ = [
    "__version__",
    "AppContext",
    "AttendanceDevice",
    "AttendanceLog",
    "AttendancePayload",
    "BioSyncBrokerError",
    "BioSyncConfig",
    "BioSyncConfigError",
    "BioSyncDeviceError",
    "BioSyncError",
    "BioSyncNormalizeError",
    "Broker",
    "BrokerKind",
    "DeviceDetails",
    "DeviceInfo",
    "LocalBroker",
    "Poller",
    "PollerState",
    "SnapshotStore",
    "UserRecord",
    "select_broker",
]
