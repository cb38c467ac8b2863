"""Custom exception hierarchy for biosync."""

from __future__ import annotations


class BioSyncError(Exception):
    """Base exception for all biosync errors."""


class BioSyncConfigError(BioSyncError):
    """Invalid or missing configuration."""


class BioSyncDeviceError(BioSyncError):
    """Attendance terminal call failed (connect, fetch, disconnect)."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class BioSyncBrokerError(BioSyncError):
    """Message broker connection or publish failure."""

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        port: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        super().__init__(message)


class BioSyncNormalizeError(BioSyncError):
    """A raw device record could not be coerced into its canonical shape.

    Raised by the record-level normalizers.  The shape dispatcher itself
    never raises; this only signals a record whose fields are unusable
    (e.g. a log without a parseable ``record_time``).
    """

    def __init__(self, message: str, *, kind: str = "", index: int | None = None) -> None:
        self.kind = kind
        self.index = index
        super().__init__(message)
