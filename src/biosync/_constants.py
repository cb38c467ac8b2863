"""Internal constants shared across the library."""

#: Sentinel name for log records whose employee has no matching user.
UNKNOWN_USER_NAME = "Unknown"

#: HTTP route of the snapshot query endpoint.
SNAPSHOT_ROUTE = "/api/v1/bio-sync"
#: WebSocket route of the realtime gateway.
LIVE_ROUTE = "/api/v1/bio-sync/live"

#: Device attribute getters fetched once at startup, in payload order.
DEVICE_ATTRIBUTES: tuple[str, ...] = (
    "attendance_size",
    "pin",
    "current_time",
    "serial_number",
    "face_on",
    "ssr",
    "firmware",
    "device_name",
    "platform",
    "os",
    "vendor",
    "product_time",
    "mac_address",
)
