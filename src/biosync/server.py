"""HTTP surfaces: snapshot query endpoint and realtime WebSocket gateway."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import weakref

from aiohttp import WSCloseCode, WSMsgType, hdrs, web

from biosync._constants import LIVE_ROUTE, SNAPSHOT_ROUTE
from biosync.context import AppContext

_logger = logging.getLogger(__name__)

CONTEXT_KEY = web.AppKey("context", AppContext)
WEBSOCKETS_KEY = web.AppKey("websockets", weakref.WeakSet[web.WebSocketResponse])

#: Seconds between WebSocket pings; dead peers are dropped after a missed pong.
WS_HEARTBEAT = 30.0


def create_app(context: AppContext) -> web.Application:
    """Build the aiohttp application serving *context*."""
    app = web.Application()
    app[CONTEXT_KEY] = context
    app[WEBSOCKETS_KEY] = weakref.WeakSet()
    app.router.add_get(SNAPSHOT_ROUTE, handle_snapshot)
    app.router.add_get(LIVE_ROUTE, handle_live)
    app.on_shutdown.append(_close_websockets)
    return app


def _cors_headers(context: AppContext) -> dict[str, str]:
    return {hdrs.ACCESS_CONTROL_ALLOW_ORIGIN: context.config.client_origin}


def _origin_allowed(context: AppContext, origin: str | None) -> bool:
    allowed = context.config.client_origin
    return origin is None or allowed == "*" or origin == allowed


async def handle_snapshot(request: web.Request) -> web.Response:
    """Return the current snapshot as JSON, or 204 before the first cycle."""
    context = request.app[CONTEXT_KEY]
    payload = context.store.get()
    if payload is None:
        return web.Response(status=204, headers=_cors_headers(context))
    return web.Response(
        text=payload.to_json(),
        content_type="application/json",
        headers=_cors_headers(context),
    )


async def _forward(ws: web.WebSocketResponse, queue: asyncio.Queue[bytes]) -> None:
    while True:
        data = await queue.get()
        try:
            await ws.send_bytes(data)
        except ConnectionResetError:
            _logger.debug("Realtime send on closing connection dropped", exc_info=True)
            return


async def handle_live(request: web.Request) -> web.StreamResponse:
    """Stream the current snapshot, then every later publish, as binary frames.

    The subscription lives exactly as long as the connection.
    """
    context = request.app[CONTEXT_KEY]
    origin = request.headers.get(hdrs.ORIGIN)
    if not _origin_allowed(context, origin):
        _logger.warning("Rejected realtime client origin=%s", origin)
        raise web.HTTPForbidden(text="origin not allowed")

    ws = web.WebSocketResponse(heartbeat=WS_HEARTBEAT)
    await ws.prepare(request)
    request.app[WEBSOCKETS_KEY].add(ws)
    _logger.info("Client connected: %s", request.remote)

    queue: asyncio.Queue[bytes] = asyncio.Queue()
    initial: bytes | None = None

    def forward(data: bytes) -> None:
        nonlocal initial
        # The networked broker may echo the snapshot already pushed on
        # connect; it carries the same bytes.
        if initial is not None:
            if data == initial:
                return
            initial = None
        queue.put_nowait(data)

    # Snapshot read and subscribe happen without yielding, so no publish
    # can fall between them.
    current = context.store.get()
    if current is not None:
        initial = current.encode()
        queue.put_nowait(initial)
    context.broker.subscribe(context.channel, forward)

    writer = asyncio.create_task(_forward(ws, queue))
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                _logger.debug("Realtime connection error: %s", ws.exception())
                break
    finally:
        context.broker.unsubscribe(context.channel, forward)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        _logger.info(
            "Client disconnected: %s (subscribers=%d)",
            request.remote,
            context.broker.subscriber_count(context.channel),
        )
    return ws


async def _close_websockets(app: web.Application) -> None:
    for ws in list(app[WEBSOCKETS_KEY]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
