"""Command-line entry point: ``python -m biosync``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from biosync.app import serve
from biosync.config import BioSyncConfig
from biosync.exceptions import BioSyncConfigError
from biosync.ingestion.device import load_device_factory

_logger = logging.getLogger("biosync")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="biosync",
        description="Poll an attendance terminal and relay snapshots to HTTP and WebSocket clients.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override BIOSYNC_SERVER_PORT.",
    )
    return parser.parse_args(argv)


async def _run(config: BioSyncConfig) -> None:
    if not config.device_factory:
        raise BioSyncConfigError("BIOSYNC_DEVICE_FACTORY is required (e.g. 'mypkg.driver:create_device')")
    device = load_device_factory(config.device_factory)(config)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    await serve(config, device, stop_event=stop_event)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        overrides = {"server_port": args.port} if args.port is not None else {}
        config = BioSyncConfig.from_env(**overrides)
        asyncio.run(_run(config))
    except BioSyncConfigError as exc:
        _logger.error("Configuration error: %s", exc)
        return 2
    except Exception:
        _logger.exception("Fatal error during startup")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
