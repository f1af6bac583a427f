"""taskpulse entry point."""

import argparse
import asyncio
import contextlib
import logging
import signal
from pathlib import Path

from taskpulse.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="taskpulse",
        description="Personal task tracker with automatic status transitions.",
    )
    parser.add_argument("--tasks-file", type=Path, help="JSON file holding the tasks")
    parser.add_argument("--port", type=int, help="HTTP API port")
    parser.add_argument("--no-api", action="store_true", help="Do not serve the HTTP API")
    return parser.parse_args(argv)


async def _serve(args: argparse.Namespace) -> None:
    from taskpulse.app import TaskPulseApp

    app = TaskPulseApp(
        args.tasks_file,
        api_enabled=False if args.no_api else None,
        port=args.port,
    )
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    await app.start()
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await app.stop()


def main(argv: list[str] | None = None) -> None:
    """Run the engine (and API server) until interrupted."""
    args = _parse_args(argv)
    logger.info("Starting taskpulse...")
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_serve(args))


if __name__ == "__main__":
    main()
