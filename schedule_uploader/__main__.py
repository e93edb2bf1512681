"""Process entry point: python -m schedule_uploader [--once]."""
from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from .config import load_config
from .const import VERSION
from .coordinator import UploadOrchestrator
from .errors import ConfigurationError
from .requests import check_api_availability

_LOGGER = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Push daily room schedules from calendar feeds to display devices")
    parser.add_argument("--once", action="store_true", help="Run a single polling cycle and exit")
    parser.add_argument("--env-file", type=str, default=None, help="Path of a .env file to load")
    return parser.parse_args(argv)


async def run(config: dict, once: bool = False) -> None:
    if not await check_api_availability(config["API_URL"]):
        _LOGGER.warning("Display API is not reachable right now, continuing anyway")

    orchestrator = UploadOrchestrator.from_config(config)
    try:
        if once:
            report = await orchestrator.run_cycle()
            _LOGGER.info("Cycle finished: %s", report)
        else:
            await orchestrator.run_forever(config["POLL_INTERVAL"])
    finally:
        await orchestrator.shutdown()


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv(args.env_file)

    try:
        config = load_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        _LOGGER.error("Invalid configuration: %s", e)
        return 2

    logging.basicConfig(
        level=config["LOG_LEVEL"],
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    _LOGGER.info("Starting schedule uploader %s", VERSION)

    try:
        asyncio.run(run(config, once=args.once))
    except KeyboardInterrupt:
        _LOGGER.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
