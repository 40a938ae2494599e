"""Entry point for the DustSweep API."""

import asyncio

from loguru import logger

from config.settings import settings
from dustsweep.api.server import run_api_server
from dustsweep.utils.logger import setup_logger


async def main() -> None:
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)
    logger.info("Starting DustSweep API...")

    # uvicorn traps SIGINT/SIGTERM itself and runs the lifespan shutdown,
    # which drains background risk tasks and closes provider clients.
    await run_api_server()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
