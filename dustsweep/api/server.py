"""API server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings


def build_server() -> uvicorn.Server:
    from dustsweep.api.app import create_app

    config = uvicorn.Config(
        app=create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        log_config=None,  # stdlib records are forwarded to loguru
        loop="none",  # use the existing event loop
    )
    return uvicorn.Server(config)


async def run_api_server(server: uvicorn.Server | None = None) -> None:
    """Start uvicorn serving the consolidation API.

    Uses ``uvicorn.Server.serve()`` which is fully async and runs the app
    lifespan, so provider clients are built and closed with the server.
    """
    server = server or build_server()
    logger.info(f"[API] Starting on http://{settings.api_host}:{settings.api_port}")
    await server.serve()
