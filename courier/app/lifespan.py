"""
Application lifecycle management for Courier.

Startup creates and initializes the ApplicationContainer; shutdown closes
every realtime connection and releases the database. An unreachable
database never aborts startup.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..container import ApplicationContainer
from ..structured_logging.logging_config import get_logger, log_exception_once

logger = get_logger("courier.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    A container already placed on app.state (tests do this) is initialized
    in place; otherwise a new one is built from app.state.config.
    """
    logger.info("Starting Courier server...")

    container: ApplicationContainer | None = getattr(app.state, "container", None)
    if container is None:
        container = ApplicationContainer(getattr(app.state, "config", None))
        app.state.container = container
    await container.initialize()

    logger.info("Courier server started", database_ready=container.database_ready)
    try:
        yield
    finally:
        logger.info("Shutting down Courier server...")
        try:
            await container.shutdown()
        except (asyncio.CancelledError, RuntimeError) as e:
            log_exception_once(logger, "error", "Shutdown did not complete cleanly", exc=e)
            raise
        logger.info("Courier server shutdown complete")
