"""
FastAPI application factory for Courier.

This module handles FastAPI app creation, middleware configuration,
exception handler registration and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..api.conversations import conversation_router
from ..api.health import health_router
from ..api.real_time import realtime_router
from ..api.uploads import upload_router
from ..auth.endpoints import auth_router
from ..config import AppConfig, get_config
from ..container import ApplicationContainer
from ..error_handlers import register_error_handlers
from ..middleware.correlation_middleware import CorrelationMiddleware
from ..structured_logging.logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None, container: ApplicationContainer | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (defaults to get_config())
        container: Pre-built container; the lifespan builds one when omitted

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="Courier API",
        description="Realtime direct messaging with durable history",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    if container is not None:
        app.state.container = container

    logger.info(
        "CORS configuration",
        allow_origins=config.cors.allow_origins,
        allow_methods=config.cors.allow_methods,
        allow_headers=config.cors.allow_headers,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins,
        allow_credentials="*" not in config.cors.allow_origins,
        allow_methods=config.cors.allow_methods,
        allow_headers=config.cors.allow_headers,
    )
    app.add_middleware(CorrelationMiddleware)

    register_error_handlers(app, include_details=config.logging.environment != "production")

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(conversation_router)
    app.include_router(upload_router)
    app.include_router(realtime_router)

    return app
