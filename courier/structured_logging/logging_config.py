"""
Structlog-based logging configuration for the Courier server.

This is the main entry point for the logging system. It configures
structlog on top of the standard library logging module so that uvicorn,
SQLAlchemy and application loggers share a single processor pipeline.

CRITICAL LOGGING REQUIREMENT:
All modules MUST use get_logger() from this module instead of
logging.getLogger(). Standard Python loggers do not accept the keyword
context that structlog loggers take.

CORRECT USAGE:
    from ..structured_logging.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Message persisted", sender="alice", recipient="bob")
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from .logging_processors import add_correlation_id, sanitize_sensitive_data


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def detect_environment() -> str:
    """
    Detect the current environment based on various indicators.

    Returns:
        Environment name: "unit_test", "local", or "production"
    """
    if "pytest" in sys.modules:
        return "unit_test"

    env = os.getenv("LOGGING_ENVIRONMENT")
    if env:
        return env

    return "local"


def configure_structlog(environment: str | None = None, log_level: str = "INFO", log_format: str = "human") -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for machine-readable output, "human" for console output
    """
    if environment is None:
        environment = detect_environment()

    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        # Security first - sanitize sensitive data
        sanitize_sensitive_data,
        merge_contextvars,
        add_correlation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if log_format == "json" or environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_logging(logging_config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the logging section of the application configuration.

    Args:
        logging_config: Dictionary with "environment", "level" and "format" keys
        force_reconfigure: When True, reconfigure even if logging is already set up
    """
    signature = repr(sorted(logging_config.items()))

    if _logging_state.initialized and not force_reconfigure:
        get_logger("courier.structured_logging").debug(
            "setup_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")
    log_format = logging_config.get("format", "human")

    configure_structlog(environment, log_level, log_format)
    _configure_uvicorn_logging()

    get_logger("courier.structured_logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_format=log_format,
    )

    _logging_state.initialized = True
    _logging_state.signature = signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the structlog pipeline."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def bind_request_context(correlation_id: str | None = None, **kwargs: Any) -> None:
    """
    Bind request context to the current logging context.

    Args:
        correlation_id: Unique correlation ID for the request
        **kwargs: Additional context variables (None values are dropped)
    """
    context_vars = {"correlation_id": correlation_id, **kwargs}
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_request_context() -> None:
    """Clear the current request context from logging."""
    clear_contextvars()


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code
    should use this function rather than calling structlog.get_logger()
    directly.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def log_exception_once(
    bound_logger: BoundLogger,
    level: str,
    message: str,
    *,
    exc: Exception | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an exception once, respecting exceptions that have already been logged.

    Courier errors log themselves on construction and carry an
    ``already_logged`` flag; this helper skips them.

    Args:
        bound_logger: Structlog bound logger instance.
        level: Logging level to use (for example, "error" or "warning").
        message: Log message to emit.
        exc: Optional exception to include in the log entry.
        **kwargs: Additional key-value pairs for structured logging.
    """
    if exc is not None:
        if getattr(exc, "already_logged", False):
            return
        kwargs.setdefault("error_type", type(exc).__name__)
        kwargs.setdefault("error", str(exc))

    log_method = getattr(bound_logger, level.lower(), bound_logger.error)
    log_method(message, **kwargs)
