"""
Error logging utilities for the Courier server.

Standardized helpers that log an error with context before raising it, and
that build ErrorContext objects from HTTP requests and WebSocket connections.
"""

from typing import Any, NoReturn

from fastapi import Request
from fastapi.websockets import WebSocket

from ..exceptions import CourierError, ErrorContext, create_error_context
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)


def log_and_raise(
    exception_class: type[CourierError],
    message: str,
    context: ErrorContext | None = None,
    details: dict[str, Any] | None = None,
    user_friendly: str | None = None,
    logger_name: str | None = None,
    **kwargs: Any,
) -> NoReturn:
    """
    Log an error and raise a Courier exception.

    Args:
        exception_class: The Courier exception class to raise
        message: Technical error message
        context: Error context information
        details: Additional error details
        user_friendly: User-friendly error message
        logger_name: Specific logger name to use (defaults to current module)
        **kwargs: Extra keyword arguments forwarded to the exception class

    Raises:
        The specified Courier exception
    """
    error_logger = get_logger(logger_name) if logger_name else logger

    if context is None:
        context = create_error_context()

    error_logger.debug(
        f"Raising {exception_class.__name__}: {message}",
        error_type=exception_class.__name__,
        details=details or {},
    )

    raise exception_class(
        message,
        context=context,
        details=details,
        user_friendly=user_friendly,
        **kwargs,
    )


def create_context_from_request(request: Request | None) -> ErrorContext:
    """
    Create an ErrorContext from a FastAPI request.

    Args:
        request: FastAPI Request object

    Returns:
        ErrorContext populated with request information
    """
    context = create_error_context()
    if request is None:
        return context

    context.request_id = getattr(request.state, "request_id", None)
    context.metadata.update(
        {
            "path": request.url.path,
            "method": request.method,
            "remote_addr": request.client.host if request.client else None,
        }
    )
    return context


def create_context_from_websocket(websocket: WebSocket | None, connection_id: str | None = None) -> ErrorContext:
    """
    Create an ErrorContext from a WebSocket connection.

    Args:
        websocket: WebSocket connection
        connection_id: Registry connection id, if already assigned

    Returns:
        ErrorContext populated with connection information
    """
    context = create_error_context(connection_id=connection_id)
    if websocket is None:
        return context

    context.metadata.update(
        {
            "path": websocket.url.path,
            "remote_addr": websocket.client.host if websocket.client else None,
        }
    )
    return context
