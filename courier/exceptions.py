"""
Exception hierarchy for the Courier server.

Every component boundary converts backend failures (SQLAlchemy, JWT, file
system) into one of the kinds defined here, so no raw third-party exception
escapes a component. Each error logs itself with structured context when it
is constructed.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException

from .structured_logging.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Provides structured context for error reporting and debugging.
    """

    identity: str | None = None
    connection_id: str | None = None
    event: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "identity": self.identity,
            "connection_id": self.connection_id,
            "event": self.event,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class CourierError(Exception):
    """
    Base exception for all Courier errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize a Courier error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)
        self.already_logged = False

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "Courier error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )
        self.already_logged = True

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class StoreUnavailable(CourierError):
    """The persistence backend is not configured or not reachable at call time."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, operation: str = "unknown", **kwargs):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.details["operation"] = operation


class Unauthorized(CourierError):
    """A bearer token is missing, malformed, tampered with or expired."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, reason: str = "invalid_token", **kwargs):
        kwargs["user_friendly"] = kwargs.get("user_friendly") or "Authentication required"
        super().__init__(message, context, **kwargs)
        self.reason = reason
        self.details["reason"] = reason


class InvalidCredentials(Unauthorized):
    """Username/password pair did not verify."""

    def __init__(self, message: str = "Invalid username or password", context: ErrorContext | None = None, **kwargs):
        kwargs["user_friendly"] = kwargs.get("user_friendly") or "Invalid username or password"
        super().__init__(message, context, reason="invalid_credentials", **kwargs)


class ValidationFailure(CourierError):
    """A send payload or request body is malformed."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class DuplicateIdentity(CourierError):
    """Registration attempted for a username that already exists."""

    log_level = "warning"

    def __init__(self, username: str, context: ErrorContext | None = None, **kwargs):
        kwargs["user_friendly"] = kwargs.get("user_friendly") or "Username already taken"
        super().__init__(f"Identity already registered: {username}", context, **kwargs)
        self.username = username
        self.details["username"] = username


class ConfigurationError(CourierError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class LoggedHTTPException(HTTPException):
    """HTTPException that logs itself with request context when raised."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        context: ErrorContext | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.context = context or ErrorContext()
        log_method = logger.error if status_code >= 500 else logger.warning
        log_method(
            "HTTP error raised",
            status_code=status_code,
            detail=detail,
            context=self.context.to_dict(),
        )


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)
