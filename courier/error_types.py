"""
Centralized error types and constants for Courier.

Standardized error categories shared by the HTTP error handlers and the
realtime "error" event so both surfaces report failures the same way.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Authentication
    AUTHENTICATION_FAILED = "authentication_failed"
    INVALID_TOKEN = "invalid_token"
    INVALID_CREDENTIALS = "invalid_credentials"

    # Validation
    VALIDATION_ERROR = "validation_error"
    INVALID_FORMAT = "invalid_format"
    UNKNOWN_EVENT = "unknown_event"

    # Resources
    RESOURCE_ALREADY_EXISTS = "resource_already_exists"

    # Persistence
    STORE_UNAVAILABLE = "store_unavailable"

    # System
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"

    # Realtime
    MESSAGE_PROCESSING_ERROR = "message_processing_error"


class ErrorMessages:
    """Common error messages for consistent user experience."""

    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_CREDENTIALS = "Invalid username or password"
    INVALID_INPUT = "Invalid input provided"
    INVALID_FORMAT = "Invalid format provided"
    UNKNOWN_EVENT = "Unknown event"
    IDENTITY_TAKEN = "Username already taken"
    SYSTEM_UNAVAILABLE = "System temporarily unavailable"
    INTERNAL_ERROR = "An internal error occurred"
    MESSAGE_PROCESSING_ERROR = "Error processing message"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized HTTP error body.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        {"error": {...}} response dictionary
    """
    return {
        "error": {
            "type": error_type.value,
            "message": message,
            "user_friendly": user_friendly or message,
            "details": details or {},
            "timestamp": datetime.now(UTC).isoformat(),
        }
    }
