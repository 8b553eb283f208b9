"""
Standardized error responses for all Courier HTTP endpoints.

Maps the exception taxonomy onto HTTP status codes and the shared
{"error": {...}} body so every endpoint fails the same way.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ..error_types import ErrorMessages, ErrorType, create_standard_error_response
from ..exceptions import (
    ConfigurationError,
    CourierError,
    DuplicateIdentity,
    InvalidCredentials,
    StoreUnavailable,
    Unauthorized,
    ValidationFailure,
)
from ..structured_logging.logging_config import get_logger
from ..utils.error_logging import create_context_from_request

logger = get_logger(__name__)


class StandardizedErrorResponse:
    """Builds JSON error responses from Courier exceptions."""

    # Most specific classes first
    EXCEPTION_MAPPINGS: list[tuple[type[CourierError], ErrorType, int]] = [
        (InvalidCredentials, ErrorType.INVALID_CREDENTIALS, status.HTTP_401_UNAUTHORIZED),
        (Unauthorized, ErrorType.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED),
        (ValidationFailure, ErrorType.VALIDATION_ERROR, 422),
        (DuplicateIdentity, ErrorType.RESOURCE_ALREADY_EXISTS, status.HTTP_409_CONFLICT),
        (StoreUnavailable, ErrorType.STORE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE),
        (ConfigurationError, ErrorType.CONFIGURATION_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ]

    STATUS_CODE_ERROR_TYPES = {
        400: ErrorType.INVALID_FORMAT,
        401: ErrorType.AUTHENTICATION_FAILED,
        409: ErrorType.RESOURCE_ALREADY_EXISTS,
        422: ErrorType.VALIDATION_ERROR,
        503: ErrorType.STORE_UNAVAILABLE,
    }

    def __init__(self, request: Request | None = None, include_details: bool = False):
        self.request = request
        self.include_details = include_details

    def classify(self, error: CourierError) -> tuple[ErrorType, int]:
        """Return the ErrorType and HTTP status code for an exception."""
        for exception_class, error_type, status_code in self.EXCEPTION_MAPPINGS:
            if isinstance(error, exception_class):
                return error_type, status_code
        return ErrorType.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR

    def from_courier_error(self, error: CourierError) -> JSONResponse:
        error_type, status_code = self.classify(error)
        details: dict[str, Any] = dict(error.details) if self.include_details else {}
        if isinstance(error, ValidationFailure) and error.field:
            details["field"] = error.field
        body = create_standard_error_response(
            error_type,
            error.user_friendly if status_code >= 500 else error.message,
            user_friendly=error.user_friendly,
            details=details,
        )
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=status_code, content=body, headers=headers)

    def from_http_exception(self, exc: HTTPException) -> JSONResponse:
        error_type = self.STATUS_CODE_ERROR_TYPES.get(exc.status_code, ErrorType.INTERNAL_ERROR)
        body = create_standard_error_response(error_type, str(exc.detail), details={"status_code": exc.status_code})
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    def from_request_validation_error(self, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        body = create_standard_error_response(
            ErrorType.VALIDATION_ERROR,
            "Request validation failed",
            user_friendly=ErrorMessages.INVALID_INPUT,
            details={"errors": errors},
        )
        return JSONResponse(status_code=422, content=body)

    def from_unexpected(self, exc: Exception) -> JSONResponse:
        context = create_context_from_request(self.request)
        logger.error(
            "Unhandled exception",
            error_type=type(exc).__name__,
            error=str(exc),
            context=context.to_dict(),
            exc_info=exc,
        )
        details = {"exception_type": type(exc).__name__} if self.include_details else {}
        body = create_standard_error_response(
            ErrorType.INTERNAL_ERROR, ErrorMessages.INTERNAL_ERROR, details=details
        )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_error_handlers(app: FastAPI, include_details: bool = False) -> None:
    """
    Register exception handlers that translate errors into standardized responses.

    Args:
        app: FastAPI application instance
        include_details: Whether to include exception details in response bodies
    """

    @app.exception_handler(CourierError)
    async def courier_error_handler(request: Request, exc: CourierError) -> JSONResponse:
        return StandardizedErrorResponse(request, include_details).from_courier_error(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return StandardizedErrorResponse(request, include_details).from_request_validation_error(exc)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return StandardizedErrorResponse(request, include_details).from_http_exception(exc)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return StandardizedErrorResponse(request, include_details).from_unexpected(exc)

    logger.debug("Error handlers registered", include_details=include_details)
