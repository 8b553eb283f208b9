"""Tests for the exception taxonomy and its HTTP mapping."""

from unittest.mock import AsyncMock

import pytest
from starlette.exceptions import HTTPException
from starlette.requests import Request

from courier.error_handlers import StandardizedErrorResponse
from courier.exceptions import (
    ConfigurationError,
    CourierError,
    DuplicateIdentity,
    ErrorContext,
    InvalidCredentials,
    StoreUnavailable,
    Unauthorized,
    ValidationFailure,
    create_error_context,
)
from courier.middleware.correlation_middleware import CorrelationMiddleware
from courier.utils.error_logging import create_context_from_request, log_and_raise


class TestExceptions:
    def test_errors_log_on_construction(self):
        error = CourierError("boom")

        assert error.already_logged is True
        assert error.user_friendly == "boom"

    def test_context_defaults(self):
        error = StoreUnavailable("down", operation="append")

        assert isinstance(error.context, ErrorContext)
        assert error.details["operation"] == "append"

    def test_invalid_credentials_is_unauthorized(self):
        error = InvalidCredentials()

        assert isinstance(error, Unauthorized)
        assert error.reason == "invalid_credentials"

    def test_validation_failure_details(self):
        error = ValidationFailure("bad", field="text", value=123)

        assert error.details == {"field": "text", "value": "123"}

    def test_to_dict(self):
        data = DuplicateIdentity("alice").to_dict()

        assert data["error_type"] == "DuplicateIdentity"
        assert data["user_friendly"] == "Username already taken"

    def test_context_to_dict(self):
        context = create_error_context(identity="alice", connection_id="c1")

        assert context.to_dict()["identity"] == "alice"
        assert context.to_dict()["connection_id"] == "c1"


def test_log_and_raise():
    with pytest.raises(ConfigurationError) as exc_info:
        log_and_raise(ConfigurationError, "missing setting", config_key="AUTH_JWT_SECRET")

    assert exc_info.value.config_key == "AUTH_JWT_SECRET"


class TestRequestContext:
    @pytest.mark.asyncio
    async def test_correlation_id_is_the_request_id(self):
        captured = {}

        async def app(scope, receive, send):
            captured["context"] = create_context_from_request(Request(scope))

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/conversations/bob",
            "query_string": b"",
            "headers": [(b"x-correlation-id", b"abc-123")],
            "client": ("127.0.0.1", 50000),
        }

        await CorrelationMiddleware(app)(scope, AsyncMock(), AsyncMock())

        context = captured["context"]
        assert context.request_id == "abc-123"
        assert context.metadata["path"] == "/conversations/bob"
        assert context.metadata["method"] == "GET"


class TestStandardizedErrorResponse:
    @pytest.mark.parametrize(
        "error, status_code, error_type",
        [
            (InvalidCredentials(), 401, "invalid_credentials"),
            (Unauthorized("no token", reason="missing_token"), 401, "invalid_token"),
            (ValidationFailure("bad", field="text"), 422, "validation_error"),
            (DuplicateIdentity("alice"), 409, "resource_already_exists"),
            (StoreUnavailable("down"), 503, "store_unavailable"),
            (ConfigurationError("broken"), 500, "configuration_error"),
            (CourierError("other"), 500, "internal_error"),
        ],
    )
    def test_mapping(self, error, status_code, error_type):
        _, mapped_status = StandardizedErrorResponse().classify(error)
        response = StandardizedErrorResponse().from_courier_error(error)

        assert mapped_status == status_code
        assert response.status_code == status_code
        assert f'"type":"{error_type}"' in response.body.decode()

    def test_unauthorized_sets_www_authenticate(self):
        response = StandardizedErrorResponse().from_courier_error(Unauthorized("no token"))

        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_details_hidden_unless_requested(self):
        error = StoreUnavailable("down", operation="append")

        hidden = StandardizedErrorResponse(include_details=False).from_courier_error(error)
        shown = StandardizedErrorResponse(include_details=True).from_courier_error(error)

        assert '"operation"' not in hidden.body.decode()
        assert '"operation":"append"' in shown.body.decode()

    def test_http_exception(self):
        response = StandardizedErrorResponse().from_http_exception(HTTPException(status_code=400, detail="No file"))

        assert response.status_code == 400
        assert '"type":"invalid_format"' in response.body.decode()
