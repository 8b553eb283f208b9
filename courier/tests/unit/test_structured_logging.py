"""Tests for the structlog processors and helpers."""

from unittest.mock import Mock

from structlog.contextvars import get_contextvars

from courier.exceptions import CourierError
from courier.structured_logging.logging_config import (
    bind_request_context,
    clear_request_context,
    detect_environment,
    log_exception_once,
)
from courier.structured_logging.logging_processors import REDACTED, add_correlation_id, sanitize_sensitive_data


class TestSanitizeSensitiveData:
    def test_redacts_secrets_recursively(self):
        event = {
            "event": "Login",
            "password": "hunter2",
            "context": {"token": "abc", "identity": "alice"},
            "jwt_secret": "s",
        }

        sanitized = sanitize_sensitive_data(None, "info", event)

        assert sanitized["password"] == REDACTED
        assert sanitized["jwt_secret"] == REDACTED
        assert sanitized["context"] == {"token": REDACTED, "identity": "alice"}
        assert sanitized["event"] == "Login"

    def test_safe_fields_are_kept(self):
        sanitized = sanitize_sensitive_data(None, "info", {"has_token": True, "token_length": 12})

        assert sanitized == {"has_token": True, "token_length": 12}


def test_add_correlation_id_keeps_existing():
    assert add_correlation_id(None, "info", {"correlation_id": "abc"})["correlation_id"] == "abc"
    assert add_correlation_id(None, "info", {})["correlation_id"]


def test_request_context_binding():
    bind_request_context(correlation_id="abc", path="/ws", method=None)
    try:
        context = get_contextvars()
        assert context["correlation_id"] == "abc"
        assert context["path"] == "/ws"
        assert "method" not in context
    finally:
        clear_request_context()

    assert get_contextvars() == {}


def test_detect_environment_under_pytest():
    assert detect_environment() == "unit_test"


class TestLogExceptionOnce:
    def test_skips_already_logged_errors(self):
        logger = Mock()

        log_exception_once(logger, "error", "failed", exc=CourierError("boom"))

        logger.error.assert_not_called()

    def test_logs_plain_exceptions(self):
        logger = Mock()

        log_exception_once(logger, "warning", "failed", exc=RuntimeError("boom"))

        logger.warning.assert_called_once_with("failed", error_type="RuntimeError", error="boom")
