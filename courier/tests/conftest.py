"""
Test configuration and fixtures for the Courier test suite.

Environment variables are set before any courier module is imported so
module-level configuration (Argon2 cost parameters, logging environment)
picks up the test values.
"""

import os
from collections.abc import Generator
from typing import Any

import pytest

os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "DEBUG")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
# Cheap Argon2 parameters keep password tests fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")

# Imports must come after environment variables to prevent config loading failures
from courier.config import reset_config  # noqa: E402
from courier.structured_logging.logging_config import get_logger, setup_logging  # noqa: E402

setup_logging({"environment": "unit_test", "level": "DEBUG", "format": "human"})

logger = get_logger(__name__)

from courier.tests.fixtures.shared import (  # noqa: E402,F401
    app_config,
    authenticator,
    database_manager,
    disabled_config,
    disabled_message_store,
    message_store,
    mock_websocket_factory,
    registry,
)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config cache before and after each test."""
    reset_config()
    yield
    reset_config()


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:
    """
    Auto-mark tests based on their file path.

    Tests in unit/ get @pytest.mark.unit
    Tests in integration/ get @pytest.mark.integration (and serial)
    """
    for item in items:
        file_path = str(item.fspath)

        if "/unit/" in file_path or "\\unit\\" in file_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in file_path or "\\integration\\" in file_path:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.serial)
