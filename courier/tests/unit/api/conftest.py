"""HTTP and WebSocket client fixtures for API tests."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from courier.app.factory import create_app
from courier.config.models import AppConfig


@pytest.fixture
def client(app_config: AppConfig) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running against in-memory SQLite."""
    app = create_app(app_config)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def disabled_client(disabled_config: AppConfig) -> Generator[TestClient, None, None]:
    """TestClient for a server started without a database."""
    app = create_app(disabled_config)
    with TestClient(app) as test_client:
        yield test_client
