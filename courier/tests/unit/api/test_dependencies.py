"""Tests for the container lookup dependencies."""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from courier.dependencies import get_container, get_websocket_container
from courier.exceptions import ConfigurationError


def _connection_with(container) -> Mock:
    connection = Mock()
    connection.app.state = SimpleNamespace(container=container)
    return connection


@pytest.mark.parametrize("lookup", [get_container, get_websocket_container])
class TestContainerLookup:
    def test_missing_container_raises(self, lookup):
        connection = Mock()
        connection.app.state = SimpleNamespace()

        with pytest.raises(ConfigurationError):
            lookup(connection)

    def test_uninitialized_container_raises(self, lookup):
        with pytest.raises(ConfigurationError):
            lookup(_connection_with(SimpleNamespace(is_initialized=False)))

    def test_initialized_container_is_returned(self, lookup):
        container = SimpleNamespace(is_initialized=True)

        assert lookup(_connection_with(container)) is container
