"""
Configuration module for the Courier server.

Type-safe, validated configuration using Pydantic BaseSettings.

Usage:
    from courier.config import get_config

    config = get_config()
    logger.info("Configuration loaded", host=config.server.host, port=config.server.port)
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from dotenv import load_dotenv

from .models import AppConfig

__all__ = ["get_config", "reset_config", "AppConfig"]

_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """
    Detect if running in test environment.

    Returns:
        bool: True if running under pytest, False otherwise
    """
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _get_config_cached() -> AppConfig:
    """
    Production config loader with caching.

    Loads a local .env file into the process environment first so that
    every nested settings section sees it.
    """
    with _config_lock:
        load_dotenv(override=False)
        return AppConfig()


def get_config() -> AppConfig:
    """
    Get application configuration (cached in production, fresh in tests).

    Returns:
        AppConfig: The application configuration

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    if _is_test_mode():
        return AppConfig()
    return _get_config_cached()


def reset_config() -> None:
    """
    Reset the configuration cache.

    Primarily used by tests to force configuration reload after changing
    environment variables.
    """
    with _config_lock:
        _get_config_cached.cache_clear()
