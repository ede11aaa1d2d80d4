"""Pytest configuration for all tests."""

from typing import Generator

import pytest

from designali_hub.core.config import Settings, get_settings
from designali_hub.core.logging import clear_context


@pytest.fixture(autouse=True)
def _isolate_settings_and_context() -> Generator[None, None, None]:
    """Reset the settings cache and logging context around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, ignoring any local .env file."""
    return Settings(_env_file=None, environment="testing", log_format="console")
