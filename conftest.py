"""Shared pytest fixtures."""

import pytest

from template_sync.config.config_manager import reset_config_manager


@pytest.fixture(autouse=True)
def _reset_global_config_manager():
    """Every test starts without a cached global ConfigManager."""
    reset_config_manager()
    yield
    reset_config_manager()
