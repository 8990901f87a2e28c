"""Configuration management components."""

from .config_manager import CatalogSettings, ConfigManager, ConfigPaths, get_config_manager, reset_config_manager
from .sync_defaults import SyncDefaults

__all__ = [
    'CatalogSettings',
    'ConfigManager',
    'ConfigPaths',
    'SyncDefaults',
    'get_config_manager',
    'reset_config_manager',
]
