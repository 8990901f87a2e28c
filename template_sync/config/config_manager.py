"""
Centralized configuration management for the template sync system.

This module provides the ConfigManager class that serves as the single source of truth
for filesystem locations, catalog settings and environment variable handling. Every
other component receives its paths and settings explicitly at construction.
"""

import os
import logging

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import ConfigurationError
from .sync_defaults import SyncDefaults


@dataclass
class ConfigPaths:
    """Filesystem locations with environment variable support."""
    base_path: Path = field(default_factory=lambda: Path.cwd())
    template_directory: str = SyncDefaults.TEMPLATE_DIRECTORY
    backup_directory: str = SyncDefaults.BACKUP_DIRECTORY

    @classmethod
    def from_environment(cls, base_path: Optional[Union[str, Path]] = None) -> 'ConfigPaths':
        """Create configuration paths from environment variables."""
        if base_path:
            resolved_base = Path(base_path)
        else:
            resolved_base = Path(os.environ.get('TEMPLATE_SYNC_BASE_PATH', Path.cwd()))

        return cls(
            base_path=resolved_base,
            template_directory=os.environ.get('TEMPLATE_SYNC_TEMPLATE_DIRECTORY', cls.template_directory),
            backup_directory=os.environ.get('TEMPLATE_SYNC_BACKUP_DIRECTORY', cls.backup_directory),
        )

    @property
    def resolved_backup_directory(self) -> Path:
        """Backup directory; relative paths are taken from the base path."""
        backup_path = Path(self.backup_directory)
        if backup_path.is_absolute():
            return backup_path
        return self.base_path / backup_path


@dataclass
class CatalogSettings:
    """Community catalog settings with environment variable support."""
    feed_url: str = SyncDefaults.FEED_URL
    timeout_seconds: float = SyncDefaults.HTTP_TIMEOUT

    @classmethod
    def from_environment(cls) -> 'CatalogSettings':
        """Create catalog settings from environment variables."""
        timeout = os.environ.get('TEMPLATE_SYNC_HTTP_TIMEOUT', cls.timeout_seconds)
        try:
            timeout_seconds = float(timeout)
        except ValueError:
            raise ConfigurationError(f"TEMPLATE_SYNC_HTTP_TIMEOUT must be a number, got {timeout!r}")

        return cls(
            feed_url=os.environ.get('TEMPLATE_SYNC_FEED_URL', cls.feed_url),
            timeout_seconds=timeout_seconds,
        )


class ConfigManager:
    """
    Centralized configuration manager serving as single source of truth.

    This class consolidates:
    - Local template and backup directory locations
    - Community catalog feed settings
    - Environment variable handling
    - Construction of the filesystem and catalog collaborators
    """

    def __init__(self, base_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            base_path: Base path for relative locations. If None, uses current directory.
        """
        self.logger = logging.getLogger(__name__)

        self.paths = ConfigPaths.from_environment(base_path)
        self.catalog_settings = CatalogSettings.from_environment()

        self.logger.info(f"ConfigManager initialized with base path: {self.paths.base_path}")
        self.logger.info(f"Template directory: {self.paths.template_directory}")

    @property
    def template_directory(self) -> Path:
        return Path(self.paths.template_directory)

    @property
    def backup_directory(self) -> Path:
        return self.paths.resolved_backup_directory

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigurationError: If any configuration is invalid
        """
        errors = []

        if not self.template_directory.is_dir():
            errors.append(f"Template directory does not exist: {self.template_directory}")
        elif not os.access(str(self.template_directory), os.R_OK):
            errors.append(f"Template directory is not readable: {self.template_directory}")

        # The backup directory is created on demand, so only its nearest existing ancestor must be writable
        ancestor = self.backup_directory
        while not ancestor.exists() and ancestor != ancestor.parent:
            ancestor = ancestor.parent
        if not os.access(str(ancestor), os.W_OK):
            errors.append(f"Backup directory cannot be created under: {ancestor}")

        if not self.catalog_settings.feed_url.startswith(("http://", "https://")):
            errors.append(f"Feed URL must be an http(s) URL: {self.catalog_settings.feed_url}")

        if self.catalog_settings.timeout_seconds <= 0:
            errors.append("HTTP timeout must be greater than 0")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        self.logger.info("Configuration validation passed")
        return True

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all configuration settings.

        Returns:
            Dictionary containing configuration summary
        """
        return {
            'paths': {
                'base_path': str(self.paths.base_path),
                'template_directory': str(self.template_directory),
                'backup_directory': str(self.backup_directory),
            },
            'catalog': {
                'feed_url': self.catalog_settings.feed_url,
                'timeout_seconds': self.catalog_settings.timeout_seconds,
            },
        }

    def reload_configuration(self) -> None:
        """Reload configuration from environment variables."""
        self.paths = ConfigPaths.from_environment(self.paths.base_path)
        self.catalog_settings = CatalogSettings.from_environment()

        self.logger.info("Configuration reloaded from environment variables")

    def create_local_scanner(self):
        """Local template scanner bound to the configured template directory."""
        from ..sources.local_scanner import LocalTemplateScanner
        return LocalTemplateScanner(str(self.template_directory))

    def create_community_client(self, http_client=None):
        """Community catalog client bound to the configured feed."""
        from ..sources.community_client import CommunityApplicationsClient
        return CommunityApplicationsClient(
            feed_url=self.catalog_settings.feed_url,
            http_client=http_client,
            timeout=self.catalog_settings.timeout_seconds,
        )

    def create_file_store(self):
        from ..storage.file_store import LocalFileStore
        return LocalFileStore(encoding=SyncDefaults.FILE_ENCODING)


# Global configuration manager instance
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager(base_path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        base_path: Base path for relative locations. Only used on first call.

    Returns:
        Global ConfigManager instance
    """
    global _global_config_manager

    if _global_config_manager is None:
        _global_config_manager = ConfigManager(base_path)

    return _global_config_manager


def reset_config_manager() -> None:
    """Reset the global configuration manager instance."""
    global _global_config_manager
    _global_config_manager = None
