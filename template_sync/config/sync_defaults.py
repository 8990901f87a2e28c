"""
Centralized operational defaults for template sync.

These are infrastructure settings shared by the scanner, the catalog client and
the apply stage. Environment variables (through ConfigManager) and CLI
arguments can override the ones that are user-facing.
"""


class SyncDefaults:
    """
    Centralized operational configuration for template sync.

    Values can be overridden at runtime:
    - template_sync --log-level DEBUG scan
    - TEMPLATE_SYNC_HTTP_TIMEOUT=60 template_sync config
    """

    # Local templates
    TEMPLATE_DIRECTORY = "/boot/config/plugins/dockerMan/templates-user"
    TEMPLATE_GLOB = "*.xml"
    FILE_ENCODING = "utf-8"

    # Backups written before each apply
    BACKUP_DIRECTORY = "storage/backups"
    BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    # Community Applications catalog
    FEED_URL = "https://raw.githubusercontent.com/Squidly271/AppFeed/master/applicationFeed.json"
    HTTP_TIMEOUT = 30  # Seconds
    REGISTRY_PREFIXES = ("docker.io/", "ghcr.io/", "lscr.io/")

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all SyncDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }

    @classmethod
    def log_summary(cls, logger=None):
        """
        Log a summary of all operational defaults.

        Args:
            logger: Optional logger instance. If None, prints to stdout.
        """
        config_dict = cls.to_dict()
        summary = "\n".join([f"  {key}: {value}" for key, value in sorted(config_dict.items())])
        message = f"Template Sync Defaults:\n{summary}"

        if logger:
            logger.info(message)
        else:
            print(message)
