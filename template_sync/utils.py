"""
Value normalization used to tell real differences from cosmetic ones.

All functions are pure: the stored template values are never modified, only
the inputs handed to the equality checks.
"""

import re
from typing import Any, Optional

from .config.sync_defaults import SyncDefaults


class ValueNormalizer:
    """Normalization rules for template field comparison."""

    # Cached regex patterns for performance
    _regex_cache = {
        'whitespace': re.compile(r'\s+'),
        'inline_markup': re.compile(r'\[[^\]]*\]'),
        'trailing_separators': re.compile(r'[-:]+$'),
        'registry_prefix': re.compile('^(' + '|'.join(re.escape(prefix) for prefix in SyncDefaults.REGISTRY_PREFIXES) + ')'),
        'latest_tag': re.compile(r':latest$'),
    }

    @staticmethod
    def blank_normalize(value: Any) -> Optional[str]:
        """
        Trim whitespace, turning empty values into None.

        Args:
            value: Input value (None, string, or anything with a str form)

        Returns:
            Stripped string, or None when nothing is left
        """
        if value is None:
            return None
        normalized = str(value).strip()
        return normalized or None

    @staticmethod
    def category_normalize(value: Any) -> Optional[str]:
        """
        Canonicalize a category to the community hyphen form.

        Only the first whitespace-delimited token is kept, colons become
        hyphens and trailing separators are dropped.

        Examples:
            'Tools:Utilities spotlight:' -> 'Tools-Utilities'
            'Downloaders: MediaApp:Video' -> 'Downloaders'
            'Tools-Utilities' -> 'Tools-Utilities'
        """
        normalized = ValueNormalizer.blank_normalize(value)
        if normalized is None:
            return None

        normalized = normalized.split()[0]
        normalized = normalized.replace(':', '-')
        normalized = ValueNormalizer._regex_cache['trailing_separators'].sub('', normalized)
        return normalized or None

    @staticmethod
    def strip_inline_markup(value: Any) -> Optional[str]:
        """
        Remove [tag] pseudo-markup and collapse whitespace.

        Examples:
            '[h3]MongoDB[/h3]MongoDB' -> 'MongoDBMongoDB'
            '[b]Backup[/b]   client' -> 'Backup client'
        """
        normalized = ValueNormalizer.blank_normalize(value)
        if normalized is None:
            return None

        stripped = ValueNormalizer._regex_cache['inline_markup'].sub('', normalized)
        stripped = ValueNormalizer._regex_cache['whitespace'].sub(' ', stripped).strip()
        return stripped or None

    @staticmethod
    def normalize_field_value(value: Any, field_name: str) -> Optional[str]:
        """
        Apply the comparison normalization for a basic template field.

        Args:
            value: Raw field value
            field_name: Template field name

        Returns:
            Normalized value used for equality checks
        """
        if field_name == 'category':
            return ValueNormalizer.category_normalize(value)
        if field_name == 'description':
            return ValueNormalizer.strip_inline_markup(value)
        return ValueNormalizer.blank_normalize(value)

    @staticmethod
    def to_unraid_category(category: Optional[str]) -> Optional[str]:
        """
        Convert a community hyphen-form category back to UnRAID colon form.

        Single-token categories get UnRAID's trailing colon. Blank input is
        returned unchanged.

        Examples:
            'Tools-Utilities' -> 'Tools:Utilities'
            'Downloaders' -> 'Downloaders:'
            'MediaApp-Video-Other' -> 'MediaApp:Video:Other'
        """
        if category is None or not category.strip():
            return category

        unraid_category = category.replace('-', ':')
        if ':' not in unraid_category:
            unraid_category += ':'
        return unraid_category

    @staticmethod
    def normalize_repository(repository: Optional[str]) -> str:
        """
        Canonical repository identifier used to match local and catalog templates.

        Examples:
            'lscr.io/linuxserver/Plex:latest' -> 'linuxserver/plex'
            'docker.io/library/nginx:1.25' -> 'library/nginx:1.25'
        """
        if not repository:
            return ''
        normalized = repository.strip().lower()
        normalized = ValueNormalizer._regex_cache['registry_prefix'].sub('', normalized)
        normalized = ValueNormalizer._regex_cache['latest_tag'].sub('', normalized)
        return normalized
