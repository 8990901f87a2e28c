"""
Processing module for template sync.

This module provides the sync processor that runs local sync, community sync
and comparison updates.
"""

from .sync_processor import TemplateSyncProcessor

__all__ = [
    'TemplateSyncProcessor'
]
