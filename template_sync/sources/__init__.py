"""
Sources module for template sync.

This module provides the local template directory scanner and the Community
Applications catalog client.
"""

from .community_client import CommunityApplicationsClient
from .local_scanner import LocalTemplateScanner

__all__ = [
    'CommunityApplicationsClient',
    'LocalTemplateScanner'
]
