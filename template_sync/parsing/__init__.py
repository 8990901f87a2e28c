"""
Parsing module for template sync.

This module provides the template field extractor and the mutable document
handle used by the merge stage.
"""

from .template_document import TemplateDocument
from .template_parser import TemplateParser

__all__ = [
    'TemplateDocument',
    'TemplateParser'
]
