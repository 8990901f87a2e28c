"""
Merge module for template sync.

This module provides choice resolution, the XML merge, change previews and the
applier that writes merged templates back to disk.
"""

from .changes_applier import TemplateChangesApplier
from .choice_resolver import ChoiceResolver
from .preview_builder import PreviewBuilder
from .xml_merger import MergeResult, XMLMerger

__all__ = [
    'ChoiceResolver',
    'MergeResult',
    'PreviewBuilder',
    'TemplateChangesApplier',
    'XMLMerger'
]
