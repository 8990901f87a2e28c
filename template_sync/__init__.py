"""
Template Sync

Reconciles UnRAID container templates with their Community Applications
counterparts: field-level differences, per-field user choices and a merge that
writes the chosen community values back into the local template file.
"""

__version__ = "1.0.0"
__author__ = "Template Sync Team"

# Import core models and interfaces for easy access
from .models import (
    ChangePreview,
    Choice,
    ComparisonStatus,
    ConfigEntry,
    DifferenceKey,
    DifferenceType,
    TemplateComparison,
    TemplateRecord,
    TemplateSource,
    TemplateStatus,
)

from .interfaces import (
    CatalogLookupInterface,
    FileStoreInterface,
    RecordStoreInterface,
    TemplateParserInterface,
    TemplateScannerInterface,
)

from .exceptions import (
    ApplyError,
    BackupError,
    CatalogError,
    ConfigurationError,
    ScanError,
    TemplateSyncError,
    ValidationError,
    WriteError,
    XMLParsingError,
)

__all__ = [
    # Core models
    "ChangePreview",
    "Choice",
    "ComparisonStatus",
    "ConfigEntry",
    "DifferenceKey",
    "DifferenceType",
    "TemplateComparison",
    "TemplateRecord",
    "TemplateSource",
    "TemplateStatus",

    # Interfaces
    "CatalogLookupInterface",
    "FileStoreInterface",
    "RecordStoreInterface",
    "TemplateParserInterface",
    "TemplateScannerInterface",

    # Exceptions
    "ApplyError",
    "BackupError",
    "CatalogError",
    "ConfigurationError",
    "ScanError",
    "TemplateSyncError",
    "ValidationError",
    "WriteError",
    "XMLParsingError",
]
