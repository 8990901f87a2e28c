"""
Custom exceptions for the template sync system.

This module defines specific exception types for the error conditions that can
occur while extracting, comparing and merging container templates, and for the
collaborators (catalog, local scan, record store) around that pipeline.
"""


class TemplateSyncError(Exception):
    """Base exception for all template sync related errors."""

    def __init__(self, message: str, template_name: str = None):
        """
        Initialize template sync error.

        Args:
            message: Error description
            template_name: Optional name of the template that caused the error
        """
        super().__init__(message)
        self.template_name = template_name


class XMLParsingError(TemplateSyncError):
    """Exception raised when a template document cannot be parsed."""

    def __init__(self, message: str, xml_content: str = None, template_name: str = None):
        """
        Initialize XML parsing error.

        Args:
            message: Error description
            xml_content: Optional XML content that failed to parse (truncated for logging)
            template_name: Optional name of the template
        """
        super().__init__(message, template_name)
        # Store truncated XML content for debugging (first 500 chars)
        self.xml_content = xml_content[:500] + "..." if xml_content and len(xml_content) > 500 else xml_content


class ValidationError(TemplateSyncError):
    """Exception raised when the preconditions for applying changes are not met."""

    NOT_REVIEWED = "not_reviewed"
    NO_CHOICES = "no_choices"
    MISSING_PATH = "missing_path"

    def __init__(self, message: str, reason: str = None, template_name: str = None):
        """
        Initialize validation error.

        Args:
            message: Error description
            reason: One of NOT_REVIEWED, NO_CHOICES, MISSING_PATH
            template_name: Optional name of the template
        """
        super().__init__(message, template_name)
        self.reason = reason


class ApplyError(TemplateSyncError):
    """Exception raised when merged changes cannot be written back."""
    pass


class BackupError(ApplyError):
    """Exception raised when the pre-change backup cannot be created."""
    pass


class WriteError(ApplyError):
    """Exception raised when the merged template file cannot be written."""

    def __init__(self, message: str, path: str = None, template_name: str = None):
        super().__init__(message, template_name)
        self.path = path


class CatalogError(TemplateSyncError):
    """Base exception for community catalog lookups."""
    pass


class FeedUnavailableError(CatalogError):
    """Exception raised when the catalog feed cannot be fetched."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogParseError(CatalogError):
    """Exception raised when the catalog feed payload is not valid JSON."""
    pass


class ScanError(TemplateSyncError):
    """Base exception for local template directory scanning."""
    pass


class DirectoryNotFoundError(ScanError):
    """Exception raised when the template directory is missing or unreadable."""
    pass


class FileReadError(ScanError):
    """Exception raised when a template file cannot be read or processed."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class RecordStoreError(TemplateSyncError):
    """Base exception for record store operations."""
    pass


class DuplicateRecordError(RecordStoreError):
    """Exception raised when a store uniqueness constraint is violated."""
    pass


class RecordNotFoundError(RecordStoreError):
    """Exception raised when a record id does not exist in the store."""
    pass


class ConfigurationError(TemplateSyncError):
    """Exception raised when configuration is invalid or missing."""
    pass
