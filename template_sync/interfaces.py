"""
Abstract interfaces for the template sync system.

This module defines the contracts the reconciliation core consumes: template
parsing, the community catalog, the local template directory, the record store
and the file store. Concrete implementations are injected, so tests and other
deployments can substitute their own.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .models import ConfigEntry, ExtractedTemplate, SyncJobRun, TemplateComparison, TemplateRecord, TemplateSource


class TemplateParserInterface(ABC):
    """Abstract interface for template XML parsing components."""

    @abstractmethod
    def extract(self, xml_content: str, template_name: Optional[str] = None) -> Optional[ExtractedTemplate]:
        """
        Extract scalar fields and config entries from a template document.

        Args:
            xml_content: Raw XML content as string
            template_name: Optional template name for error reporting

        Returns:
            Extracted record, or None if the document has no Container element

        Raises:
            XMLParsingError: If XML is malformed or cannot be parsed
        """
        pass

    @abstractmethod
    def extract_configs(self, xml_content: str, template_name: Optional[str] = None) -> List[ConfigEntry]:
        """
        Extract config entries in document order.

        Raises:
            XMLParsingError: If XML is malformed or cannot be parsed
        """
        pass


class CatalogLookupInterface(ABC):
    """Abstract interface for the community template catalog."""

    @abstractmethod
    def find_by_repository(self, repository: str) -> Optional[Dict[str, Any]]:
        """
        Find the raw catalog record for a repository.

        Args:
            repository: Repository string as written in the local template

        Returns:
            Raw catalog record, or None if the catalog has no match

        Raises:
            FeedUnavailableError: If the catalog cannot be reached
            CatalogParseError: If the catalog payload is malformed
        """
        pass

    @abstractmethod
    def fetch_body(self, url: str) -> Optional[str]:
        """
        Fetch a template document body.

        Returns:
            XML text, or None if the document does not exist
        """
        pass

    @abstractmethod
    def convert_to_template(self, app_data: Dict[str, Any]) -> Optional[TemplateRecord]:
        """Build a community TemplateRecord from a raw catalog record."""
        pass


class TemplateScannerInterface(ABC):
    """Abstract interface for local template directory scanning."""

    @abstractmethod
    def list_template_files(self) -> List[Tuple[str, str, datetime]]:
        """
        List template files in the configured directory.

        Returns:
            List of (xml_text, filesystem_path, modified_time) tuples

        Raises:
            DirectoryNotFoundError: If the directory is missing or unreadable
        """
        pass

    @abstractmethod
    def scan_templates(self) -> List[TemplateRecord]:
        """Extract a local TemplateRecord from every valid template file."""
        pass


class RecordStoreInterface(ABC):
    """
    Abstract interface for template, config and comparison persistence.

    Implementations enforce uniqueness of templates per (source, repository),
    of configs per (template id, name) and of comparisons per
    (local template id, community template id).
    """

    @abstractmethod
    def save_template(self, template: TemplateRecord) -> TemplateRecord:
        """Insert or update a template, assigning an id on insert."""
        pass

    @abstractmethod
    def get_template(self, template_id: int) -> TemplateRecord:
        """
        Raises:
            RecordNotFoundError: If the id is unknown
        """
        pass

    @abstractmethod
    def find_template(self, source: TemplateSource, repository: str) -> Optional[TemplateRecord]:
        pass

    @abstractmethod
    def list_templates(self, source: Optional[TemplateSource] = None, active_only: bool = False) -> List[TemplateRecord]:
        pass

    @abstractmethod
    def replace_configs(self, template_id: int, configs: List[ConfigEntry]) -> None:
        """Replace every stored config of a template."""
        pass

    @abstractmethod
    def list_configs(self, template_id: int) -> List[ConfigEntry]:
        pass

    @abstractmethod
    def save_comparison(self, comparison: TemplateComparison) -> TemplateComparison:
        pass

    @abstractmethod
    def get_comparison(self, comparison_id: int) -> TemplateComparison:
        """
        Raises:
            RecordNotFoundError: If the id is unknown
        """
        pass

    @abstractmethod
    def find_comparison(self, local_template_id: int, community_template_id: int) -> Optional[TemplateComparison]:
        pass

    @abstractmethod
    def list_comparisons(self, local_template_id: Optional[int] = None) -> List[TemplateComparison]:
        pass

    @abstractmethod
    def save_sync_run(self, run: SyncJobRun) -> SyncJobRun:
        pass

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All writes inside the block are kept together or discarded together."""
        pass


class FileStoreInterface(ABC):
    """Abstract interface for the template file write boundary."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def read(self, path: str) -> str:
        pass

    @abstractmethod
    def write(self, path: str, text: str) -> None:
        pass

    @abstractmethod
    def copy(self, path: str, backup_path: str) -> None:
        pass

    @abstractmethod
    def ensure_directory(self, path: str) -> None:
        pass

    @abstractmethod
    def remove(self, path: str) -> None:
        pass
