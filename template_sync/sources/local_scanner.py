"""
Scanner for the local (UnRAID dockerMan) template directory.
"""

import logging
import os

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from ..config.sync_defaults import SyncDefaults
from ..exceptions import DirectoryNotFoundError, FileReadError, XMLParsingError
from ..interfaces import TemplateScannerInterface
from ..models import TemplateRecord, TemplateSource, TemplateStatus
from ..parsing.template_parser import TemplateParser


class LocalTemplateScanner(TemplateScannerInterface):
    """
    Reads every template file in one directory (non-recursive).

    Files that cannot be read, are not well-formed, have no Container element
    or lack a name or repository are skipped with a logged warning; only a
    missing or unreadable directory is an error.
    """

    def __init__(self, template_directory: str, parser: Optional[TemplateParser] = None,
                 encoding: str = SyncDefaults.FILE_ENCODING, pattern: str = SyncDefaults.TEMPLATE_GLOB):
        self.logger = logging.getLogger(__name__)
        self.template_directory = Path(template_directory)
        self.parser = parser or TemplateParser()
        self.encoding = encoding
        self.pattern = pattern

    def list_template_files(self) -> List[Tuple[str, str, datetime]]:
        """
        Read every template file in the directory, sorted by path.

        Returns:
            List of (xml_text, file_path, modified_time)

        Raises:
            DirectoryNotFoundError: If the directory is missing or unreadable
        """
        self._validate_directory()

        paths = sorted(path for path in self.template_directory.glob(self.pattern) if path.is_file())
        self.logger.info(f"Found {len(paths)} XML files in {self.template_directory}")

        template_files = []
        for path in paths:
            try:
                template_files.append(self._read_template_file(path))
            except FileReadError as e:
                self.logger.error(f"Failed to process {path}: {e}")
        return template_files

    def scan_templates(self) -> List[TemplateRecord]:
        """
        Build a local TemplateRecord from every valid template file.

        Raises:
            DirectoryNotFoundError: If the directory is missing or unreadable
        """
        templates = []
        for xml_content, file_path, modified_at in self.list_template_files():
            template = self._build_template(xml_content, file_path, modified_at)
            if template is not None:
                templates.append(template)

        self.logger.info(f"Scanned {len(templates)} valid templates from {self.template_directory}")
        return templates

    def find_template_by_name(self, name: str) -> Optional[TemplateRecord]:
        """Template record for ``<name>.xml`` in the directory, or None."""
        path = self.template_directory / f"{name}.xml"
        if not path.is_file():
            return None

        xml_content, file_path, modified_at = self._read_template_file(path)
        return self._build_template(xml_content, file_path, modified_at)

    def _validate_directory(self) -> None:
        if not self.template_directory.is_dir():
            raise DirectoryNotFoundError(
                f"Template directory does not exist: {self.template_directory}. "
                f"Ensure the UnRAID template directory is mounted, e.g. "
                f"-v /boot/config/plugins/dockerMan/templates-user:/templates"
            )
        if not os.access(str(self.template_directory), os.R_OK | os.X_OK):
            raise DirectoryNotFoundError(f"Template directory is not readable: {self.template_directory}")

    def _read_template_file(self, path: Path) -> Tuple[str, str, datetime]:
        try:
            # Invalid byte sequences become replacement characters
            with open(path, "r", encoding=self.encoding, errors="replace") as file:
                xml_content = file.read()
            modified_at = datetime.fromtimestamp(path.stat().st_mtime)
        except OSError as e:
            raise FileReadError(f"Could not read file {path}: {e}", str(path))
        return xml_content, str(path), modified_at

    def _build_template(self, xml_content: str, file_path: str, modified_at: datetime) -> Optional[TemplateRecord]:
        if not xml_content.strip():
            self.logger.warning(f"Empty template file skipped: {file_path}")
            return None

        try:
            extracted = self.parser.extract(xml_content, Path(file_path).stem)
        except XMLParsingError as e:
            self.logger.warning(f"Invalid XML in {file_path}: {e}")
            return None

        if extracted is None:
            self.logger.warning(f"No Container element in {file_path}; skipped")
            return None

        fields = extracted.fields
        if not fields.get("name") or not fields.get("repository"):
            self.logger.warning(f"Template {file_path} has no Name or Repository; skipped")
            return None

        return TemplateRecord(
            name=fields["name"],
            repository=fields["repository"],
            source=TemplateSource.LOCAL,
            xml_content=xml_content,
            network=fields.get("network"),
            category=fields.get("category"),
            banner=fields.get("banner"),
            webui=fields.get("webui"),
            description=fields.get("description"),
            template_version=fields.get("template_version"),
            local_path=file_path,
            status=TemplateStatus.ACTIVE,
            last_updated_at=modified_at,
        )
