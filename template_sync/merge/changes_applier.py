"""
Writes reviewed comparison choices back to the local template.

Apply runs as one unit: validate, merge in memory, back up the current file,
write the merged file, then persist the record, its configs and the comparison
status in a single store transaction. A failure after the file write restores
the previous file content, so neither the file nor the record is left
half-updated and the comparison stays reviewed.
"""

import copy
import dataclasses
import logging

from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.sync_defaults import SyncDefaults
from ..exceptions import ApplyError, BackupError, ValidationError, WriteError
from ..interfaces import FileStoreInterface, RecordStoreInterface
from ..models import ChangePreview, ComparisonStatus, TemplateComparison, TemplateRecord
from ..parsing.template_parser import TemplateParser
from .choice_resolver import ChoiceResolver
from .preview_builder import PreviewBuilder
from .xml_merger import MergeResult, XMLMerger


class TemplateChangesApplier:
    """
    Applies the user's choices for a comparison to the local template file and record.

    Collaborators are passed in explicitly: the record store holding templates
    and comparisons, the file store for the template file, and the directory
    that receives the pre-change backups.
    """

    def __init__(self, store: RecordStoreInterface, file_store: FileStoreInterface, backup_directory: str,
                 parser: Optional[TemplateParser] = None,
                 backup_timestamp_format: str = SyncDefaults.BACKUP_TIMESTAMP_FORMAT):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.file_store = file_store
        self.backup_directory = str(backup_directory)
        self.parser = parser or TemplateParser()
        self.backup_timestamp_format = backup_timestamp_format
        self.merger = XMLMerger(self.parser)
        self.preview_builder = PreviewBuilder(self.parser)

    def apply(self, comparison: TemplateComparison) -> TemplateRecord:
        """
        Merge the chosen community values into the local template and write it back.

        Args:
            comparison: Reviewed comparison carrying differences, choices and manual edits

        Returns:
            The updated local template record

        Raises:
            ValidationError: If the comparison is not reviewed, has no choices or the
                local template has no file path
            XMLParsingError: If the local document cannot be parsed
            BackupError: If the backup cannot be created
            WriteError: If the merged file cannot be written
            ApplyError: If persisting the result fails (the file is restored)
        """
        local_template = self.store.get_template(comparison.local_template_id)
        self.validate(comparison, local_template)
        template_path = local_template.local_path

        merge_result = self._merge(comparison, local_template)
        updated_template = self._updated_record(local_template, merge_result)

        self._ensure_backup_directory(local_template.name)
        backup_path = self._create_backup(template_path, local_template.name)

        original_content = self._read_original(template_path, local_template.name) if backup_path else None
        self._write_template(template_path, merge_result.xml_content, local_template.name)

        applied_at = datetime.now()
        try:
            with self.store.transaction():
                saved_template = self.store.save_template(updated_template)
                self.store.replace_configs(
                    saved_template.id,
                    self.parser.extract_for_persistence(saved_template.xml_content, saved_template.name),
                )
                applied_comparison = copy.deepcopy(comparison)
                applied_comparison.status = ComparisonStatus.APPLIED
                applied_comparison.applied_at = applied_at
                self.store.save_comparison(applied_comparison)
        except Exception as e:
            self.logger.error(f"Failed to persist applied changes for template {local_template.name}: {e}")
            self._restore_template(template_path, original_content, local_template.name)
            raise ApplyError(f"Could not save applied changes: {e}", local_template.name) from e

        comparison.status = ComparisonStatus.APPLIED
        comparison.applied_at = applied_at

        self.logger.info(
            f"Applied changes to template {saved_template.name}: "
            f"{len(merge_result.applied_fields)} fields, {len(merge_result.modified_configs)} configs modified, "
            f"{len(merge_result.added_configs)} added, {len(merge_result.removed_configs)} removed"
        )
        return saved_template

    def validate(self, comparison: TemplateComparison, local_template: TemplateRecord) -> None:
        """
        Check the apply preconditions.

        Raises:
            ValidationError: With reason not_reviewed, no_choices or missing_path
        """
        if not comparison.is_reviewed:
            raise ValidationError(
                f"Comparison must be reviewed before applying changes (status: {comparison.status.value})",
                ValidationError.NOT_REVIEWED,
                local_template.name,
            )
        if not comparison.user_choices:
            raise ValidationError("No user choices provided", ValidationError.NO_CHOICES, local_template.name)
        if not local_template.local_path:
            raise ValidationError(
                "Local template has no file location", ValidationError.MISSING_PATH, local_template.name
            )

    def preview(self, comparison: TemplateComparison) -> ChangePreview:
        """Preview the merge for the comparison's current choices without side effects."""
        local_template = self.store.get_template(comparison.local_template_id)
        return self.preview_builder.build(
            local_template.xml_content,
            comparison.differences,
            comparison.user_choices,
            comparison.manual_edits,
            local_template.name,
        )

    def generate_updated_xml(self, comparison: TemplateComparison) -> str:
        """
        Merged document for the comparison's current choices.

        Raises:
            XMLParsingError: If the local document cannot be parsed
        """
        local_template = self.store.get_template(comparison.local_template_id)
        return self._merge(comparison, local_template).xml_content

    def _merge(self, comparison: TemplateComparison, local_template: TemplateRecord) -> MergeResult:
        resolver = ChoiceResolver(comparison.differences, comparison.user_choices, comparison.manual_edits)
        return self.merger.merge(local_template.xml_content, comparison.differences, resolver, local_template.name)

    @staticmethod
    def _updated_record(local_template: TemplateRecord, merge_result: MergeResult) -> TemplateRecord:
        updated_template = dataclasses.replace(
            local_template,
            xml_content=merge_result.xml_content,
            last_updated_at=datetime.now(),
        )
        for field_name, value in merge_result.applied_fields.items():
            setattr(updated_template, field_name, value)
        return updated_template

    def _ensure_backup_directory(self, template_name: str) -> None:
        try:
            self.file_store.ensure_directory(self.backup_directory)
        except OSError as e:
            raise BackupError(f"Could not create backup directory {self.backup_directory}: {e}", template_name) from e

    def _create_backup(self, template_path: str, template_name: str) -> Optional[str]:
        """Copy the current template file into the backup directory; None when there is no file yet."""
        if not self.file_store.exists(template_path):
            self.logger.info(f"No existing file at {template_path}; backup skipped")
            return None

        backup_path = self._backup_path(template_path)
        try:
            self.file_store.copy(template_path, backup_path)
        except OSError as e:
            raise BackupError(f"Could not back up {template_path}: {e}", template_name) from e

        self.logger.info(f"Created backup: {backup_path}")
        return backup_path

    def _backup_path(self, template_path: str) -> str:
        timestamp = datetime.now().strftime(self.backup_timestamp_format)
        stem = Path(template_path).stem
        backup_path = Path(self.backup_directory) / f"{stem}_backup_{timestamp}.xml"

        counter = 1
        while self.file_store.exists(str(backup_path)):
            backup_path = Path(self.backup_directory) / f"{stem}_backup_{timestamp}_{counter}.xml"
            counter += 1
        if counter > 1:
            self.logger.warning(f"Backup for {template_path} already exists for {timestamp}; using {backup_path.name}")

        return str(backup_path)

    def _read_original(self, template_path: str, template_name: str) -> str:
        try:
            return self.file_store.read(template_path)
        except OSError as e:
            raise BackupError(f"Could not read {template_path} before writing: {e}", template_name) from e

    def _write_template(self, template_path: str, xml_content: str, template_name: str) -> None:
        try:
            self.file_store.write(template_path, xml_content)
        except OSError as e:
            raise WriteError(f"Could not write file {template_path}: {e}", template_path, template_name) from e
        self.logger.info(f"Updated template file: {template_path}")

    def _restore_template(self, template_path: str, original_content: Optional[str], template_name: str) -> None:
        try:
            if original_content is None:
                self.file_store.remove(template_path)
            else:
                self.file_store.write(template_path, original_content)
        except OSError as e:
            self.logger.error(f"Could not restore {template_path} for template {template_name}: {e}")
            return
        self.logger.info(f"Restored template file: {template_path}")
