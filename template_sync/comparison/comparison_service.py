"""
Comparison lifecycle: pairing, recomputing, reviewing, previewing and applying.
"""

import difflib
import logging

from datetime import datetime
from typing import Any, Dict, Optional

from lxml import etree

from ..exceptions import XMLParsingError
from ..interfaces import FileStoreInterface, RecordStoreInterface
from ..merge.changes_applier import TemplateChangesApplier
from ..models import ChangePreview, Choice, ComparisonStatus, TemplateComparison, TemplateRecord
from ..parsing.template_parser import TemplateParser
from .difference_calculator import DifferenceCalculator


class ComparisonService:
    """
    Owns the pending -> reviewed -> applied lifecycle of template comparisons.

    Differences are recomputed from the stored templates every time a pair is
    matched, replacing the previous difference map. User choices and manual
    edits are kept across recomputes.
    """

    def __init__(self, store: RecordStoreInterface, file_store: FileStoreInterface, backup_directory: str,
                 parser: Optional[TemplateParser] = None):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.parser = parser or TemplateParser()
        self.applier = TemplateChangesApplier(store, file_store, backup_directory, self.parser)

    def find_or_create_comparison(self, local_template: TemplateRecord,
                                  community_template: TemplateRecord) -> Optional[TemplateComparison]:
        """
        Get the comparison for a local/community pair, creating it on first match.

        Returns:
            The recomputed comparison, or None when the pair is not eligible (the
            local template is excluded from community sync, or the other side is
            not a community template)
        """
        if not local_template.should_sync_with_community or not community_template.is_community:
            self.logger.debug(f"Template {local_template.name} is not eligible for community comparison")
            return None

        comparison = self.store.find_comparison(local_template.id, community_template.id)
        if comparison is None:
            comparison = self.store.save_comparison(
                TemplateComparison(local_template_id=local_template.id, community_template_id=community_template.id)
            )
            self.logger.info(f"Created comparison for template: {local_template.name}")

        return self._recompute(comparison, local_template, community_template)

    def recompute(self, comparison: TemplateComparison) -> TemplateComparison:
        """Recalculate the difference map from the stored templates and save it."""
        local_template = self.store.get_template(comparison.local_template_id)
        community_template = self.store.get_template(comparison.community_template_id)
        return self._recompute(comparison, local_template, community_template)

    def _recompute(self, comparison: TemplateComparison, local_template: TemplateRecord,
                   community_template: TemplateRecord) -> TemplateComparison:
        calculator = DifferenceCalculator(local_template, community_template, self.parser)
        comparison.differences = calculator.calculate()
        comparison.last_compared_at = datetime.now()
        saved = self.store.save_comparison(comparison)

        self.logger.debug(f"Comparison {saved.id} has {len(saved.differences)} differences")
        return saved

    def submit_choices(self, comparison: TemplateComparison, user_choices: Dict[str, str],
                       manual_edits: Optional[Dict[str, str]] = None) -> TemplateComparison:
        """
        Record the user's choices and mark the comparison reviewed.

        The submitted maps replace the previous ones; a key left out of a
        later review no longer carries its earlier choice or manual edit.

        Raises:
            ValueError: If a choice is not "local" or "community"
        """
        choices = {key: Choice(choice).value for key, choice in user_choices.items()}
        comparison.user_choices = choices
        comparison.manual_edits = dict(manual_edits or {})

        comparison.status = ComparisonStatus.REVIEWED
        saved = self.store.save_comparison(comparison)
        self.logger.info(f"Comparison {saved.id} reviewed with {len(saved.user_choices)} choices")
        return saved

    def apply(self, comparison: TemplateComparison) -> TemplateRecord:
        """Apply the reviewed choices; see TemplateChangesApplier.apply."""
        return self.applier.apply(comparison)

    def preview(self, comparison: TemplateComparison) -> ChangePreview:
        return self.applier.preview(comparison)

    def preview_diff(self, comparison: TemplateComparison) -> Dict[str, Any]:
        """
        Side-by-side material for reviewing the merge as text.

        Returns:
            Dictionary with the pretty-printed original and merged documents,
            a unified diff between them and a has_changes flag
        """
        local_template = self.store.get_template(comparison.local_template_id)
        original = self._pretty_print(local_template.xml_content, local_template.name)
        preview = self.applier.preview(comparison)
        updated = self._pretty_print(preview.xml_preview, local_template.name) if preview.xml_preview else original

        diff = "".join(difflib.unified_diff(
            original.splitlines(keepends=True),
            updated.splitlines(keepends=True),
            fromfile="original.xml",
            tofile="updated.xml",
        ))
        return {
            "original": original,
            "updated": updated,
            "diff": diff,
            "has_changes": original != updated,
        }

    def _pretty_print(self, xml_content: str, template_name: str) -> str:
        try:
            root = self.parser.parse(xml_content, template_name)
        except XMLParsingError as e:
            self.logger.warning(f"Could not format XML for template {template_name}: {e}")
            return xml_content
        etree.indent(root, space="  ")
        return etree.tostring(root.getroottree(), encoding="unicode") + "\n"
