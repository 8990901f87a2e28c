"""
Read-only preview of a pending merge.

Runs choice resolution and the XML merge without touching the store, the
template file or the comparison status. Preview is advisory: a missing choice
map or an unparseable local document yields an empty preview instead of an
error.
"""

import logging

from typing import Dict, Optional

from ..exceptions import XMLParsingError
from ..models import (
    BasicFieldDifference,
    ChangePreview,
    ConfigDifference,
    Difference,
    NewConfigDifference,
    RemovedConfigDifference,
)
from ..parsing.template_parser import TemplateParser
from .choice_resolver import ChoiceResolver
from .xml_merger import XMLMerger


class PreviewBuilder:
    """Builds a ChangePreview for a local document, difference map and choice set."""

    def __init__(self, parser: Optional[TemplateParser] = None):
        self.logger = logging.getLogger(__name__)
        self.merger = XMLMerger(parser)

    def build(self, local_xml: str, differences: Dict[str, Difference], user_choices: Optional[Dict[str, str]],
              manual_edits: Optional[Dict[str, str]] = None, template_name: Optional[str] = None) -> ChangePreview:
        """
        Summarize what applying the choices would change.

        Args:
            local_xml: Local template document
            differences: Difference map
            user_choices: Flat user choice map
            manual_edits: Flat manual edit map
            template_name: Optional template name for logging

        Returns:
            ChangePreview; empty when no choices are present or the document cannot be parsed
        """
        if not user_choices:
            return ChangePreview()

        resolver = ChoiceResolver(differences, user_choices, manual_edits)
        try:
            merge_result = self.merger.merge(local_xml, differences, resolver, template_name)
        except XMLParsingError as e:
            self.logger.warning(f"Preview unavailable for template {template_name}: {e}")
            return ChangePreview()

        preview = ChangePreview(xml_preview=merge_result.xml_content)
        for difference in differences.values():
            if isinstance(difference, BasicFieldDifference):
                value = resolver.resolve_basic_field(difference)
                if value is not None:
                    preview.basic_fields[difference.field_name] = {"from": difference.local, "to": value}

            elif isinstance(difference, ConfigDifference):
                resolved = resolver.resolve_config(difference)
                if resolved:
                    preview.configs[difference.config_name] = {
                        "action": "modify",
                        "changes": {
                            attribute: {"from": difference.field_differences[attribute].local, "to": value}
                            for attribute, value in resolved.items()
                        },
                    }

            elif isinstance(difference, NewConfigDifference):
                attributes = resolver.resolve_new_config(difference)
                if attributes is not None:
                    preview.configs[difference.config_name] = {"action": "add", "config": attributes}

            elif isinstance(difference, RemovedConfigDifference):
                if resolver.resolve_removed_config(difference):
                    preview.configs[difference.config_name] = {
                        "action": "remove",
                        "config": difference.local.to_dict(),
                    }

        return preview
