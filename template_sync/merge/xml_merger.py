"""
Applies resolved choices to the local template document.

The local document is the authoritative base: only entries whose choice
resolves to "community" touch it, and each difference entry targets a disjoint
part of the document, so entries are applied independently.
"""

import logging

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import (
    BasicFieldDifference,
    ConfigDifference,
    Difference,
    NewConfigDifference,
    RemovedConfigDifference,
)
from ..parsing.template_document import TemplateDocument
from ..parsing.template_parser import FIELD_ELEMENTS, TemplateParser
from .choice_resolver import ChoiceResolver


@dataclass
class MergeResult:
    """
    Output of one merge.

    Attributes:
        xml_content: Serialized merged document
        applied_fields: Basic field -> value written into the document
        modified_configs: Config name -> attributes written
        added_configs: Config name -> attributes of the appended element
        removed_configs: Names of removed configs
    """
    xml_content: str
    applied_fields: Dict[str, str] = field(default_factory=dict)
    modified_configs: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    added_configs: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    removed_configs: List[str] = field(default_factory=list)


class XMLMerger:
    """Regenerates a template document from the local base plus resolved community values."""

    def __init__(self, parser: Optional[TemplateParser] = None):
        self.logger = logging.getLogger(__name__)
        self.parser = parser or TemplateParser()

    def merge(self, local_xml: str, differences: Dict[str, Difference], resolver: ChoiceResolver,
              template_name: Optional[str] = None) -> MergeResult:
        """
        Apply every difference entry whose choice resolves to "community".

        Args:
            local_xml: Local template document (the base)
            differences: Difference map
            resolver: Choice resolver built from the same difference map
            template_name: Optional template name for error reporting

        Returns:
            MergeResult with the serialized document and what was changed

        Raises:
            XMLParsingError: If the local document cannot be parsed
        """
        document = TemplateDocument.from_string(local_xml, self.parser, template_name)
        result = MergeResult(xml_content="")

        for key, difference in differences.items():
            if isinstance(difference, BasicFieldDifference):
                self._apply_basic_field(document, difference, resolver, result)
            elif isinstance(difference, ConfigDifference):
                self._apply_config(document, difference, resolver, result)
            elif isinstance(difference, NewConfigDifference):
                self._apply_new_config(document, difference, resolver, result)
            elif isinstance(difference, RemovedConfigDifference):
                self._apply_removed_config(document, difference, resolver, result)
            else:
                raise TypeError(f"Unsupported difference entry for key {key}: {type(difference).__name__}")

        result.xml_content = document.to_xml()
        return result

    def _apply_basic_field(self, document: TemplateDocument, difference: BasicFieldDifference,
                           resolver: ChoiceResolver, result: MergeResult) -> None:
        value = resolver.resolve_basic_field(difference)
        if value is None:
            return

        element_name = FIELD_ELEMENTS[difference.field]
        if document.set_element_text(element_name, value):
            result.applied_fields[difference.field] = value
        else:
            self.logger.info(f"Template has no {element_name} element; {difference.field} not updated")

    def _apply_config(self, document: TemplateDocument, difference: ConfigDifference,
                      resolver: ChoiceResolver, result: MergeResult) -> None:
        resolved = resolver.resolve_config(difference)
        if not resolved:
            return

        if document.find_config(difference.config_name) is None:
            self.logger.warning(f"Config {difference.config_name} not found in local template; changes skipped")
            return

        for attribute, value in resolved.items():
            document.set_config_value(difference.config_name, attribute, value)
        result.modified_configs[difference.config_name] = resolved

    def _apply_new_config(self, document: TemplateDocument, difference: NewConfigDifference,
                          resolver: ChoiceResolver, result: MergeResult) -> None:
        attributes = resolver.resolve_new_config(difference)
        if attributes is None:
            return

        if document.append_config(attributes, text=attributes.get("actual_value")):
            result.added_configs[difference.config_name] = attributes

    def _apply_removed_config(self, document: TemplateDocument, difference: RemovedConfigDifference,
                              resolver: ChoiceResolver, result: MergeResult) -> None:
        if not resolver.resolve_removed_config(difference):
            return

        if document.remove_config(difference.config_name):
            result.removed_configs.append(difference.config_name)
        else:
            self.logger.debug(f"Config {difference.config_name} already absent from local template")
