"""
Field-level difference calculation between a local template and its community counterpart.

Scalar fields are compared from the records' denormalized values; configs are
compared from the XML documents. A difference is only recorded when the
normalized values differ, so cosmetic changes (whitespace, category separator
style, inline [tag] markup) never reach the user.
"""

import logging

from typing import Dict, Optional

from ..exceptions import XMLParsingError
from ..models import (
    BASIC_FIELDS,
    CONFIG_COMPARE_FIELDS,
    BasicFieldDifference,
    ConfigDifference,
    ConfigEntry,
    Difference,
    FieldChange,
    NewConfigDifference,
    RemovedConfigDifference,
    TemplateRecord,
)
from ..parsing.template_parser import TemplateParser
from ..utils import ValueNormalizer


class DifferenceCalculator:
    """
    Produces the difference map for a local/community template pair.

    The result maps difference keys to typed entries:
    - ``<field>``: BasicFieldDifference with normalized local/community values
    - ``config_<name>``: ConfigDifference listing only the differing attributes
    - ``new_config_<name>``: NewConfigDifference for configs only in the community template
    - ``removed_config_<name>``: RemovedConfigDifference for configs only in the local template

    Duplicate config names inside one document resolve to the last
    occurrence, matching config sync for persistence.
    """

    def __init__(self, local_template: Optional[TemplateRecord], community_template: Optional[TemplateRecord],
                 parser: Optional[TemplateParser] = None):
        self.logger = logging.getLogger(__name__)
        self.local_template = local_template
        self.community_template = community_template
        self.parser = parser or TemplateParser()

    def calculate(self) -> Dict[str, Difference]:
        """
        Compute the difference map.

        Returns:
            Difference map; empty when either template is missing
        """
        if self.local_template is None or self.community_template is None:
            return {}

        differences: Dict[str, Difference] = {}
        self._compare_basic_fields(differences)
        self._compare_configs(differences)

        self.logger.debug(
            f"Calculated {len(differences)} differences for template {self.local_template.name}"
        )
        return differences

    def _compare_basic_fields(self, differences: Dict[str, Difference]) -> None:
        for field_name in BASIC_FIELDS:
            local_raw = self.local_template.field_value(field_name)
            community_raw = self.community_template.field_value(field_name)

            # Exact matches skip normalization entirely
            if local_raw == community_raw:
                continue

            local_value = ValueNormalizer.normalize_field_value(local_raw, field_name)
            community_value = ValueNormalizer.normalize_field_value(community_raw, field_name)
            if local_value == community_value:
                continue

            difference = BasicFieldDifference(field=field_name, local=local_value, community=community_value)
            differences[difference.key] = difference

    def _compare_configs(self, differences: Dict[str, Difference]) -> None:
        local_configs = self._config_map(self.local_template)
        community_configs = self._config_map(self.community_template)

        for config_name, local_config in local_configs.items():
            community_config = community_configs.get(config_name)
            if community_config is None:
                difference = RemovedConfigDifference(config_name=config_name, local=local_config)
                differences[difference.key] = difference
                continue

            field_differences = self._compare_config_entries(local_config, community_config)
            if not field_differences:
                continue

            difference = ConfigDifference(
                config_name=config_name,
                field_differences=field_differences,
                local=local_config,
                community=community_config,
            )
            differences[difference.key] = difference

        for config_name, community_config in community_configs.items():
            if config_name not in local_configs:
                difference = NewConfigDifference(config_name=config_name, community=community_config)
                differences[difference.key] = difference

    @staticmethod
    def _compare_config_entries(local_config: ConfigEntry, community_config: ConfigEntry) -> Dict[str, FieldChange]:
        field_differences = {}
        for attribute in CONFIG_COMPARE_FIELDS:
            local_value = ValueNormalizer.blank_normalize(local_config.comparable_value(attribute))
            community_value = ValueNormalizer.blank_normalize(community_config.comparable_value(attribute))
            if local_value != community_value:
                field_differences[attribute] = FieldChange(local=local_value, community=community_value)
        return field_differences

    def _config_map(self, template: TemplateRecord) -> Dict[str, ConfigEntry]:
        """Config entries keyed by name; a malformed document yields no configs."""
        try:
            configs = self.parser.extract_configs(template.xml_content, template.name)
        except XMLParsingError as e:
            self.logger.error(f"Failed to parse XML for template {template.name}: {e}")
            return {}
        return {config.name: config for config in configs}
