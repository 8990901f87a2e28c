"""
Resolution of user choices and manual edits into effective values.

User choices and manual edits arrive as flat string-keyed maps. They are parsed
once against the difference map into DifferenceKey-indexed maps, and every
lookup after that goes through the structured key.
"""

import logging

from typing import Dict, Optional

from ..models import (
    CONFIG_EDITABLE_FIELDS,
    BasicFieldDifference,
    Choice,
    ConfigDifference,
    Difference,
    DifferenceKey,
    NewConfigDifference,
    RemovedConfigDifference,
    is_manual_edit_present,
)
from ..utils import ValueNormalizer


class ChoiceResolver:
    """
    Decides, per difference entry, which value the merged document receives.

    Rules:
    - A missing choice means "local" (leave the document untouched).
    - A per-attribute config choice falls back to the config's own choice,
      then to "local".
    - A non-blank manual edit replaces the community value wherever the
      resolved choice is "community".
    """

    def __init__(self, differences: Dict[str, Difference], user_choices: Optional[Dict[str, str]] = None,
                 manual_edits: Optional[Dict[str, str]] = None):
        self.logger = logging.getLogger(__name__)
        self.differences = differences
        self.choices: Dict[DifferenceKey, Choice] = {}
        self.manual_edits: Dict[DifferenceKey, str] = {}

        for raw_key, raw_choice in (user_choices or {}).items():
            key = self._parse_key(raw_key)
            if key is None:
                continue
            try:
                self.choices[key] = Choice(raw_choice)
            except ValueError:
                self.logger.warning(f"Ignoring invalid choice {raw_choice!r} for {raw_key}")

        for raw_key, value in (manual_edits or {}).items():
            key = self._parse_key(raw_key)
            if key is None or not is_manual_edit_present(value):
                continue
            self.manual_edits[key] = str(value)

    def _parse_key(self, raw_key: str) -> Optional[DifferenceKey]:
        key = DifferenceKey.parse(raw_key, self.differences)
        if key is None:
            self.logger.debug(f"Key {raw_key} does not match any difference; ignored")
        return key

    def choice_for(self, key: DifferenceKey) -> Choice:
        return self.choices.get(key, Choice.LOCAL)

    def attribute_choice(self, difference_key: str, attribute: str) -> Choice:
        """Per-attribute choice, falling back to the entry's general choice, then local."""
        explicit = self.choices.get(DifferenceKey(difference_key, attribute))
        if explicit is not None:
            return explicit
        return self.choice_for(DifferenceKey(difference_key))

    def manual_edit(self, key: DifferenceKey) -> Optional[str]:
        return self.manual_edits.get(key)

    def resolve_basic_field(self, difference: BasicFieldDifference) -> Optional[str]:
        """
        Effective value for a basic field.

        Returns:
            Value to write, or None when the local value is kept
        """
        key = DifferenceKey(difference.key)
        if self.choice_for(key) is not Choice.COMMUNITY:
            return None

        value = self.manual_edit(key)
        if value is None:
            value = difference.community or ""
        if difference.field == "category":
            value = ValueNormalizer.to_unraid_category(value)
        return value

    def resolve_config(self, difference: ConfigDifference) -> Dict[str, Optional[str]]:
        """
        Attributes of a changed config that take the community (or manually edited) value.

        Returns:
            Attribute name -> value to write (None removes the attribute)
        """
        resolved = {}
        for attribute, change in difference.field_differences.items():
            if self.attribute_choice(difference.key, attribute) is not Choice.COMMUNITY:
                continue
            value = self.manual_edit(DifferenceKey(difference.key, attribute))
            resolved[attribute] = value if value is not None else change.community
        return resolved

    def resolve_new_config(self, difference: NewConfigDifference) -> Optional[Dict[str, Optional[str]]]:
        """
        Attribute values for a community-only config that should be added.

        Returns:
            Attribute name -> value for the new Config element, or None when it is not added
        """
        if self.choice_for(DifferenceKey(difference.key)) is not Choice.COMMUNITY:
            return None

        community = difference.community
        attributes: Dict[str, Optional[str]] = {"name": community.name}
        for attribute in CONFIG_EDITABLE_FIELDS:
            value = self.manual_edit(DifferenceKey(difference.key, attribute))
            if value is None:
                value = getattr(community, attribute)
                if attribute == "required":
                    value = "true" if value else "false"
            attributes[attribute] = value
        return attributes

    def resolve_removed_config(self, difference: RemovedConfigDifference) -> bool:
        """True when the user adopts the community template's absence of this config."""
        return self.choice_for(DifferenceKey(difference.key)) is Choice.COMMUNITY

    @property
    def has_choices(self) -> bool:
        return bool(self.choices)
