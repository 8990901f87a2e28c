"""
Core data models for the template sync system.

This module defines the primary data structures used throughout the system:
template records and their config entries, the tagged difference variants
produced by the comparison stage, the comparison itself with its user choices,
and the bookkeeping records for sync runs and change previews.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any, Union
from enum import Enum


# Scalar template fields compared by the difference calculator, in comparison order.
BASIC_FIELDS = ("name", "network", "category", "banner", "webui", "description", "template_version")

# Config attributes compared for configs present on both sides.
CONFIG_COMPARE_FIELDS = ("target", "default_value", "actual_value", "mode", "description", "required", "display")

# Config attributes that can carry a manual edit when a new config is added.
CONFIG_EDITABLE_FIELDS = ("config_type",) + CONFIG_COMPARE_FIELDS


class TemplateSource(Enum):
    """Origin of a template record."""
    LOCAL = "local"
    COMMUNITY = "community"


class TemplateStatus(Enum):
    """Lifecycle state of a template record."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ComparisonStatus(Enum):
    """Lifecycle state of a local/community comparison."""
    PENDING = "pending"
    REVIEWED = "reviewed"
    APPLIED = "applied"


class DifferenceType(Enum):
    """Discriminator for difference map entries."""
    BASIC_FIELD = "basic_field"
    CONFIG = "config"
    NEW_CONFIG = "new_config"
    REMOVED_CONFIG = "removed_config"


class Choice(Enum):
    """Per-field user decision."""
    LOCAL = "local"
    COMMUNITY = "community"


def humanize(field_name: str) -> str:
    """Turn a field identifier into a display label ("template_version" -> "Template version")."""
    text = field_name.replace("_", " ").strip()
    return text[:1].upper() + text[1:].lower()


def is_manual_edit_present(value: Any) -> bool:
    """A manual edit counts only when it is non-blank; blank edits are treated as absent."""
    return value is not None and str(value).strip() != ""


@dataclass
class ConfigEntry:
    """
    One named configuration slot (port, path, variable, label) of a template.

    Attributes:
        name: Config name, unique within a template (case-sensitive)
        config_type: Port, Path, Variable, Label, ...
        target: Container-side target (port number, mount path, variable name)
        default_value: Value of the Default attribute
        actual_value: Inline text content of the Config element
        mode: Mode attribute (tcp/udp, rw/ro, ...)
        description: Description attribute
        required: True only when the Required attribute is literally "true"
        display: Display attribute, "always" when absent
        order_index: Zero-based position of the element in the document
    """
    name: str
    config_type: Optional[str] = None
    target: Optional[str] = None
    default_value: Optional[str] = None
    actual_value: Optional[str] = None
    mode: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    display: str = "always"
    order_index: int = 0

    def __post_init__(self):
        """Validate config entry."""
        if not self.name:
            raise ValueError("name cannot be empty")

    def comparable_value(self, attribute: str) -> Optional[str]:
        """
        Return an attribute as a string suitable for comparison.

        Required is rendered as "true" or None (false and absent are
        indistinguishable in the document).
        """
        value = getattr(self, attribute)
        if attribute == "required":
            return "true" if value else None
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "config_type": self.config_type,
            "target": self.target,
            "default_value": self.default_value,
            "actual_value": self.actual_value,
            "mode": self.mode,
            "description": self.description,
            "required": self.required,
            "display": self.display,
            "order_index": self.order_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigEntry":
        return cls(
            name=data["name"],
            config_type=data.get("config_type"),
            target=data.get("target"),
            default_value=data.get("default_value"),
            actual_value=data.get("actual_value"),
            mode=data.get("mode"),
            description=data.get("description"),
            required=bool(data.get("required", False)),
            display=data.get("display") or "always",
            order_index=int(data.get("order_index", 0)),
        )


@dataclass
class TemplateRecord:
    """
    A container template from either origin.

    ``xml_content`` is the authoritative document; the scalar fields are
    denormalized copies of values inside it, kept in sync by the extractor.

    Attributes:
        name: Container name (Name element)
        repository: Image repository (Repository element)
        source: Local file or community catalog
        xml_content: Serialized template document
        network: Network element
        category: Category element (UnRAID colon form for local templates)
        banner: Icon element
        webui: WebUI element
        description: Overview element
        template_version: Date element
        id: Store-assigned identifier
        local_path: Backing file path, local templates only
        status: Active or inactive (file disappeared)
        not_in_community: Local template the user excluded from community sync
        last_updated_at: Last time the record content changed
    """
    name: str
    repository: str
    source: TemplateSource
    xml_content: str
    network: Optional[str] = None
    category: Optional[str] = None
    banner: Optional[str] = None
    webui: Optional[str] = None
    description: Optional[str] = None
    template_version: Optional[str] = None
    id: Optional[int] = None
    local_path: Optional[str] = None
    status: TemplateStatus = TemplateStatus.ACTIVE
    not_in_community: bool = False
    last_updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate template record and coerce enum fields."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if not self.repository:
            raise ValueError("repository cannot be empty")
        if not self.xml_content:
            raise ValueError("xml_content cannot be empty")
        if isinstance(self.source, str):
            self.source = TemplateSource(self.source)
        if isinstance(self.status, str):
            self.status = TemplateStatus(self.status)

    @property
    def is_local(self) -> bool:
        return self.source is TemplateSource.LOCAL

    @property
    def is_community(self) -> bool:
        return self.source is TemplateSource.COMMUNITY

    @property
    def should_sync_with_community(self) -> bool:
        """Local templates are synced unless the user flagged them as not in the catalog."""
        return self.is_local and not self.not_in_community

    def field_value(self, field_name: str) -> Optional[str]:
        if field_name not in BASIC_FIELDS:
            raise ValueError(f"Unknown template field: {field_name}")
        return getattr(self, field_name)


@dataclass
class ExtractedTemplate:
    """
    Normalized record produced by the field extractor.

    Attributes:
        fields: Scalar fields keyed by template field name (plus "repository")
        configs: Config entries in document order
    """
    fields: Dict[str, Optional[str]]
    configs: List[ConfigEntry]

    def config_map(self) -> Dict[str, ConfigEntry]:
        """Config entries keyed by name. Later duplicates replace earlier ones."""
        return {config.name: config for config in self.configs}


@dataclass
class FieldChange:
    """Local and community value of one differing attribute."""
    local: Optional[str]
    community: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"local": self.local, "community": self.community}


@dataclass
class BasicFieldDifference:
    """A scalar template field whose normalized values differ."""
    field: str
    local: Optional[str]
    community: Optional[str]

    type = DifferenceType.BASIC_FIELD

    @property
    def key(self) -> str:
        return self.field

    @property
    def field_name(self) -> str:
        return humanize(self.field)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "field": self.field,
            "field_name": self.field_name,
            "local": self.local,
            "community": self.community,
        }


@dataclass
class ConfigDifference:
    """A config present on both sides with at least one differing attribute."""
    config_name: str
    field_differences: Dict[str, FieldChange]
    local: Optional[ConfigEntry] = None
    community: Optional[ConfigEntry] = None

    type = DifferenceType.CONFIG

    @property
    def key(self) -> str:
        return f"config_{self.config_name}"

    @property
    def field_name(self) -> str:
        return f"Config: {self.config_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "config_name": self.config_name,
            "field_name": self.field_name,
            "local": self.local.to_dict() if self.local else None,
            "community": self.community.to_dict() if self.community else None,
            "field_differences": {
                attribute: change.to_dict() for attribute, change in self.field_differences.items()
            },
        }


@dataclass
class NewConfigDifference:
    """A config that exists only in the community template."""
    config_name: str
    community: ConfigEntry

    type = DifferenceType.NEW_CONFIG

    @property
    def key(self) -> str:
        return f"new_config_{self.config_name}"

    @property
    def field_name(self) -> str:
        return f"New Config: {self.config_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "config_name": self.config_name,
            "field_name": self.field_name,
            "community": self.community.to_dict(),
        }


@dataclass
class RemovedConfigDifference:
    """A config that exists only in the local template."""
    config_name: str
    local: ConfigEntry

    type = DifferenceType.REMOVED_CONFIG

    @property
    def key(self) -> str:
        return f"removed_config_{self.config_name}"

    @property
    def field_name(self) -> str:
        return f"Removed Config: {self.config_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "config_name": self.config_name,
            "field_name": self.field_name,
            "local": self.local.to_dict(),
        }


Difference = Union[BasicFieldDifference, ConfigDifference, NewConfigDifference, RemovedConfigDifference]


def difference_from_dict(key: str, data: Dict[str, Any]) -> Difference:
    """
    Rebuild a difference variant from its tagged-dict form.

    Args:
        key: Difference map key the entry was stored under
        data: Tagged dict with a "type" discriminator

    Returns:
        The matching difference dataclass

    Raises:
        ValueError: If the type discriminator is unknown
    """
    difference_type = DifferenceType(data["type"])

    if difference_type is DifferenceType.BASIC_FIELD:
        return BasicFieldDifference(
            field=data.get("field") or key,
            local=data.get("local"),
            community=data.get("community"),
        )
    if difference_type is DifferenceType.CONFIG:
        return ConfigDifference(
            config_name=data["config_name"],
            field_differences={
                attribute: FieldChange(change.get("local"), change.get("community"))
                for attribute, change in (data.get("field_differences") or {}).items()
            },
            local=ConfigEntry.from_dict(data["local"]) if data.get("local") else None,
            community=ConfigEntry.from_dict(data["community"]) if data.get("community") else None,
        )
    if difference_type is DifferenceType.NEW_CONFIG:
        return NewConfigDifference(
            config_name=data["config_name"],
            community=ConfigEntry.from_dict(data["community"]),
        )
    return RemovedConfigDifference(
        config_name=data["config_name"],
        local=ConfigEntry.from_dict(data["local"]),
    )


@dataclass(frozen=True)
class DifferenceKey:
    """
    Structured key into the choice and manual edit maps.

    ``attribute`` is set for per-attribute choices of a config or new config
    entry. The string form is ``<difference_key>`` or
    ``<difference_key>_<attribute>``.
    """
    difference_key: str
    attribute: Optional[str] = None

    def to_string(self) -> str:
        if self.attribute:
            return f"{self.difference_key}_{self.attribute}"
        return self.difference_key

    @classmethod
    def parse(cls, raw_key: str, differences: Dict[str, Difference]) -> Optional["DifferenceKey"]:
        """
        Resolve a flattened key against a known difference map.

        Exact difference keys win over attribute keys, so a config named
        ``Web_target`` is never mistaken for the ``target`` attribute of a
        config named ``Web``.

        Returns:
            The structured key, or None if the key matches nothing in the map
        """
        if raw_key in differences:
            return cls(raw_key)

        for difference_key, difference in differences.items():
            if difference.type not in (DifferenceType.CONFIG, DifferenceType.NEW_CONFIG):
                continue
            prefix = f"{difference_key}_"
            if raw_key.startswith(prefix) and raw_key[len(prefix):] in CONFIG_EDITABLE_FIELDS:
                return cls(difference_key, raw_key[len(prefix):])
        return None


@dataclass
class TemplateComparison:
    """
    Pairs one local template with its community counterpart.

    Attributes:
        local_template_id: Store id of the local template
        community_template_id: Store id of the community template
        status: pending -> reviewed -> applied
        differences: Difference map keyed by difference key
        user_choices: Flat choice map ("local"/"community") keyed by flattened difference key
        manual_edits: Flat manual override map keyed by flattened difference key
        id: Store-assigned identifier
        last_compared_at: When differences were last recomputed
        applied_at: When the merge was written back
    """
    local_template_id: int
    community_template_id: int
    status: ComparisonStatus = ComparisonStatus.PENDING
    differences: Dict[str, Difference] = field(default_factory=dict)
    user_choices: Dict[str, str] = field(default_factory=dict)
    manual_edits: Dict[str, str] = field(default_factory=dict)
    id: Optional[int] = None
    last_compared_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = ComparisonStatus(self.status)

    @property
    def is_pending(self) -> bool:
        return self.status is ComparisonStatus.PENDING

    @property
    def is_reviewed(self) -> bool:
        return self.status is ComparisonStatus.REVIEWED

    @property
    def is_applied(self) -> bool:
        return self.status is ComparisonStatus.APPLIED

    @property
    def has_differences(self) -> bool:
        return bool(self.differences)

    def user_choice_for(self, key: str) -> Optional[str]:
        return self.user_choices.get(key)

    def set_user_choice(self, key: str, choice: Union[str, Choice]) -> None:
        self.user_choices[key] = Choice(choice).value

    def manual_edit_for(self, key: str) -> Optional[str]:
        return self.manual_edits.get(key)

    def set_manual_edit(self, key: str, value: str) -> None:
        self.manual_edits[key] = value

    def has_manual_edit(self, key: str) -> bool:
        return is_manual_edit_present(self.manual_edits.get(key))

    def differences_to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: difference.to_dict() for key, difference in self.differences.items()}


@dataclass
class ChangePreview:
    """
    Read-only summary of what applying the current choices would do.

    Attributes:
        basic_fields: Display field name -> {"from", "to"}
        configs: Config name -> {"action": modify|add|remove, ...}
        xml_preview: Fully merged document text
    """
    basic_fields: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    xml_preview: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.basic_fields and not self.configs and self.xml_preview is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "basic_fields": self.basic_fields,
            "configs": self.configs,
            "xml_preview": self.xml_preview,
        }


@dataclass
class SyncResult:
    """Counters reported by a sync run."""
    created: int = 0
    updated: int = 0
    removed: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"created": self.created, "updated": self.updated, "removed": self.removed, "errors": self.errors}


@dataclass
class SyncJobRun:
    """
    Bookkeeping record for one local or community sync run.

    Attributes:
        job_type: "local_sync" or "community_sync"
        started_at: Run start time
        status: running -> completed | failed
        completed_at: Run end time
        results: Counters reported on completion
        error_message: Failure description
        id: Store-assigned identifier
    """
    job_type: str
    started_at: datetime
    status: str = "running"
    completed_at: Optional[datetime] = None
    results: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    id: Optional[int] = None

    JOB_TYPES = ("local_sync", "community_sync")

    def __post_init__(self):
        if self.job_type not in self.JOB_TYPES:
            raise ValueError(f"job_type must be one of {self.JOB_TYPES}")

    @property
    def is_running(self) -> bool:
        return self.status == "running"

    def complete(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.status = "completed"
        self.completed_at = datetime.now()
        self.results = dict(results or {})

    def fail(self, error_message: str) -> None:
        self.status = "failed"
        self.completed_at = datetime.now()
        self.error_message = error_message

    @property
    def duration(self) -> float:
        """Elapsed seconds, measured to now while the run is still going."""
        end_time = self.completed_at or datetime.now()
        return (end_time - self.started_at).total_seconds()

    @property
    def duration_text(self) -> str:
        if not self.completed_at:
            return "Running..."
        if self.duration < 1:
            return "< 1 second"
        return f"{self.duration:.1f} seconds"
