"""
Data model for field mappings and their transformation steps.

A TransformationRule belongs to one integration endpoint and owns an
ordered list of FieldMappings; each mapping owns an ordered list of
TransformationSteps. The source field is the key that joins a mapping to
its steps when the rule is flattened for persistence.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    """Closed set of step operations."""

    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    CONCAT = "concat"
    SPLIT = "split"
    SUBSTRING = "substring"
    REPLACE = "replace"
    DATE_FORMAT = "date_format"
    NUMBER_FORMAT = "number_format"
    DEFAULT = "default"
    CUSTOM = "custom"
    FORMAT_PHONE = "format_phone"

    @classmethod
    def parse(cls, value: "str | StepKind") -> "StepKind":
        """
        Convert a serialized kind tag to a StepKind.

        Raises:
            ValueError: If the tag is not a known kind
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(k.value for k in cls)
            raise ValueError(
                f"Unknown transformation type {value!r}. Expected one of: {known}"
            ) from None


def new_step_id() -> str:
    """Generate a step id unique within its mapping."""
    return uuid.uuid4().hex[:12]


@dataclass
class TransformationStep:
    """One typed operation applied to a field value."""

    kind: StepKind
    parameter: str | None = None
    id: str = field(default_factory=new_step_id)

    def __post_init__(self) -> None:
        self.kind = StepKind.parse(self.kind)
        if self.parameter is not None and not isinstance(self.parameter, str):
            self.parameter = str(self.parameter)


@dataclass
class FieldMapping:
    """Maps one source field to a target field through ordered steps."""

    source_field: str
    target_field: str
    steps: list[TransformationStep] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.source_field or not self.source_field.strip():
            raise ValueError("source_field cannot be empty")
        if not self.target_field or not self.target_field.strip():
            raise ValueError("target_field cannot be empty")

    def get_step(self, step_id: str) -> TransformationStep | None:
        """Find a step by id."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def is_passthrough(self) -> bool:
        """True when the mapping copies its value unchanged."""
        return not self.steps


@dataclass
class TransformationRule:
    """All field mappings configured for one integration endpoint."""

    endpoint_id: str
    display_name: str = ""
    mappings: list[FieldMapping] = field(default_factory=list)
    rule_id: str | None = None

    def __post_init__(self) -> None:
        if not self.endpoint_id or not self.endpoint_id.strip():
            raise ValueError("endpoint_id cannot be empty")
        if not self.display_name:
            self.display_name = self.endpoint_id

    def get_mapping(self, source_field: str) -> FieldMapping | None:
        """Find the mapping for a source field."""
        for mapping in self.mappings:
            if mapping.source_field == source_field:
                return mapping
        return None

    def source_fields(self) -> list[str]:
        """Source fields in mapping order."""
        return [mapping.source_field for mapping in self.mappings]

    def duplicate_source_fields(self) -> list[str]:
        """Source fields that appear in more than one mapping."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for source in self.source_fields():
            if source in seen and source not in duplicates:
                duplicates.append(source)
            seen.add(source)
        return duplicates

    def get_step_count(self) -> int:
        """Total number of steps across all mappings."""
        return sum(len(mapping.steps) for mapping in self.mappings)
