"""
Conversion between TransformationRule and its persisted shape.

A rule is stored as two maps keyed by source field:

    field_mapping:        {"first_name": "firstName", ...}
    transformation_rules: {"first_name": [{"id": "a1", "type": "trim"}], ...}

Only sources with at least one step appear in transformation_rules. Joining
the two maps back together on source_field restores each mapping's steps.
"""

import logging
from typing import Any

import jsonschema

from transformation.models import FieldMapping, StepKind, TransformationRule, TransformationStep, new_step_id

from .errors import RuleFormatError

logger = logging.getLogger(__name__)

STEP_SCHEMA = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "type": {"type": "string", "enum": [kind.value for kind in StepKind]},
        "params": {"type": ["string", "number", "null"]},
    },
}

PERSISTED_RULE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["endpoint_id", "field_mapping"],
    "properties": {
        "endpoint_id": {"type": "string", "minLength": 1},
        "display_name": {"type": ["string", "null"]},
        "rule_id": {"type": ["string", "null"]},
        "field_mapping": {
            "type": ["object", "null"],
            "additionalProperties": {"type": "string", "minLength": 1},
        },
        "transformation_rules": {
            "type": ["object", "null"],
            "additionalProperties": {"type": "array", "items": STEP_SCHEMA},
        },
    },
}


def step_to_dict(step: TransformationStep) -> dict[str, Any]:
    """Serialize a step as {"id", "type", "params"?}."""
    data: dict[str, Any] = {"id": step.id, "type": step.kind.value}
    if step.parameter is not None:
        data["params"] = step.parameter
    return data


def step_from_dict(data: dict[str, Any]) -> TransformationStep:
    """Deserialize a step; a missing id gets a fresh one."""
    step_id = data.get("id")
    return TransformationStep(
        kind=data["type"],
        parameter=data.get("params"),
        id=str(step_id) if step_id is not None else new_step_id(),
    )


def flatten_rule(rule: TransformationRule) -> dict[str, Any]:
    """
    Split a rule into its persisted payload.

    Args:
        rule: Rule to serialize

    Returns:
        Dict with endpoint_id, display_name, rule_id, field_mapping and
        transformation_rules
    """
    field_mapping = {m.source_field: m.target_field for m in rule.mappings}
    transformation_rules = {
        m.source_field: [step_to_dict(step) for step in m.steps]
        for m in rule.mappings
        if m.steps
    }
    return {
        "endpoint_id": rule.endpoint_id,
        "display_name": rule.display_name,
        "rule_id": rule.rule_id,
        "field_mapping": field_mapping,
        "transformation_rules": transformation_rules,
    }


def validate_payload(payload: Any) -> None:
    """
    Check a payload against PERSISTED_RULE_SCHEMA.

    Raises:
        RuleFormatError: If the payload does not match
    """
    try:
        jsonschema.validate(instance=payload, schema=PERSISTED_RULE_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        endpoint = payload.get("endpoint_id") if isinstance(payload, dict) else None
        raise RuleFormatError(
            f"Malformed stored rule at {location}: {e.message}",
            endpoint_id=endpoint,
        ) from e


def join_rule(payload: dict[str, Any]) -> TransformationRule:
    """
    Rebuild a rule from its persisted payload.

    Each field_mapping entry becomes a FieldMapping carrying the steps stored
    under the same source field. Step lists for sources that are not mapped
    are dropped with a warning.

    Raises:
        RuleFormatError: If the payload is malformed
    """
    validate_payload(payload)

    endpoint_id = payload["endpoint_id"]
    field_mapping = payload.get("field_mapping") or {}
    step_lists = payload.get("transformation_rules") or {}

    orphans = sorted(set(step_lists) - set(field_mapping))
    if orphans:
        logger.warning(
            "Dropping steps for unmapped source fields",
            extra={"endpoint": endpoint_id, "source_fields": orphans},
        )

    try:
        mappings = [
            FieldMapping(
                source_field=source,
                target_field=target,
                steps=[step_from_dict(s) for s in step_lists.get(source, [])],
            )
            for source, target in field_mapping.items()
        ]
        return TransformationRule(
            endpoint_id=endpoint_id,
            display_name=payload.get("display_name") or "",
            mappings=mappings,
            rule_id=payload.get("rule_id"),
        )
    except ValueError as e:
        raise RuleFormatError(
            f"Malformed stored rule: {e}", endpoint_id=endpoint_id
        ) from e
