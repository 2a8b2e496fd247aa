"""
Editing operations for transformation rules.

All operations take the rule or mapping they act on explicitly and
mutate it in place; nothing here keeps a notion of a "selected" rule or
mapping. Persisting the result is the caller's job (RuleStore.save).
"""

import logging

from .errors import MappingExistsError, MappingNotFoundError, TransformationError
from .models import FieldMapping, StepKind, TransformationRule, TransformationStep, new_step_id
from .steps import check_step_config

logger = logging.getLogger(__name__)


def add_mapping(
    rule: TransformationRule,
    source_field: str,
    target_field: str,
) -> FieldMapping:
    """
    Add a passthrough mapping to a rule.

    Args:
        rule: Rule to edit
        source_field: Source field name (unique within the rule)
        target_field: Target field name

    Returns:
        The new mapping

    Raises:
        MappingExistsError: If the source field is already mapped
        ValueError: If either field name is empty
    """
    source_field = source_field.strip()
    target_field = target_field.strip()

    if rule.get_mapping(source_field) is not None:
        raise MappingExistsError(
            f"Source field '{source_field}' is already mapped in '{rule.endpoint_id}'"
        )

    mapping = FieldMapping(source_field=source_field, target_field=target_field)
    rule.mappings.append(mapping)

    logger.debug(f"Added mapping {source_field} -> {target_field} to {rule.endpoint_id}")
    return mapping


def remove_mapping(rule: TransformationRule, source_field: str) -> FieldMapping:
    """
    Remove a mapping (and its steps) from a rule.

    Raises:
        MappingNotFoundError: If the source field is not mapped
    """
    mapping = rule.get_mapping(source_field)
    if mapping is None:
        raise MappingNotFoundError(
            f"No mapping for source field '{source_field}' in '{rule.endpoint_id}'"
        )

    rule.mappings.remove(mapping)
    logger.debug(f"Removed mapping {source_field} from {rule.endpoint_id}")
    return mapping


def add_step(
    mapping: FieldMapping,
    kind: StepKind | str,
    parameter: str | None = None,
    step_id: str | None = None,
) -> TransformationStep:
    """
    Append a step to the end of a mapping's pipeline.

    The parameter is not validated here; use validate_mapping to report
    configuration problems before saving.

    Args:
        mapping: Mapping to edit
        kind: Step kind
        parameter: Optional step parameter
        step_id: Explicit id (generated if omitted)

    Returns:
        The new step

    Raises:
        MappingExistsError: If step_id is already used in the mapping
        ValueError: If kind is unknown
    """
    step_id = step_id or new_step_id()
    if mapping.get_step(step_id) is not None:
        raise MappingExistsError(
            f"Step id '{step_id}' already exists in mapping '{mapping.source_field}'"
        )

    step = TransformationStep(kind=StepKind.parse(kind), parameter=parameter, id=step_id)
    mapping.steps.append(step)

    logger.debug(f"Added {step.kind.value} step {step.id} to {mapping.source_field}")
    return step


def remove_step(mapping: FieldMapping, step_id: str) -> TransformationStep:
    """
    Remove a step from a mapping, keeping the order of the others.

    Raises:
        MappingNotFoundError: If no step has this id
    """
    step = mapping.get_step(step_id)
    if step is None:
        raise MappingNotFoundError(
            f"No step '{step_id}' in mapping '{mapping.source_field}'"
        )

    mapping.steps.remove(step)
    logger.debug(f"Removed step {step_id} from {mapping.source_field}")
    return step


def validate_mapping(mapping: FieldMapping) -> list[TransformationError]:
    """
    Check every step's parameter without evaluating any input.

    Returns:
        Configuration errors, one per invalid step, in step order
    """
    problems: list[TransformationError] = []
    for position, step in enumerate(mapping.steps, start=1):
        try:
            check_step_config(step)
        except TransformationError as e:
            problems.append(e.with_step(step.id, step.kind.value, position))
    return problems


def validate_rule(rule: TransformationRule) -> dict[str, list[TransformationError]]:
    """
    Validate all mappings of a rule.

    Returns:
        Source field -> configuration errors, for mappings with problems
    """
    report = {}
    for mapping in rule.mappings:
        problems = validate_mapping(mapping)
        if problems:
            report[mapping.source_field] = problems
    return report
