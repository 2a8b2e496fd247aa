"""
Pipeline runner for field mappings.

Applies a mapping's steps in their stored order, feeding each step's
output into the next, and stops at the first failing step. Also provides
the record-level entry point used when a whole sync record is mapped.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.tracing import add_span_event, trace_operation

from .errors import TransformationError
from .models import FieldMapping, TransformationRule, TransformationStep
from .steps import evaluate_step

logger = logging.getLogger(__name__)


def run_pipeline(value: str, steps: Iterable[TransformationStep]) -> str:
    """
    Apply steps to a value in order.

    Args:
        value: Initial value
        steps: Ordered steps; an empty sequence returns the value unchanged

    Returns:
        Final transformed value

    Raises:
        TransformationError: The first step failure; later steps are not
            applied and no partial result is returned
    """
    result = value
    for position, step in enumerate(steps, start=1):
        try:
            result = evaluate_step(step, result)
        except TransformationError as e:
            raise e.with_step(step.id, step.kind.value, position)
    return result


def run_mapping(mapping: FieldMapping, value: str) -> str:
    """Apply a mapping's steps to one value."""
    return run_pipeline(value, mapping.steps)


def coerce_field_value(value: Any) -> str:
    """Convert a raw record value to the string a pipeline operates on."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass
class RecordTransformResult:
    """Outcome of applying every mapping of a rule to one record."""

    values: dict[str, str] = field(default_factory=dict)
    errors: dict[str, TransformationError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def error_messages(self) -> dict[str, str]:
        """Errors rendered as strings, keyed by source field."""
        return {source: str(error) for source, error in self.errors.items()}


def transform_record(
    rule: TransformationRule,
    record: Mapping[str, Any],
) -> RecordTransformResult:
    """
    Transform all mapped fields of a record.

    Each mapping runs independently: a failing field is recorded in
    ``errors`` and does not prevent the other fields from being mapped.
    Missing source fields and None values are treated as empty strings.

    Args:
        rule: Rule whose mappings to apply
        record: Source record (field name -> value)

    Returns:
        RecordTransformResult with values keyed by target field and errors
        keyed by source field
    """
    with trace_operation(
        "transform_record",
        kind=trace.SpanKind.INTERNAL,
        endpoint=rule.endpoint_id,
        mapping_count=len(rule.mappings),
    ):
        context_logger = ContextLogger(__name__, endpoint=rule.endpoint_id)
        result = RecordTransformResult()

        for mapping in rule.mappings:
            raw = coerce_field_value(record.get(mapping.source_field))
            try:
                result.values[mapping.target_field] = run_mapping(mapping, raw)
            except TransformationError as e:
                result.errors[mapping.source_field] = e
                add_span_event(
                    "field_transformation_failed",
                    source_field=mapping.source_field,
                    step_id=e.step_id,
                )
                context_logger.warning(
                    f"Field transformation failed: {e}",
                    source_field=mapping.source_field,
                    error_type=type(e).__name__,
                )

        return result


def transform_records(
    rule: TransformationRule,
    records: Iterable[Mapping[str, Any]],
) -> list[RecordTransformResult]:
    """
    Transform multiple records.

    Args:
        rule: Rule whose mappings to apply
        records: Source records

    Returns:
        One RecordTransformResult per record, in input order
    """
    return [transform_record(rule, record) for record in records]
