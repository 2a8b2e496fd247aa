"""
Step evaluator for field transformations.

Supports:
- Case conversion and trimming
- Concatenation, splitting and substring extraction
- Regular-expression find/replace
- Date, number and phone formatting
- Fallback values for empty input
- Restricted custom expressions

Every kind is a pure function of (parameter, input). evaluate_step is the
single entry point used by the pipeline runner.
"""

import logging

from transformation.errors import TransformationError
from transformation.models import StepKind, TransformationStep

from .base import STEP_ERRORS, STEP_TIME, STEPS_APPLIED, StepTransformer
from .custom import CustomExpressionStep
from .formats import DateFormatStep, NumberFormatStep, PhoneFormatStep
from .text import (
    ConcatStep,
    DefaultStep,
    LowercaseStep,
    ReplaceStep,
    SplitStep,
    SubstringStep,
    TrimStep,
    UppercaseStep,
)

logger = logging.getLogger(__name__)

STEP_TRANSFORMERS: dict[StepKind, StepTransformer] = {
    transformer.kind: transformer
    for transformer in (
        UppercaseStep(),
        LowercaseStep(),
        TrimStep(),
        ConcatStep(),
        SplitStep(),
        SubstringStep(),
        ReplaceStep(),
        DateFormatStep(),
        NumberFormatStep(),
        DefaultStep(),
        CustomExpressionStep(),
        PhoneFormatStep(),
    )
}


def get_transformer(kind: StepKind) -> StepTransformer:
    """Look up the transformer registered for a kind."""
    return STEP_TRANSFORMERS[StepKind.parse(kind)]


def evaluate_step(step: TransformationStep, value: str) -> str:
    """
    Apply one step to one value.

    Args:
        step: Step to apply
        value: Input string

    Returns:
        Transformed string

    Raises:
        TransformationError: If the step is misconfigured or cannot
            process the input; the error carries the step id and kind
    """
    transformer = get_transformer(step.kind)
    kind = transformer.get_type()

    with STEP_TIME.labels(kind=kind).time():
        try:
            result = transformer.apply(value, step.parameter)
        except TransformationError as e:
            STEP_ERRORS.labels(kind=kind, error_type=type(e).__name__).inc()
            logger.debug(f"Step {step.id} ({kind}) failed: {e.reason}")
            raise e.with_step(step.id, kind)

    STEPS_APPLIED.labels(kind=kind).inc()
    return result


def check_step_config(step: TransformationStep) -> None:
    """
    Validate a step's parameter without evaluating any input.

    Raises:
        TransformationError: If the parameter is missing or malformed
    """
    transformer = get_transformer(step.kind)
    try:
        transformer.check_parameter(step.parameter)
    except TransformationError as e:
        raise e.with_step(step.id, transformer.get_type())


__all__ = [
    "StepTransformer",
    "STEP_TRANSFORMERS",
    "get_transformer",
    "evaluate_step",
    "check_step_config",
    "UppercaseStep",
    "LowercaseStep",
    "TrimStep",
    "ConcatStep",
    "SplitStep",
    "SubstringStep",
    "ReplaceStep",
    "DateFormatStep",
    "NumberFormatStep",
    "DefaultStep",
    "CustomExpressionStep",
    "PhoneFormatStep",
]
