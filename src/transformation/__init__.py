"""
Field transformation engine for integration sync configurations.

Maps source fields to target fields through ordered, typed transformation
steps, with a preview service for trying a mapping on sample input.
"""

from transformation.errors import (
    ConfigError,
    CustomEvalError,
    InvalidInputError,
    InvalidPatternError,
    MappingExistsError,
    MappingNotFoundError,
    RuleEditError,
    StepError,
    TransformationError,
)
from transformation.models import (
    FieldMapping,
    StepKind,
    TransformationRule,
    TransformationStep,
)
from transformation.steps import check_step_config, evaluate_step
from transformation.pipeline import (
    RecordTransformResult,
    run_mapping,
    run_pipeline,
    transform_record,
    transform_records,
)
from transformation.preview import preview_mapping
from transformation.editor import (
    add_mapping,
    add_step,
    remove_mapping,
    remove_step,
    validate_mapping,
    validate_rule,
)

__version__ = "1.0.0"

__all__ = [
    "StepKind",
    "TransformationStep",
    "FieldMapping",
    "TransformationRule",
    "TransformationError",
    "ConfigError",
    "StepError",
    "InvalidInputError",
    "InvalidPatternError",
    "CustomEvalError",
    "RuleEditError",
    "MappingExistsError",
    "MappingNotFoundError",
    "evaluate_step",
    "check_step_config",
    "run_pipeline",
    "run_mapping",
    "transform_record",
    "transform_records",
    "RecordTransformResult",
    "preview_mapping",
    "add_mapping",
    "remove_mapping",
    "add_step",
    "remove_step",
    "validate_mapping",
    "validate_rule",
]
