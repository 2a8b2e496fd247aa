"""
Base step class and common utilities.

Provides the abstract base class for all step kinds and the shared
metrics for tracking step evaluations.
"""

import logging
from abc import ABC, abstractmethod

from prometheus_client import Counter, Histogram

from transformation.errors import ConfigError
from transformation.models import StepKind
from utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


# Metrics
STEPS_APPLIED = get_or_create_metric(
    lambda: Counter(
        "transformation_steps_applied_total",
        "Total transformation steps applied",
        ["kind"],
    ),
    "transformation_steps_applied",
)

STEP_TIME = get_or_create_metric(
    lambda: Histogram(
        "transformation_step_seconds",
        "Time to apply a transformation step",
        ["kind"],
        buckets=[0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05],
    ),
    "transformation_step_seconds",
)

STEP_ERRORS = get_or_create_metric(
    lambda: Counter(
        "transformation_step_errors_total",
        "Transformation step errors",
        ["kind", "error_type"],
    ),
    "transformation_step_errors",
)


class StepTransformer(ABC):
    """Base class for step kinds."""

    kind: StepKind
    requires_parameter: bool = False

    def check_parameter(self, parameter: str | None) -> None:
        """
        Validate the step parameter without evaluating any input.

        Args:
            parameter: Raw parameter string from the step

        Raises:
            ConfigError: If the parameter is missing or malformed
        """
        if self.requires_parameter and parameter is None:
            raise ConfigError(f"'{self.kind.value}' step requires a parameter")

    @abstractmethod
    def apply(self, value: str, parameter: str | None) -> str:
        """
        Transform a single value.

        Args:
            value: Input string
            parameter: Raw parameter string from the step

        Returns:
            Transformed string

        Raises:
            TransformationError: If the parameter or the input is unusable
        """
        pass

    def get_type(self) -> str:
        """Get step kind label for metrics."""
        return self.kind.value
