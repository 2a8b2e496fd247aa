"""
Custom expression step.

Runs a user-supplied expression through the restricted interpreter in
transformation.sandbox. Any failure, whether rejected syntax, an exceeded
limit or an exception raised while evaluating, surfaces as
CustomEvalError.
"""

import ast
import logging
from functools import lru_cache

from transformation.errors import ConfigError, CustomEvalError
from transformation.models import StepKind
from transformation.sandbox import ExpressionError, ExpressionEvaluator

from .base import StepTransformer

logger = logging.getLogger(__name__)

_evaluator = ExpressionEvaluator()


@lru_cache(maxsize=256)
def compile_expression(source: str) -> ast.Expression:
    """
    Compile an expression once per distinct source text.

    Raises:
        CustomEvalError: If the expression is rejected
    """
    try:
        return _evaluator.compile(source)
    except ExpressionError as e:
        raise CustomEvalError(f"custom expression rejected: {e}") from e


class CustomExpressionStep(StepTransformer):
    """Evaluate a restricted expression with ``value`` bound to the input."""

    kind = StepKind.CUSTOM
    requires_parameter = True

    def check_parameter(self, parameter: str | None) -> None:
        super().check_parameter(parameter)
        if not parameter.strip():
            raise ConfigError("custom step requires an expression")
        compile_expression(parameter)

    def apply(self, value: str, parameter: str | None) -> str:
        self.check_parameter(parameter)
        tree = compile_expression(parameter)

        try:
            result = _evaluator.evaluate(tree, value)
        except Exception as e:
            raise CustomEvalError(
                f"custom expression failed: {type(e).__name__}: {e}"
            ) from e

        if result is None:
            return ""
        if isinstance(result, (list, tuple)):
            raise CustomEvalError(
                "custom expression must produce a single value, got a sequence"
            )
        return str(result)
