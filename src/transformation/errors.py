"""
Exception hierarchy for the field transformation engine.

Every failure raised while evaluating a step derives from
TransformationError so callers (preview, record transformer, CLI) can
handle configuration and input problems uniformly.
"""


class TransformationError(Exception):
    """
    Base exception for step evaluation failures.

    Args:
        message: Error description
        step_id: Id of the step that failed (optional)
        kind: Step kind that failed (optional)
        position: 1-based position of the step in its mapping (optional)
    """

    def __init__(
        self,
        message: str,
        step_id: str | None = None,
        kind: str | None = None,
        position: int | None = None,
    ):
        self.reason = message
        self.step_id = step_id
        self.kind = kind
        self.position = position
        super().__init__(message)

    def with_step(
        self,
        step_id: str | None,
        kind: str | None,
        position: int | None = None,
    ) -> "TransformationError":
        """Attach step context, keeping anything already set."""
        self.step_id = self.step_id or step_id
        self.kind = self.kind or kind
        if position is not None:
            self.position = position
        return self

    def __str__(self) -> str:
        context_parts = []
        if self.position is not None:
            context_parts.append(f"step {self.position}")
        if self.kind:
            context_parts.append(f"kind='{self.kind}'")
        if self.step_id:
            context_parts.append(f"id='{self.step_id}'")

        if context_parts:
            return f"{self.reason} ({', '.join(context_parts)})"
        return self.reason


class ConfigError(TransformationError):
    """Raised when a step's parameter is missing or malformed."""

    pass


class StepError(TransformationError):
    """Raised when a well-configured step cannot process its input."""

    pass


class InvalidInputError(StepError):
    """Raised when the input value is not in the form the step expects."""

    pass


class InvalidPatternError(StepError):
    """Raised when a replace step carries a syntactically invalid pattern."""

    pass


class CustomEvalError(StepError):
    """Raised when a custom expression fails to compile or evaluate."""

    pass


class RuleEditError(ValueError):
    """Raised when an editor operation would leave a rule inconsistent."""

    pass


class MappingExistsError(RuleEditError):
    """Raised when adding a mapping for a source field that is already mapped."""

    pass


class MappingNotFoundError(RuleEditError):
    """Raised when a mapping or step to edit does not exist."""

    pass
