"""
Exceptions raised by rule store backends.
"""


class RuleStoreError(Exception):
    """Base exception for rule store failures."""

    def __init__(self, message: str, endpoint_id: str | None = None):
        self.endpoint_id = endpoint_id
        super().__init__(message)


class RuleNotFoundError(RuleStoreError):
    """Raised when an endpoint has no stored configuration."""

    def __init__(self, endpoint_id: str, rule_id: str | None = None):
        self.rule_id = rule_id
        if rule_id is None:
            message = f"No transformation rules configured for endpoint '{endpoint_id}'"
        else:
            message = f"Rule '{rule_id}' not found for endpoint '{endpoint_id}'"
        super().__init__(message, endpoint_id=endpoint_id)


class PersistError(RuleStoreError):
    """Raised when a rule could not be written."""

    pass


class DuplicateSourceFieldError(RuleStoreError):
    """Raised when a rule maps the same source field more than once."""

    def __init__(self, endpoint_id: str, source_fields: list[str]):
        self.source_fields = source_fields
        super().__init__(
            f"Duplicate source fields in rule for '{endpoint_id}': "
            f"{', '.join(source_fields)}",
            endpoint_id=endpoint_id,
        )


class RuleFormatError(RuleStoreError):
    """Raised when a stored payload does not match the persisted shape."""

    pass
