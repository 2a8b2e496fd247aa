"""
SQL identifier validation and quoting for PostgreSQL.

Table and column names cannot be bound as query parameters, so the rule
store validates them against a strict pattern and double-quotes them before
interpolating into SQL text.
"""

import re

VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(identifier: str) -> None:
    """
    Validate a SQL identifier (table name, column name, etc.).

    Raises:
        ValueError: If the identifier is empty or contains invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, and underscores are allowed, "
            "and must start with a letter or underscore."
        )


def validate_schema_table(schema_table: str) -> None:
    """
    Validate a "table" or "schema.table" name, part by part.

    Raises:
        ValueError: If the name format is invalid
    """
    if not schema_table:
        raise ValueError("Schema.table identifier cannot be empty")

    parts = schema_table.split(".")
    try:
        if len(parts) > 2:
            raise ValueError("at most one schema qualifier is allowed")
        for part in parts:
            validate_identifier(part)
    except ValueError as e:
        raise ValueError(f"Invalid schema.table identifier: {schema_table!r}. {e}") from e


def quote_identifier(identifier: str) -> str:
    """Validate and double-quote a single identifier."""
    validate_identifier(identifier)
    return f'"{identifier}"'


def quote_schema_table(schema_table: str) -> str:
    """
    Validate and quote a table name, optionally schema-qualified.

    >>> quote_schema_table("public.integration_sync_configs")
    '"public"."integration_sync_configs"'
    """
    validate_schema_table(schema_table)
    return ".".join(quote_identifier(part) for part in schema_table.split("."))
