"""
Unit tests for SQL identifier validation and quoting.

Table names reach SQL text through string interpolation, so anything that
is not a plain identifier must be rejected before quoting.
"""

import pytest

from utils.sql_safety import (
    quote_identifier,
    quote_schema_table,
    validate_identifier,
    validate_schema_table,
)

MALICIOUS_INPUTS = [
    "customers; DROP TABLE users--",
    "customers' OR '1'='1",
    "customers/**/UNION/**/SELECT",
    "../etc/passwd",
    "customers\x00malicious",
    'configs"; DELETE FROM configs; --',
]


class TestValidateIdentifier:
    """Test single identifier validation"""

    @pytest.mark.parametrize("name", ["configs", "_private", "Sync_Configs_2"])
    def test_valid(self, name):
        validate_identifier(name)

    def test_empty(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_identifier("")

    @pytest.mark.parametrize("name", MALICIOUS_INPUTS + ["2fast", "public.configs"])
    def test_rejected(self, name):
        with pytest.raises(ValueError, match="Invalid SQL identifier"):
            validate_identifier(name)


class TestValidateSchemaTable:
    """Test optionally schema-qualified table validation"""

    @pytest.mark.parametrize("name", ["configs", "public.configs"])
    def test_valid(self, name):
        validate_schema_table(name)

    @pytest.mark.parametrize("name", MALICIOUS_INPUTS + ["a.b.c", "public.", ".configs"])
    def test_rejected(self, name):
        with pytest.raises(ValueError, match="Invalid schema.table identifier"):
            validate_schema_table(name)

    def test_empty(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_schema_table("")

    def test_error_names_offending_part(self):
        with pytest.raises(ValueError, match="Invalid SQL identifier: '2fast'"):
            validate_schema_table("public.2fast")


class TestQuoting:
    """Test double-quote quoting"""

    def test_quote_identifier(self):
        assert quote_identifier("configs") == '"configs"'

    def test_quote_table(self):
        assert quote_schema_table("integration_sync_configs") == '"integration_sync_configs"'

    def test_quote_schema_table(self):
        assert quote_schema_table("public.configs") == '"public"."configs"'

    @pytest.mark.parametrize("name", MALICIOUS_INPUTS)
    def test_quoting_validates_first(self, name):
        with pytest.raises(ValueError):
            quote_schema_table(name)
