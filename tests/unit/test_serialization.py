"""
Unit tests for flattening rules into their persisted shape and back.
"""

import logging

import pytest

from rulestore.errors import RuleFormatError
from rulestore.serialization import (
    flatten_rule,
    join_rule,
    step_from_dict,
    step_to_dict,
    validate_payload,
)
from transformation.models import StepKind, TransformationStep


class TestFlattenRule:
    """Test splitting a rule into field_mapping and transformation_rules."""

    def test_flatten(self, employee_rule):
        payload = flatten_rule(employee_rule)

        assert payload["endpoint_id"] == "employees"
        assert payload["display_name"] == "Employees"
        assert payload["rule_id"] is None
        assert payload["field_mapping"] == {
            "first_name": "firstName",
            "employee_id": "externalId",
            "hired_on": "hireDate",
        }
        assert payload["transformation_rules"] == {
            "first_name": [{"id": "s1", "type": "trim"}, {"id": "s2", "type": "uppercase"}],
            "hired_on": [{"id": "d1", "type": "date_format", "params": "%m/%d/%Y"}],
        }

    def test_passthrough_mappings_have_no_step_list(self, employee_rule):
        assert "employee_id" not in flatten_rule(employee_rule)["transformation_rules"]

    def test_step_without_parameter_omits_params(self):
        assert step_to_dict(TransformationStep("trim", id="x")) == {"id": "x", "type": "trim"}


class TestJoinRule:
    """Test rebuilding a rule from its persisted payload."""

    def test_flatten_then_join_restores_rule(self, employee_rule):
        assert join_rule(flatten_rule(employee_rule)) == employee_rule

    def test_steps_joined_by_source_field(self):
        rule = join_rule({
            "endpoint_id": "e",
            "field_mapping": {"a": "A", "b": "B"},
            "transformation_rules": {"b": [{"id": "1", "type": "lowercase"}]},
        })

        assert rule.get_mapping("a").steps == []
        assert rule.get_mapping("b").steps[0].kind is StepKind.LOWERCASE

    def test_orphan_step_lists_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="rulestore.serialization"):
            rule = join_rule({
                "endpoint_id": "e",
                "field_mapping": {"a": "A"},
                "transformation_rules": {"gone": [{"id": "1", "type": "trim"}]},
            })

        assert rule.source_fields() == ["a"]
        assert "unmapped source fields" in caplog.text

    def test_null_columns_mean_empty(self):
        rule = join_rule({
            "endpoint_id": "e",
            "field_mapping": None,
            "transformation_rules": None,
        })
        assert rule.mappings == []

    def test_step_without_id_gets_one(self):
        step = step_from_dict({"type": "trim"})
        assert step.id

    def test_numeric_params_become_strings(self):
        assert step_from_dict({"id": 5, "type": "substring", "params": 2}).parameter == "2"


class TestPayloadValidation:
    """Test JSON Schema validation of stored payloads."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"field_mapping": {}},
            {"endpoint_id": "", "field_mapping": {}},
            {"endpoint_id": "e", "field_mapping": {"a": 1}},
            {"endpoint_id": "e", "field_mapping": {"a": ""}},
            {"endpoint_id": "e", "field_mapping": {}, "transformation_rules": {"a": {}}},
            {
                "endpoint_id": "e",
                "field_mapping": {"a": "A"},
                "transformation_rules": {"a": [{"id": "1", "type": "shout"}]},
            },
            {
                "endpoint_id": "e",
                "field_mapping": {"a": "A"},
                "transformation_rules": {"a": [{"id": "1"}]},
            },
            ["not", "an", "object"],
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(RuleFormatError):
            validate_payload(payload)

    def test_error_names_location(self):
        with pytest.raises(RuleFormatError, match="field_mapping/a"):
            join_rule({"endpoint_id": "e", "field_mapping": {"a": 3}})

    def test_empty_source_field_rejected(self):
        with pytest.raises(RuleFormatError, match="source_field"):
            join_rule({"endpoint_id": "e", "field_mapping": {"": "A"}})
