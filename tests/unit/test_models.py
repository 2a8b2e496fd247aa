"""
Unit tests for the transformation data model.
"""

import pytest

from transformation.models import (
    FieldMapping,
    StepKind,
    TransformationRule,
    TransformationStep,
    new_step_id,
)


class TestStepKind:
    """Test kind tag parsing."""

    def test_parse_tag(self):
        assert StepKind.parse("date_format") is StepKind.DATE_FORMAT

    def test_parse_is_case_insensitive(self):
        assert StepKind.parse(" Uppercase ") is StepKind.UPPERCASE

    def test_parse_passes_kind_through(self):
        assert StepKind.parse(StepKind.TRIM) is StepKind.TRIM

    def test_parse_unknown_lists_known_kinds(self):
        with pytest.raises(ValueError, match="format_phone"):
            StepKind.parse("shout")


class TestTransformationStep:
    """Test step construction."""

    def test_kind_coerced_from_string(self):
        step = TransformationStep("trim")
        assert step.kind is StepKind.TRIM
        assert step.parameter is None

    def test_parameter_coerced_to_string(self):
        assert TransformationStep("substring", 3).parameter == "3"

    def test_ids_are_generated_and_distinct(self):
        assert TransformationStep("trim").id != TransformationStep("trim").id
        assert len(new_step_id()) == 12


class TestFieldMapping:
    """Test field mapping behavior."""

    def test_empty_mapping_is_passthrough(self):
        assert FieldMapping("a", "b").is_passthrough()

    def test_get_step(self):
        step = TransformationStep("trim", id="x")
        mapping = FieldMapping("a", "b", [step])
        assert mapping.get_step("x") is step
        assert mapping.get_step("missing") is None

    @pytest.mark.parametrize("source,target", [("", "b"), ("a", ""), ("  ", "b")])
    def test_field_names_required(self, source, target):
        with pytest.raises(ValueError, match="cannot be empty"):
            FieldMapping(source, target)


class TestTransformationRule:
    """Test rule behavior."""

    def test_display_name_defaults_to_endpoint(self):
        assert TransformationRule("employees").display_name == "employees"

    def test_endpoint_required(self):
        with pytest.raises(ValueError):
            TransformationRule("")

    def test_lookup_and_counts(self, employee_rule):
        assert employee_rule.get_mapping("hired_on").target_field == "hireDate"
        assert employee_rule.get_mapping("missing") is None
        assert employee_rule.source_fields() == ["first_name", "employee_id", "hired_on"]
        assert employee_rule.get_step_count() == 3

    def test_duplicate_source_fields(self):
        rule = TransformationRule(
            "e",
            mappings=[FieldMapping("a", "x"), FieldMapping("b", "y"), FieldMapping("a", "z")],
        )
        assert rule.duplicate_source_fields() == ["a"]
