"""
Unit tests for the restricted expression interpreter.
"""

import pytest

from transformation.sandbox import (
    MAX_EXPRESSION_LENGTH,
    ExpressionError,
    ExpressionEvaluator,
    normalize_expression,
)


class TestNormalizeExpression:
    """Test function-body syntax stripping."""

    def test_strips_return_and_semicolon(self):
        assert normalize_expression("return value.trim();") == "value.trim()"

    def test_plain_expression_unchanged(self):
        assert normalize_expression("value") == "value"

    def test_name_starting_with_return_kept(self):
        assert normalize_expression("returned") == "returned"


class TestExpressionEvaluator:
    """Test compilation limits and evaluation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.evaluator = ExpressionEvaluator()

    def run(self, source: str, value: str = "abc"):
        return self.evaluator.evaluate(self.evaluator.compile(source), value)

    def test_arithmetic(self):
        assert self.run("(len(value) + 1) * 2 // 3 % 5") == 2

    def test_comparison_chain(self):
        assert self.run("1 < len(value) <= 3") is True

    def test_membership(self):
        assert self.run("'b' in value") is True
        assert self.run("'z' not in value") is True

    def test_boolean_short_circuit(self):
        assert self.run("value and value.upper()") == "ABC"
        assert self.run("value and value.upper()", "") == ""

    def test_slice_with_step(self):
        assert self.run("value[::-1]") == "cba"

    def test_builtin_functions(self):
        assert self.run("max(len(value), 10)") == 10
        assert self.run("round(float('2.567'), 1)") == 2.6

    def test_empty_expression_rejected(self):
        with pytest.raises(ExpressionError, match="empty"):
            self.evaluator.compile("  ;  ")

    def test_length_limit(self):
        with pytest.raises(ExpressionError, match="longer than"):
            self.evaluator.compile("value + " * (MAX_EXPRESSION_LENGTH // 8 + 1) + "value")

    def test_node_limit(self):
        evaluator = ExpressionEvaluator(max_nodes=5)
        with pytest.raises(ExpressionError, match="nodes"):
            evaluator.compile("value + value + value")

    def test_statements_rejected(self):
        with pytest.raises(ExpressionError, match="syntax"):
            self.evaluator.compile("import os")

    def test_keyword_arguments_rejected(self):
        with pytest.raises(ExpressionError, match="keyword"):
            self.run("value.split(sep=',')")

    def test_format_spec_rejected(self):
        with pytest.raises(ExpressionError, match="format specs"):
            self.run("f'{value:>10}'")

    def test_width_method_limit(self):
        with pytest.raises(ExpressionError, match="width"):
            self.run("value.zfill(1000000)")

    def test_replace_growth_limit(self):
        with pytest.raises(ExpressionError, match="replace result"):
            self.run("value.replace('a', 'x' * 9000)", "aaaa")

    def test_join_with_empty_separator_counts_pieces(self):
        """Repeated large pieces are rejected before the joined string is built."""
        with pytest.raises(ExpressionError, match="join result"):
            self.run("''.join([value.center(9999)] * 10000)", "a")

    def test_join_within_limit(self):
        assert self.run("'-'.join(value.split(','))", "a,b,c") == "a-b-c"
        assert self.run("''.join([value] * 3)") == "abcabcabc"

    def test_str_of_large_sequence_rejected(self):
        with pytest.raises(ExpressionError, match="rendered sequence"):
            self.run("str([value.center(9999)] * 10000)", "a")

    def test_str_of_nested_sequence_rejected(self):
        with pytest.raises(ExpressionError, match="rendered sequence"):
            self.run("str([[value] * 5000] * 5000)")

    def test_fstring_of_large_sequence_rejected(self):
        with pytest.raises(ExpressionError, match="rendered sequence"):
            self.run("f'{[value.center(5000)] * 3!r}'", "a")

    def test_str_of_small_sequence(self):
        assert self.run("str(value.split(','))", "a,b") == "['a', 'b']"
        assert self.run("f'{(1, value)}'") == "(1, 'abc')"

    def test_methods_on_non_strings_rejected(self):
        with pytest.raises(ExpressionError, match="not allowed"):
            self.run("[].append(1)")

    def test_non_integer_index_rejected(self):
        with pytest.raises(ExpressionError, match="index"):
            self.run("value['a']")

    def test_walrus_rejected(self):
        with pytest.raises(ExpressionError, match="unsupported syntax"):
            self.run("(x := 1)")
