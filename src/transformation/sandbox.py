"""
Restricted expression interpreter for custom steps.

Custom steps carry a user-written expression such as
``value.strip().upper()`` or ``value[:3] if len(value) > 3 else value``.
The expression is parsed with ``ast`` and walked by a small interpreter
that only understands an explicit whitelist of node types, functions and
string methods. Nothing is handed to ``eval``/``exec``, no attribute other
than the whitelisted string methods is reachable, and sizes are bounded so
an expression cannot allocate unbounded memory.

Supported:
    - literals (str, int, float, bool, None), tuples and lists
    - the name ``value`` (the step input)
    - arithmetic: + - * / // % (no %-formatting of strings)
    - comparisons, ``in``/``not in``, ``and``/``or``/``not``
    - conditional expressions: ``a if cond else b``
    - subscripts and slices: ``value[0]``, ``value[1:-1]``
    - f-strings without format specs: ``f"{value}-x"``
    - calls to len, str, int, float, abs, min, max, round, bool
    - calls to whitelisted str methods (see SAFE_STR_METHODS)
"""

import ast
import logging
import operator
from typing import Any

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 500
MAX_NODES = 100
MAX_STRING_LENGTH = 10_000

SAFE_FUNCTIONS = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "bool": bool,
}

SAFE_STR_METHODS = frozenset({
    "upper", "lower", "title", "capitalize", "swapcase", "casefold",
    "strip", "lstrip", "rstrip", "replace", "split", "rsplit", "join",
    "startswith", "endswith", "find", "rfind", "count",
    "zfill", "ljust", "rjust", "center",
    "isdigit", "isalpha", "isalnum", "isspace", "isupper", "islower",
    "removeprefix", "removesuffix",
})

# Methods whose first argument is a target width
_WIDTH_METHODS = frozenset({"zfill", "ljust", "rjust", "center"})

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARE_OPERATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}


class ExpressionError(Exception):
    """Raised when an expression is rejected or fails to evaluate."""

    pass


def normalize_expression(source: str) -> str:
    """
    Strip statement syntax carried over from function-body style rules.

    "return value;" becomes "value".
    """
    text = source.strip()
    while text.endswith(";"):
        text = text[:-1].rstrip()
    if text.startswith("return ") or text.startswith("return\t"):
        text = text[len("return"):].strip()
    return text


class ExpressionEvaluator:
    """
    Compile and evaluate restricted expressions against a string input.

    Usage:
        evaluator = ExpressionEvaluator()
        tree = evaluator.compile("value.upper()")
        evaluator.evaluate(tree, "abc")  # "ABC"
    """

    def __init__(
        self,
        max_expression_length: int = MAX_EXPRESSION_LENGTH,
        max_nodes: int = MAX_NODES,
        max_string_length: int = MAX_STRING_LENGTH,
    ):
        """
        Initialize expression evaluator.

        Args:
            max_expression_length: Longest accepted expression source
            max_nodes: Largest accepted syntax tree
            max_string_length: Longest string any sub-expression may produce
        """
        self.max_expression_length = max_expression_length
        self.max_nodes = max_nodes
        self.max_string_length = max_string_length

    def compile(self, source: str) -> ast.Expression:
        """
        Parse an expression and check it against the whitelist.

        Args:
            source: Expression text

        Returns:
            Parsed expression tree

        Raises:
            ExpressionError: If the text is empty, too large, not an
                expression, or uses unsupported syntax
        """
        text = normalize_expression(source)
        if not text:
            raise ExpressionError("expression is empty")
        if len(text) > self.max_expression_length:
            raise ExpressionError(
                f"expression is longer than {self.max_expression_length} characters"
            )

        try:
            tree = ast.parse(text, mode="eval")
        except SyntaxError as e:
            raise ExpressionError(f"invalid expression syntax: {e.msg}") from e

        node_count = sum(1 for _ in ast.walk(tree))
        if node_count > self.max_nodes:
            raise ExpressionError(
                f"expression has {node_count} nodes, limit is {self.max_nodes}"
            )

        return tree

    def evaluate(self, tree: ast.Expression, value: str) -> Any:
        """
        Evaluate a compiled expression with ``value`` bound to the input.

        Raises:
            ExpressionError: On unsupported syntax or exceeded limits
            Exception: Errors raised by whitelisted operations propagate
                (e.g. ZeroDivisionError, ValueError from int())
        """
        return self._eval(tree.body, value)

    def _check_size(self, result: Any) -> Any:
        if isinstance(result, str) and len(result) > self.max_string_length:
            raise ExpressionError(
                f"string result exceeds {self.max_string_length} characters"
            )
        if isinstance(result, (list, tuple)) and len(result) > self.max_string_length:
            raise ExpressionError(
                f"sequence result exceeds {self.max_string_length} items"
            )
        return result

    def _check_rendered_size(self, sequence: list | tuple) -> None:
        """Reject a sequence whose str()/repr() could exceed the string limit."""
        budget = self.max_string_length
        pending = [sequence]
        while pending:
            item = pending.pop()
            if isinstance(item, (list, tuple)):
                budget -= 2 + 2 * len(item)
                pending.extend(item)
            elif isinstance(item, str):
                # repr escapes expand a character to at most 10
                budget -= 2 + 10 * len(item)
            else:
                budget -= len(repr(item))
            if budget < 0:
                raise ExpressionError(
                    f"rendered sequence exceeds {self.max_string_length} characters"
                )

    def _eval(self, node: ast.AST, value: str) -> Any:
        if isinstance(node, ast.Constant):
            if not isinstance(node.value, (str, int, float, bool, type(None))):
                raise ExpressionError(
                    f"unsupported literal of type {type(node.value).__name__}"
                )
            return node.value

        if isinstance(node, ast.Name):
            if node.id == "value":
                return value
            raise ExpressionError(f"unknown name {node.id!r}")

        if isinstance(node, (ast.Tuple, ast.List)):
            items = [self._eval(element, value) for element in node.elts]
            return self._check_size(tuple(items) if isinstance(node, ast.Tuple) else items)

        if isinstance(node, ast.BinOp):
            return self._eval_binop(node, value)

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPERATORS.get(type(node.op))
            if op is None:
                raise ExpressionError(f"unsupported operator {type(node.op).__name__}")
            return op(self._eval(node.operand, value))

        if isinstance(node, ast.BoolOp):
            result = None
            for operand in node.values:
                result = self._eval(operand, value)
                if isinstance(node.op, ast.And) and not result:
                    return result
                if isinstance(node.op, ast.Or) and result:
                    return result
            return result

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, value)
            for op_node, comparator in zip(node.ops, node.comparators):
                op = _COMPARE_OPERATORS.get(type(op_node))
                if op is None:
                    raise ExpressionError(
                        f"unsupported comparison {type(op_node).__name__}"
                    )
                right = self._eval(comparator, value)
                if not op(left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.IfExp):
            if self._eval(node.test, value):
                return self._eval(node.body, value)
            return self._eval(node.orelse, value)

        if isinstance(node, ast.Subscript):
            target = self._eval(node.value, value)
            if not isinstance(target, (str, list, tuple)):
                raise ExpressionError("only strings and sequences can be indexed")
            return target[self._eval_index(node.slice, value)]

        if isinstance(node, ast.JoinedStr):
            return self._eval_fstring(node, value)

        if isinstance(node, ast.Call):
            return self._eval_call(node, value)

        raise ExpressionError(f"unsupported syntax: {type(node).__name__}")

    def _eval_binop(self, node: ast.BinOp, value: str) -> Any:
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"unsupported operator {type(node.op).__name__}")

        left = self._eval(node.left, value)
        right = self._eval(node.right, value)

        if isinstance(node.op, ast.Mod) and isinstance(left, str):
            raise ExpressionError("string %-formatting is not supported")

        if isinstance(node.op, ast.Mult):
            for seq, count in ((left, right), (right, left)):
                if (
                    isinstance(seq, (str, list, tuple))
                    and isinstance(count, int)
                    and len(seq) * max(count, 0) > self.max_string_length
                ):
                    raise ExpressionError(
                        f"repetition exceeds {self.max_string_length} characters"
                    )

        return self._check_size(op(left, right))

    def _eval_index(self, node: ast.AST, value: str) -> Any:
        if isinstance(node, ast.Slice):
            bounds = []
            for part in (node.lower, node.upper, node.step):
                bound = None if part is None else self._eval(part, value)
                if bound is not None and (
                    not isinstance(bound, int) or isinstance(bound, bool)
                ):
                    raise ExpressionError("slice bounds must be integers")
                bounds.append(bound)
            return slice(*bounds)

        index = self._eval(node, value)
        if not isinstance(index, int) or isinstance(index, bool):
            raise ExpressionError("index must be an integer")
        return index

    def _eval_fstring(self, node: ast.JoinedStr, value: str) -> str:
        parts = []
        for part in node.values:
            if isinstance(part, ast.Constant):
                parts.append(str(part.value))
            elif isinstance(part, ast.FormattedValue):
                if part.format_spec is not None:
                    raise ExpressionError("format specs are not supported in f-strings")
                formatted = self._eval(part.value, value)
                if isinstance(formatted, (list, tuple)):
                    self._check_rendered_size(formatted)
                parts.append(repr(formatted) if part.conversion == ord("r") else str(formatted))
            else:
                raise ExpressionError(f"unsupported f-string part {type(part).__name__}")
        return self._check_size("".join(parts))

    def _eval_call(self, node: ast.Call, value: str) -> Any:
        if node.keywords:
            raise ExpressionError("keyword arguments are not supported")

        args = [self._eval(arg, value) for arg in node.args]

        if isinstance(node.func, ast.Name):
            func = SAFE_FUNCTIONS.get(node.func.id)
            if func is None:
                raise ExpressionError(f"function {node.func.id!r} is not allowed")
            if func is str and args and isinstance(args[0], (list, tuple)):
                self._check_rendered_size(args[0])
            return self._check_size(func(*args))

        if isinstance(node.func, ast.Attribute):
            target = self._eval(node.func.value, value)
            method_name = node.func.attr
            if not isinstance(target, str) or method_name not in SAFE_STR_METHODS:
                raise ExpressionError(f"method {method_name!r} is not allowed")

            self._check_method_growth(target, method_name, args)
            return self._check_size(getattr(target, method_name)(*args))

        raise ExpressionError("only direct function and method calls are supported")

    def _check_method_growth(self, target: str, method_name: str, args: list) -> None:
        if method_name in _WIDTH_METHODS and args:
            width = args[0]
            if isinstance(width, int) and width > self.max_string_length:
                raise ExpressionError(
                    f"{method_name} width exceeds {self.max_string_length}"
                )

        if method_name == "replace" and len(args) >= 2:
            old, new = args[0], args[1]
            if isinstance(old, str) and isinstance(new, str):
                grown = len(target) + target.count(old) * len(new)
                if grown > self.max_string_length:
                    raise ExpressionError(
                        f"replace result exceeds {self.max_string_length} characters"
                    )

        if method_name == "join" and args and isinstance(args[0], (str, list, tuple)):
            pieces = args[0]
            joined = sum(len(piece) for piece in pieces if isinstance(piece, str))
            joined += len(target) * max(len(pieces) - 1, 0)
            if joined > self.max_string_length:
                raise ExpressionError(
                    f"join result exceeds {self.max_string_length} characters"
                )
