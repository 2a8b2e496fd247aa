"""
String steps: case, trimming, concatenation, splitting, slicing,
find/replace and fallback values.
"""

import logging
import re

from transformation.errors import ConfigError, InvalidPatternError
from transformation.models import StepKind

from .base import StepTransformer

logger = logging.getLogger(__name__)

# First comma not escaped with a backslash
_PARAM_SEPARATOR = re.compile(r"(?<!\\),")


class UppercaseStep(StepTransformer):
    kind = StepKind.UPPERCASE

    def apply(self, value: str, parameter: str | None) -> str:
        return value.upper()


class LowercaseStep(StepTransformer):
    kind = StepKind.LOWERCASE

    def apply(self, value: str, parameter: str | None) -> str:
        return value.lower()


class TrimStep(StepTransformer):
    kind = StepKind.TRIM

    def apply(self, value: str, parameter: str | None) -> str:
        return value.strip()


class ConcatStep(StepTransformer):
    """Append a literal suffix; a missing suffix appends nothing."""

    kind = StepKind.CONCAT

    def apply(self, value: str, parameter: str | None) -> str:
        return value + (parameter or "")


class SplitStep(StepTransformer):
    """
    Keep the segment before the first delimiter.

    An input starting with the delimiter yields "", not the whole input.
    Input without the delimiter is returned unchanged.
    """

    kind = StepKind.SPLIT
    requires_parameter = True

    def check_parameter(self, parameter: str | None) -> None:
        super().check_parameter(parameter)
        if parameter == "":
            raise ConfigError("split delimiter cannot be empty")

    def apply(self, value: str, parameter: str | None) -> str:
        self.check_parameter(parameter)
        return value.split(parameter, 1)[0]


def parse_substring_bounds(parameter: str | None) -> tuple[int, int | None]:
    """
    Parse a substring parameter of the form "start,end" or "start".

    Args:
        parameter: Raw parameter string

    Returns:
        Tuple of (start, end); end is None when omitted

    Raises:
        ConfigError: If the bounds are missing or not integers
    """
    if parameter is None or not parameter.strip():
        raise ConfigError("substring step requires 'start,end' bounds")

    parts = parameter.split(",")
    if len(parts) > 2:
        raise ConfigError(
            f"substring bounds must be 'start,end', got {parameter!r}"
        )

    try:
        start = int(parts[0].strip())
        end = None
        if len(parts) == 2 and parts[1].strip():
            end = int(parts[1].strip())
    except ValueError:
        raise ConfigError(
            f"substring bounds must be integers, got {parameter!r}"
        ) from None

    return start, end


class SubstringStep(StepTransformer):
    """
    Slice [start, end) of the input.

    Bounds are clamped to the string; a start past the end swaps the two,
    so "3,1" behaves like "1,3".
    """

    kind = StepKind.SUBSTRING
    requires_parameter = True

    def check_parameter(self, parameter: str | None) -> None:
        parse_substring_bounds(parameter)

    def apply(self, value: str, parameter: str | None) -> str:
        start, end = parse_substring_bounds(parameter)
        length = len(value)

        start = min(max(start, 0), length)
        end = length if end is None else min(max(end, 0), length)
        if start > end:
            start, end = end, start

        return value[start:end]


def parse_replace_params(parameter: str | None) -> tuple[str, str]:
    """
    Split a replace parameter into (find, replacement).

    The split happens at the first comma not preceded by a backslash, so
    "\\," inside the pattern matches a literal comma.

    Raises:
        ConfigError: If there is no separator or the pattern is empty
    """
    if parameter is None:
        raise ConfigError("replace step requires 'find,replace'")

    parts = _PARAM_SEPARATOR.split(parameter, maxsplit=1)
    if len(parts) != 2:
        raise ConfigError(
            f"replace parameter must be 'find,replace', got {parameter!r}"
        )

    find, replacement = parts
    if not find:
        raise ConfigError("replace pattern cannot be empty")

    return find, replacement


def compile_replace_pattern(find: str) -> re.Pattern:
    """
    Compile the find half of a replace parameter.

    Raises:
        InvalidPatternError: If the regular expression is malformed
    """
    try:
        return re.compile(find)
    except re.error as e:
        raise InvalidPatternError(f"invalid replace pattern {find!r}: {e}") from e


class ReplaceStep(StepTransformer):
    """Replace every match of a regular expression with literal text."""

    kind = StepKind.REPLACE
    requires_parameter = True

    def check_parameter(self, parameter: str | None) -> None:
        find, _ = parse_replace_params(parameter)
        compile_replace_pattern(find)

    def apply(self, value: str, parameter: str | None) -> str:
        find, replacement = parse_replace_params(parameter)
        pattern = compile_replace_pattern(find)
        return pattern.sub(lambda _match: replacement, value)


class DefaultStep(StepTransformer):
    """Substitute a fallback for empty input."""

    kind = StepKind.DEFAULT

    def apply(self, value: str, parameter: str | None) -> str:
        if value:
            return value
        return parameter or ""
