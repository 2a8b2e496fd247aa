"""
Formatting steps for dates, numbers and phone numbers.

Parsing is strict about what it accepts: input that cannot be read as the
expected form raises InvalidInputError instead of producing a placeholder.
"""

import logging
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

import dateutil.parser as dp

from transformation.errors import ConfigError, InvalidInputError
from transformation.models import StepKind

from .base import StepTransformer

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%Y-%m-%d"

# Fills date parts missing from the input so results do not depend on today
DATE_PARSE_DEFAULT = datetime(1970, 1, 1)

NUMBER_FRACTION_DIGITS = 3


def parse_date(value: str) -> datetime:
    """
    Parse a date string in any format dateutil understands.

    Raises:
        InvalidInputError: If the value is empty or not a date
    """
    if not value or not value.strip():
        raise InvalidInputError("cannot parse an empty value as a date")

    try:
        return dp.parse(value.strip(), default=DATE_PARSE_DEFAULT)
    except (ValueError, OverflowError) as e:
        raise InvalidInputError(f"cannot parse {value!r} as a date") from e


class DateFormatStep(StepTransformer):
    """Parse the input as a date and render it with a strftime format."""

    kind = StepKind.DATE_FORMAT

    def check_parameter(self, parameter: str | None) -> None:
        if parameter is not None and not parameter.strip():
            raise ConfigError("date format cannot be blank")

    def apply(self, value: str, parameter: str | None) -> str:
        self.check_parameter(parameter)
        parsed = parse_date(value)
        try:
            return parsed.strftime(parameter or DEFAULT_DATE_FORMAT)
        except ValueError as e:
            raise ConfigError(f"invalid date format {parameter!r}: {e}") from e


def format_grouped_number(number: Decimal) -> str:
    """
    Render a number with comma grouping and up to three fraction digits.

    Examples:
        Decimal("1234567.891") -> "1,234,567.891"
        Decimal("75000") -> "75,000"
        Decimal("1.23456") -> "1.235"
    """
    with localcontext() as ctx:
        ctx.prec = 60
        rounded = number.quantize(
            Decimal(1).scaleb(-NUMBER_FRACTION_DIGITS), rounding=ROUND_HALF_UP
        )

    text = f"{rounded:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class NumberFormatStep(StepTransformer):
    """Parse the input as a decimal number and group its digits."""

    kind = StepKind.NUMBER_FORMAT

    def apply(self, value: str, parameter: str | None) -> str:
        # Decimal accepts Python digit separators such as "1_000"
        if "_" in value:
            raise InvalidInputError(f"cannot parse {value!r} as a number")

        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInputError(f"cannot parse {value!r} as a number") from None

        if not number.is_finite():
            raise InvalidInputError(f"cannot format non-finite number {value!r}")

        try:
            return format_grouped_number(number)
        except InvalidOperation as e:
            raise InvalidInputError(f"number {value!r} is out of range") from e


class PhoneFormatStep(StepTransformer):
    """
    Standardize a North American phone number.

    Examples:
        1234567890 -> (123) 456-7890
        1-555-123-4567 -> +1 (555) 123-4567
    """

    kind = StepKind.FORMAT_PHONE

    def apply(self, value: str, parameter: str | None) -> str:
        digits = re.sub(r"\D", "", value)

        if len(digits) == 11 and digits.startswith("1"):
            return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
        if len(digits) == 10:
            return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

        raise InvalidInputError(
            f"expected a 10-digit phone number, got {len(digits)} digits"
        )
