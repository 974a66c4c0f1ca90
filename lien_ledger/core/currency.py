"""
Currency parsing and formatting.

Converts user-entered monetary strings to exact decimals and back to
display strings.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

AmountLike = Union[Decimal, int, float, str, None]

ZERO = Decimal("0")
CENT = Decimal("0.01")

_DISALLOWED_CHARS = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"^\d*\.?\d*")


def parse_amount(raw: AmountLike) -> Decimal:
    """Parse a user-entered monetary string into an exact decimal.

    Every character other than digits and the decimal point is stripped,
    then the longest leading number is read, so a second decimal point
    ends the value ("1.2.3" -> 1.2). Thousands separators are not
    understood, they are simply removed with everything else.

    Malformed or empty input yields zero instead of raising, which lets a
    form be recalculated while the user is still typing.

    Args:
        raw: Raw input, usually a string from a form field

    Returns:
        Parsed non-negative amount, or zero
    """
    if raw is None:
        return ZERO
    if isinstance(raw, (Decimal, int, float)):
        # numbers follow the same rule as text: no sign, nothing non-finite
        try:
            return abs(to_amount(raw))
        except ValueError:
            return ZERO

    sanitized = _DISALLOWED_CHARS.sub("", str(raw))
    match = _LEADING_NUMBER.match(sanitized)
    number = match.group(0) if match else ""
    if not number.strip("."):
        return ZERO
    try:
        return Decimal(number)
    except InvalidOperation:
        return ZERO


def to_amount(value: AmountLike) -> Decimal:
    """Convert a numeric value to Decimal without binary float artefacts.

    Args:
        value: int, float, str or Decimal

    Returns:
        The value as a Decimal

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    elif isinstance(value, (int, float)):
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def format_currency(amount: AmountLike) -> str:
    """Format an amount as US currency with exactly two fraction digits.

    >>> format_currency(Decimal("1234.5"))
    '$1,234.50'
    """
    try:
        value = to_amount(amount)
    except ValueError:
        value = ZERO
    rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def format_percentage(value: AmountLike) -> str:
    """Format a percentage with two fraction digits, e.g. '23.26%'."""
    try:
        pct = to_amount(value)
    except ValueError:
        pct = ZERO
    return f"{pct.quantize(CENT, rounding=ROUND_HALF_UP):.2f}%"
