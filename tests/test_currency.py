"""
Unit tests for currency parsing and formatting.

Tests best-effort sanitization, exactness and display rounding.
"""

from decimal import Decimal

import pytest

from lien_ledger.core.currency import (
    format_currency,
    format_percentage,
    parse_amount,
    to_amount
)


class TestParseAmount:
    """Test parsing of user-entered monetary strings."""

    def test_plain_number(self):
        """Verify a plain decimal string parses exactly."""
        assert parse_amount("1234.50") == Decimal("1234.50")

    def test_currency_symbols_and_separators_are_stripped(self):
        """Verify symbols and commas are removed, not interpreted."""
        assert parse_amount("$1,234.50") == Decimal("1234.50")
        assert parse_amount(" 50 000 USD") == Decimal("50000")

    def test_minus_sign_is_stripped(self):
        """Verify negative input cannot be entered."""
        assert parse_amount("-250") == Decimal("250")

    def test_second_decimal_point_ends_number(self):
        """Verify only the leading number is read."""
        assert parse_amount("1.2.3") == Decimal("1.2")

    def test_leading_decimal_point(self):
        """Verify '.5' reads as one half."""
        assert parse_amount(".5") == Decimal("0.5")

    @pytest.mark.parametrize("raw", ["", "abc", ".", "$", None, "   "])
    def test_unparseable_input_is_zero(self, raw):
        """Verify malformed input coerces to zero instead of raising."""
        assert parse_amount(raw) == Decimal("0")

    def test_numeric_input_passes_through(self):
        """Verify numbers are converted without float artefacts."""
        assert parse_amount(0.1) == Decimal("0.1")
        assert parse_amount(15000) == Decimal("15000")
        assert parse_amount(Decimal("7.25")) == Decimal("7.25")

    @pytest.mark.parametrize("raw", [-5, -0.5, Decimal("-5"), "-5"])
    def test_numeric_sign_is_dropped_like_text(self, raw):
        """Verify negative numbers parse the same way as a typed minus sign."""
        assert parse_amount(raw) == abs(Decimal(str(raw)))

    @pytest.mark.parametrize("raw", [
        float("nan"), float("inf"), float("-inf"), Decimal("NaN"), Decimal("-Infinity"), True
    ])
    def test_never_raises(self, raw):
        """Verify non-finite and boolean values coerce to zero."""
        assert parse_amount(raw) == Decimal("0")


class TestToAmount:
    """Test numeric conversion."""

    def test_float_uses_shortest_repr(self):
        """Verify 0.1 stays 0.1."""
        assert to_amount(0.1) == Decimal("0.1")

    def test_none_is_zero(self):
        """Verify missing amounts default to zero."""
        assert to_amount(None) == Decimal("0")

    def test_invalid_string_raises(self):
        """Verify garbage is rejected by the strict conversion."""
        with pytest.raises(ValueError, match="Invalid amount"):
            to_amount("twelve")

    def test_infinity_raises(self):
        """Verify non-finite values are rejected."""
        with pytest.raises(ValueError):
            to_amount(float("inf"))


class TestFormatCurrency:
    """Test US currency formatting."""

    def test_thousands_and_two_decimals(self):
        """Verify the canonical display format."""
        assert format_currency(Decimal("1234.5")) == "$1,234.50"

    def test_zero(self):
        """Verify zero renders with cents."""
        assert format_currency(0) == "$0.00"

    def test_negative(self):
        """Verify negative amounts keep their sign before the symbol."""
        assert format_currency(Decimal("-2000")) == "-$2,000.00"

    def test_rounds_half_up(self):
        """Verify display rounding is half away from zero."""
        assert format_currency(Decimal("2.345")) == "$2.35"
        assert format_currency(Decimal("6139.534883720930")) == "$6,139.53"

    def test_tiny_negative_rounds_to_zero(self):
        """Verify -0.001 is not displayed as a negative zero."""
        assert format_currency(Decimal("-0.001")) == "$0.00"

    def test_never_raises(self):
        """Verify invalid input renders as zero."""
        assert format_currency("not a number") == "$0.00"


class TestFormatPercentage:
    """Test percentage formatting."""

    def test_two_decimals(self):
        """Verify percentages show two fraction digits."""
        assert format_percentage(Decimal("23.255813953")) == "23.26%"
        assert format_percentage(0) == "0.00%"
