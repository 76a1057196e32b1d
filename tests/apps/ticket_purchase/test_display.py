"""Tests for amount and percentage formatting."""

from decimal import Decimal

from lottery_tools.apps.ticket_purchase.display import format_amount, format_percentage


class TestFormatAmount:
    """Tests for format_amount."""

    def test_full_precision_strips_trailing_zeros(self) -> None:
        """Keep every significant digit and drop trailing zeros."""
        assert format_amount(Decimal("475.2500")) == "475.25"

    def test_integer_amount(self) -> None:
        """Render whole amounts without a decimal point."""
        assert format_amount(Decimal("500.000")) == "500"

    def test_zero(self) -> None:
        """Render zero as '0'."""
        assert format_amount(Decimal("0.000")) == "0"

    def test_display_decimals_round_half_up(self) -> None:
        """Round half-up to the requested places."""
        assert format_amount(Decimal("0.123455"), 5) == "0.12346"

    def test_no_scientific_notation(self) -> None:
        """Tiny amounts are written out in full."""
        assert format_amount(Decimal("1E-8")) == "0.00000001"


class TestFormatPercentage:
    """Tests for format_percentage."""

    def test_two_decimals(self) -> None:
        """Render two decimal places."""
        assert format_percentage(Decimal("4.95")) == "4.95"
        assert format_percentage(Decimal("0.0500")) == "0.05"

    def test_zero_and_nan(self) -> None:
        """Render zero and NaN as '0'."""
        assert format_percentage(Decimal(0)) == "0"
        assert format_percentage(Decimal("NaN")) == "0"
