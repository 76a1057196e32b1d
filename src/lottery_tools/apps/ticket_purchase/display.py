"""Human-readable rendering of token amounts and discount percentages."""

from decimal import ROUND_HALF_UP, Decimal

from lottery_tools.core.models import ZERO

_PERCENT_PLACES = Decimal("0.01")


def format_amount(amount: Decimal, display_decimals: int | None = None) -> str:
    """Render a token amount without scientific notation.

    Round half-up to ``display_decimals`` places when given, otherwise keep
    full precision and strip trailing zeros.
    """
    if display_decimals is not None:
        quantum = Decimal(1).scaleb(-display_decimals)
        return f"{amount.quantize(quantum, rounding=ROUND_HALF_UP):f}"
    text = f"{amount:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_percentage(value: Decimal) -> str:
    """Render a discount percentage with two decimals, or ``"0"`` when there is none."""
    if value.is_nan() or value == ZERO:
        return "0"
    return f"{value.quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP):f}"
