"""Bulk-discount pricing for lottery ticket purchases.

Provide pure functions that compute what a purchase of ``n`` tickets costs
before and after the round's bulk discount. The discount grows linearly
with the number of tickets bought in a single transaction:

    cost_after = price * n * (divisor + 1 - n) / divisor

With a price of 5 CAKE and a divisor of 2000 this yields 0.05% off for two
tickets, 2.45% for fifty and 4.95% for a hundred.
"""

from dataclasses import dataclass
from decimal import Decimal

from lottery_tools.core.models import HUNDRED, ONE, ZERO, RoundPricing


class PricingUnavailableError(ZeroDivisionError):
    """Raise when the round's discount divisor is zero or missing."""


@dataclass(frozen=True)
class TicketCosts:
    """Cost breakdown for a given number of tickets.

    Every figure is clamped at zero so a degenerate discount curve is
    never shown as a negative cost.
    """

    cost_before_discount: Decimal
    cost_after_discount: Decimal
    discount_amount: Decimal

    @property
    def percentage_discount(self) -> Decimal:
        """Return the discount as a percentage of the undiscounted cost.

        Defined as zero when nothing is being bought.
        """
        if self.cost_before_discount <= ZERO:
            return ZERO
        return self.discount_amount / self.cost_before_discount * HUNDRED


ZERO_COSTS = TicketCosts(ZERO, ZERO, ZERO)


def cost_of_tickets(price_ticket_in_cake: Decimal, number_of_tickets: int) -> Decimal:
    """Return the undiscounted value of ``number_of_tickets`` tickets."""
    return price_ticket_in_cake * number_of_tickets


def cost_after_discount(
    price_ticket_in_cake: Decimal,
    discount_divisor: Decimal,
    number_of_tickets: int,
) -> Decimal:
    """Return the raw discounted cost, which may be negative for very large orders.

    Raises:
        PricingUnavailableError: If ``discount_divisor`` is zero.

    """
    if discount_divisor == ZERO:
        msg = "discount divisor is zero, pricing unavailable"
        raise PricingUnavailableError(msg)
    n = Decimal(number_of_tickets)
    return price_ticket_in_cake * n * (discount_divisor + ONE - n) / discount_divisor


def _clamp(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def compute_ticket_costs(pricing: RoundPricing, number_of_tickets: int) -> TicketCosts:
    """Compute the cost breakdown for buying ``number_of_tickets`` tickets.

    The discount is taken from the raw (unclamped) before/after figures;
    each resulting figure is then clamped to zero independently.

    Args:
        pricing: Ticket price and discount divisor for the round.
        number_of_tickets: How many tickets are being bought.

    Returns:
        The clamped cost breakdown.

    Raises:
        PricingUnavailableError: If the round's discount divisor is zero.

    """
    before = cost_of_tickets(pricing.price_ticket_in_cake, number_of_tickets)
    after = cost_after_discount(
        pricing.price_ticket_in_cake,
        pricing.discount_divisor,
        number_of_tickets,
    )
    return TicketCosts(
        cost_before_discount=_clamp(before),
        cost_after_discount=_clamp(after),
        discount_amount=_clamp(before - after),
    )
