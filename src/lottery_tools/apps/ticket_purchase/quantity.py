"""Purchase-quantity validation for the ticket purchase screen.

Work out how many tickets a user can buy given their balance, the ticket
price, and the protocol's per-transaction cap, and classify the quantity
they asked for. Insufficient balance and an exceeded cap are validation
states carried on ``PurchaseValidationState``, never exceptions. Bad input
is recovered locally by clamping.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from lottery_tools.apps.ticket_purchase.pricing import cost_of_tickets
from lottery_tools.core.models import ZERO, BalanceSnapshot

SHORTCUT_PERCENTAGES: tuple[int, ...] = (10, 25, 50, 100)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PurchaseValidationState:
    """Derived validation flags, recomputed on every relevant input change.

    Args:
        max_possible_purchase: Largest ticket count the user can buy now.
        insufficient_balance: The balance cannot cover the request.
        cap_exceeded: The request reached the per-transaction limit.

    """

    max_possible_purchase: int = 0
    insufficient_balance: bool = False
    cap_exceeded: bool = False


@dataclass(frozen=True)
class PurchaseShortcut:
    """A percentage-of-balance quick pick (10%, 25%, 50%, MAX)."""

    percentage: int
    count: int
    enabled: bool


def limit_by_cap(number_of_tickets: int, cap: int) -> int:
    """Return ``number_of_tickets`` clamped to the per-transaction cap."""
    return min(number_of_tickets, cap)


def max_possible_purchase(balance: Decimal, price_ticket_in_cake: Decimal, cap: int) -> int:
    """Return ``min(floor(balance / price), cap)``.

    A non-positive price means the round's pricing is unavailable, in
    which case nothing can be bought.
    """
    if price_ticket_in_cake <= ZERO or balance <= ZERO:
        return 0
    # Exact integer quotient; never rounds up to the next ticket
    affordable = int(balance // price_ticket_in_cake)
    return max(limit_by_cap(affordable, cap), 0)


def evaluate_balance(
    balance: BalanceSnapshot,
    price_ticket_in_cake: Decimal,
    cap: int,
    previous: PurchaseValidationState | None = None,
) -> PurchaseValidationState:
    """Recompute the purchase ceiling after a balance, price, or cap change.

    ``insufficient_balance`` is only raised once the balance query has
    completed, so a loading balance never shows as empty. ``cap_exceeded``
    is carried over unchanged.

    Args:
        balance: Latest balance snapshot.
        price_ticket_in_cake: Price of one ticket.
        cap: Maximum tickets per transaction.
        previous: State before the change, if any.

    Returns:
        The updated validation state.

    """
    state = previous or PurchaseValidationState()
    max_purchase = max_possible_purchase(balance.amount, price_ticket_in_cake, cap)
    return replace(
        state,
        max_possible_purchase=max_purchase,
        insufficient_balance=balance.has_fetched and max_purchase == 0,
    )


def parse_ticket_input(raw: str) -> int | None:
    """Parse the leading base-10 integer of a user-typed string.

    Trailing garbage is ignored (``"12abc"`` is 12). Return ``None`` when
    the string does not start with a number.
    """
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return None
    return int(match.group(1))


def apply_ticket_input(
    raw: str,
    balance: Decimal,
    price_ticket_in_cake: Decimal,
    cap: int,
    previous: PurchaseValidationState,
) -> tuple[int, PurchaseValidationState]:
    """Clamp a typed ticket count and reclassify it.

    Args:
        raw: Text entered by the user.
        balance: Current token balance.
        price_ticket_in_cake: Price of one ticket.
        cap: Maximum tickets per transaction.
        previous: Current validation state.

    Returns:
        The quantity to buy and the updated validation state.

    """
    parsed = parse_ticket_input(raw)
    if parsed is None:
        return 0, replace(previous, insufficient_balance=False, cap_exceeded=False)

    limited = limit_by_cap(max(parsed, 0), cap)
    if cost_of_tickets(price_ticket_in_cake, limited) > balance:
        state = replace(previous, insufficient_balance=True)
    elif limited == previous.max_possible_purchase:
        # Equality with the ceiling also fires when the balance, not the cap, is the bound.
        state = replace(previous, cap_exceeded=True)
    else:
        state = replace(previous, insufficient_balance=False, cap_exceeded=False)
    return limited, state


def tickets_by_percentage(max_purchase: int, percentage: int) -> int:
    """Return ``floor(max_purchase * percentage / 100)``."""
    if max_purchase <= 0:
        return 0
    return max_purchase * percentage // 100


def percentage_shortcuts(
    max_purchase: int,
    *,
    has_fetched_balance: bool,
) -> list[PurchaseShortcut]:
    """Build the quick-pick buttons; a button offering fewer than one ticket is disabled."""
    shortcuts: list[PurchaseShortcut] = []
    for pct in SHORTCUT_PERCENTAGES:
        count = tickets_by_percentage(max_purchase, pct)
        shortcuts.append(
            PurchaseShortcut(percentage=pct, count=count, enabled=has_fetched_balance and count >= 1)
        )
    return shortcuts


def apply_shortcut(count: int, previous: PurchaseValidationState) -> tuple[int, PurchaseValidationState]:
    """Select a quick-pick count and clear both warning flags."""
    return count, replace(previous, insufficient_balance=False, cap_exceeded=False)


def can_purchase(
    *,
    is_approved: bool,
    is_confirmed: bool,
    state: PurchaseValidationState,
    quantity: int,
    ticket_numbers: Sequence[int],
) -> bool:
    """Return True when every precondition for submitting a purchase holds.

    The ticket numbers produced by the ticket set must match the requested
    quantity exactly; a partial set is never submitted.
    """
    return (
        is_approved
        and not is_confirmed
        and not state.insufficient_balance
        and quantity > 0
        and len(ticket_numbers) == quantity
    )


def error_message(state: PurchaseValidationState, token_symbol: str = "CAKE") -> str:
    """Return the warning text for the current validation state."""
    if state.insufficient_balance:
        return f"Insufficient {token_symbol} balance"
    return (
        "The maximum number of tickets you can buy in one transaction is "
        f"{state.max_possible_purchase}"
    )
