"""State of the ticket purchase screen, without any rendering.

``PurchaseSession`` owns the derived state a purchase screen needs: the
requested quantity, the validation flags, the cost breakdown and the
editable ticket set. Round data and the user's balance are owned
elsewhere and pushed in through ``update_round`` and ``update_balance``;
every push recomputes the derived state synchronously.
"""

import logging
import random
from collections.abc import Iterable
from decimal import Decimal

from lottery_tools.apps.ticket_purchase.display import format_amount, format_percentage
from lottery_tools.apps.ticket_purchase.pricing import (
    ZERO_COSTS,
    PricingUnavailableError,
    TicketCosts,
    compute_ticket_costs,
    cost_of_tickets,
)
from lottery_tools.apps.ticket_purchase.quantity import (
    PurchaseShortcut,
    PurchaseValidationState,
    apply_shortcut,
    apply_ticket_input,
    can_purchase,
    error_message,
    evaluate_balance,
    percentage_shortcuts,
)
from lottery_tools.apps.ticket_purchase.tickets import TicketSet
from lottery_tools.apps.ticket_purchase.transaction_flow import FlowState
from lottery_tools.core.models import BalanceSnapshot, LotteryRound

logger = logging.getLogger(__name__)

_APPROVED_STATES = (FlowState.APPROVED, FlowState.CONFIRMING, FlowState.CONFIRMED)


class PurchaseSession:
    """Derived state for one visit to the purchase screen.

    Args:
        lottery_round: Round currently open for sales.
        balance: Latest balance snapshot of the buyer.
        user_current_tickets: Encoded ticket numbers the buyer already holds.
        token_symbol: Symbol used in warning messages.
        rng: Random source for ticket generation.

    """

    def __init__(
        self,
        lottery_round: LotteryRound,
        balance: BalanceSnapshot | None = None,
        user_current_tickets: Iterable[int] = (),
        *,
        token_symbol: str = "CAKE",
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the session with zero tickets requested."""
        self._round = lottery_round
        self._balance = balance or BalanceSnapshot()
        self._token_symbol = token_symbol
        self._quantity = 0
        self._state = PurchaseValidationState()
        self._ticket_set = TicketSet(0, user_current_tickets, rng)
        self._recompute_ceiling()

    @property
    def lottery_round(self) -> LotteryRound:
        """Return the round being bought into."""
        return self._round

    @property
    def balance(self) -> BalanceSnapshot:
        """Return the latest balance snapshot."""
        return self._balance

    @property
    def quantity(self) -> int:
        """Return the number of tickets requested."""
        return self._quantity

    @property
    def validation(self) -> PurchaseValidationState:
        """Return the current validation flags."""
        return self._state

    @property
    def ticket_set(self) -> TicketSet:
        """Return the editable ticket set (the flow's ticket source)."""
        return self._ticket_set

    @property
    def show_warning(self) -> bool:
        """Return True when either validation warning is active."""
        return self._state.insufficient_balance or self._state.cap_exceeded

    def _recompute_ceiling(self) -> None:
        self._state = evaluate_balance(
            self._balance,
            self._round.pricing.price_ticket_in_cake,
            self._round.max_number_tickets_per_buy_or_claim,
            self._state,
        )

    def _set_quantity(self, quantity: int) -> None:
        if quantity != self._quantity:
            self._quantity = quantity
            self._ticket_set.resize(quantity)

    def update_round(self, lottery_round: LotteryRound) -> None:
        """Apply refreshed round data."""
        self._round = lottery_round
        self._recompute_ceiling()

    def update_balance(self, balance: BalanceSnapshot) -> None:
        """Apply a new balance snapshot."""
        self._balance = balance
        self._recompute_ceiling()

    def handle_input(self, raw: str) -> int:
        """Apply a typed ticket count and return the (clamped) quantity."""
        quantity, self._state = apply_ticket_input(
            raw,
            self._balance.amount,
            self._round.pricing.price_ticket_in_cake,
            self._round.max_number_tickets_per_buy_or_claim,
            self._state,
        )
        self._set_quantity(quantity)
        return quantity

    def shortcuts(self) -> list[PurchaseShortcut]:
        """Return the 10/25/50/MAX quick picks."""
        return percentage_shortcuts(
            self._state.max_possible_purchase,
            has_fetched_balance=self._balance.has_fetched,
        )

    def handle_shortcut(self, shortcut: PurchaseShortcut) -> int:
        """Select a quick pick; disabled picks are ignored."""
        if not shortcut.enabled:
            logger.debug("Ignoring disabled %d%% shortcut", shortcut.percentage)
            return self._quantity
        quantity, self._state = apply_shortcut(shortcut.count, self._state)
        self._set_quantity(quantity)
        return quantity

    def costs(self) -> TicketCosts:
        """Return the cost breakdown, all zero when pricing is unavailable."""
        try:
            return compute_ticket_costs(self._round.pricing, self._quantity)
        except PricingUnavailableError:
            logger.warning("Pricing unavailable for lottery %d", self._round.lottery_id)
            return ZERO_COSTS

    def cost_in_cake(self) -> Decimal:
        """Return the undiscounted value of the requested tickets."""
        return cost_of_tickets(self._round.pricing.price_ticket_in_cake, self._quantity)

    def percentage_discount_display(self) -> str:
        """Return the bulk discount as a two-decimal percentage string."""
        return format_percentage(self.costs().percentage_discount)

    def summary(self) -> dict[str, str]:
        """Return the display strings of the cost panel."""
        costs = self.costs()
        return {
            "cost": format_amount(costs.cost_before_discount),
            "discount_percentage": self.percentage_discount_display(),
            "discount": format_amount(costs.discount_amount, 5),
            "total": format_amount(costs.cost_after_discount),
        }

    def error_message(self) -> str | None:
        """Return the active warning text, or None when there is none."""
        if not self.show_warning:
            return None
        return error_message(self._state, self._token_symbol)

    def disable_buying(self, flow_state: FlowState) -> bool:
        """Return True when the buy action must be disabled."""
        return not can_purchase(
            is_approved=flow_state in _APPROVED_STATES,
            is_confirmed=flow_state is FlowState.CONFIRMED,
            state=self._state,
            quantity=self._quantity,
            ticket_numbers=self._ticket_set.get_tickets_for_purchase(),
        )
