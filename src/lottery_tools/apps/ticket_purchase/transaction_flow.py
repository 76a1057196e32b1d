"""Approve-then-confirm transaction flow for buying lottery tickets.

Model the purchase as an explicit finite-state machine. ``transition`` is a
pure ``(state, event) -> state`` function over a fixed table; the
``ApproveConfirmTransactionFlow`` class drives it against injected async
token and lottery services, so the whole protocol can be exercised with
in-memory fakes.

Failures never strand the flow: a failed approval returns to
``NEEDS_APPROVAL`` and a failed purchase returns to ``APPROVED`` so the user
can retry. ``FAILED`` is only announced transiently to state listeners.
"""

import logging
from collections.abc import Callable
from decimal import Decimal
from enum import Enum

from lottery_tools.core.models import ZERO, TransactionReceipt
from lottery_tools.core.protocols import (
    LotteryService,
    PurchaseNotifier,
    TicketSource,
    TokenService,
)

logger = logging.getLogger(__name__)

MAX_UINT256 = 2**256 - 1

APPROVE_SUCCESS_MESSAGE = "Contract approved - you can now purchase tickets"
PURCHASE_SUCCESS_MESSAGE = "Lottery tickets purchased!"


class FlowState(Enum):
    """States of a single purchase attempt."""

    IDLE = "idle"
    CHECKING_ALLOWANCE = "checking_allowance"
    NEEDS_APPROVAL = "needs_approval"
    APPROVING = "approving"
    APPROVED = "approved"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class FlowEvent(Enum):
    """Events that move a purchase attempt between states."""

    START = "start"
    ALLOWANCE_GRANTED = "allowance_granted"
    ALLOWANCE_MISSING = "allowance_missing"
    ALLOWANCE_FAILED = "allowance_failed"
    APPROVE = "approve"
    APPROVE_SUCCEEDED = "approve_succeeded"
    APPROVE_FAILED = "approve_failed"
    CONFIRM = "confirm"
    CONFIRM_SUCCEEDED = "confirm_succeeded"
    CONFIRM_FAILED = "confirm_failed"
    DISMISS = "dismiss"


class TransactionRevertedError(Exception):
    """Raise when a mined transaction reports a failed status."""


class InvalidTransitionError(Exception):
    """Raise when an event is not allowed from the current state."""

    def __init__(self, state: FlowState, event: FlowEvent) -> None:
        """Initialize with the rejected state/event pair."""
        super().__init__(f"Illegal purchase flow transition: {state.value} --{event.value}-->")
        self.state = state
        self.event = event


_TRANSITIONS: dict[tuple[FlowState, FlowEvent], FlowState] = {
    (FlowState.IDLE, FlowEvent.START): FlowState.CHECKING_ALLOWANCE,
    (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_GRANTED): FlowState.APPROVED,
    (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_MISSING): FlowState.NEEDS_APPROVAL,
    (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_FAILED): FlowState.NEEDS_APPROVAL,
    (FlowState.NEEDS_APPROVAL, FlowEvent.APPROVE): FlowState.APPROVING,
    (FlowState.APPROVING, FlowEvent.APPROVE_SUCCEEDED): FlowState.APPROVED,
    (FlowState.APPROVING, FlowEvent.APPROVE_FAILED): FlowState.NEEDS_APPROVAL,
    (FlowState.APPROVED, FlowEvent.CONFIRM): FlowState.CONFIRMING,
    (FlowState.CONFIRMING, FlowEvent.CONFIRM_SUCCEEDED): FlowState.CONFIRMED,
    (FlowState.CONFIRMING, FlowEvent.CONFIRM_FAILED): FlowState.APPROVED,
}


def transition(state: FlowState, event: FlowEvent) -> FlowState:
    """Return the state reached by applying ``event`` in ``state``.

    ``DISMISS`` is accepted from every state and returns to ``IDLE``.

    Raises:
        InvalidTransitionError: If the event is not allowed from ``state``.

    """
    if event is FlowEvent.DISMISS:
        return FlowState.IDLE
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state, event) from None


class ApproveConfirmTransactionFlow:
    """Drive one purchase attempt through allowance, approval and confirmation.

    Only one external call is in flight at a time; the caller is trusted not
    to submit approve and confirm concurrently (buttons are disabled while a
    call is pending). Dismissing the flow stops waiting on an in-flight call
    but cannot revoke a transaction that has already been submitted.

    Args:
        token: Service for the payment token (allowance and approval).
        lottery: Service for the lottery contract (ticket purchase).
        tickets: Supplier of the ticket numbers, read at submission time.
        notifier: Sink for success/error messages and refresh signals.
        account: Address of the buyer.
        lottery_id: Round the tickets are bought for.
        on_state_change: Optional callback invoked with every state entered.

    """

    def __init__(
        self,
        token: TokenService,
        lottery: LotteryService,
        tickets: TicketSource,
        notifier: PurchaseNotifier,
        account: str,
        lottery_id: int,
        on_state_change: Callable[[FlowState], None] | None = None,
    ) -> None:
        """Initialize the flow in the ``IDLE`` state."""
        self._token = token
        self._lottery = lottery
        self._tickets = tickets
        self._notifier = notifier
        self._account = account
        self._lottery_id = lottery_id
        self._on_state_change = on_state_change
        self._state = FlowState.IDLE
        self._attempt = 0
        self._last_error: str | None = None

    @property
    def state(self) -> FlowState:
        """Return the current state."""
        return self._state

    @property
    def last_error(self) -> str | None:
        """Return the message of the most recent failure, if any."""
        return self._last_error

    @property
    def is_approved(self) -> bool:
        """Return True once the spender allowance is in place."""
        return self._state in (FlowState.APPROVED, FlowState.CONFIRMING, FlowState.CONFIRMED)

    @property
    def is_approving(self) -> bool:
        """Return True while the approval transaction is pending."""
        return self._state is FlowState.APPROVING

    @property
    def is_confirming(self) -> bool:
        """Return True while the purchase transaction is pending."""
        return self._state is FlowState.CONFIRMING

    @property
    def is_confirmed(self) -> bool:
        """Return True once the tickets have been bought."""
        return self._state is FlowState.CONFIRMED

    def _apply(self, event: FlowEvent) -> FlowState:
        new_state = transition(self._state, event)
        logger.info("Purchase flow %s --%s--> %s", self._state.value, event.value, new_state.value)
        self._enter(new_state)
        return new_state

    def _enter(self, state: FlowState) -> None:
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _fail(self, event: FlowEvent, message: str) -> None:
        self._last_error = message
        if self._on_state_change is not None:
            self._on_state_change(FlowState.FAILED)
        self._apply(event)
        self._notifier.show_error(message)

    async def start(self) -> FlowState:
        """Check the existing allowance and settle in ``APPROVED`` or ``NEEDS_APPROVAL``.

        A failed allowance query is treated as "approval required" so an
        approval is never silently skipped.
        """
        self._apply(FlowEvent.START)
        attempt = self._attempt
        try:
            allowance = await self._token.allowance(self._account, self._lottery.address)
        except Exception:
            logger.warning("Allowance query failed, assuming approval is required", exc_info=True)
            if self._is_current(attempt):
                self._apply(FlowEvent.ALLOWANCE_FAILED)
            return self._state

        if not self._is_current(attempt):
            return self._state
        if has_allowance(allowance):
            self._apply(FlowEvent.ALLOWANCE_GRANTED)
        else:
            self._apply(FlowEvent.ALLOWANCE_MISSING)
        return self._state

    async def approve(self) -> FlowState:
        """Grant the lottery contract an unlimited allowance.

        On failure report the error and return to ``NEEDS_APPROVAL``; the
        approval is not retried automatically.
        """
        self._apply(FlowEvent.APPROVE)
        attempt = self._attempt
        try:
            receipt = await self._token.approve(self._lottery.address, MAX_UINT256)
            _ensure_succeeded(receipt, "Approval")
        except Exception as exc:
            logger.warning("Approval failed", exc_info=True)
            if self._is_current(attempt):
                self._fail(FlowEvent.APPROVE_FAILED, f"Please try again. {exc}")
            return self._state

        if not self._is_current(attempt):
            return self._state
        logger.info("Approval mined in %s", receipt.tx_hash)
        self._apply(FlowEvent.APPROVE_SUCCEEDED)
        self._notifier.show_success(APPROVE_SUCCESS_MESSAGE)
        return self._state

    async def confirm(self) -> FlowState:
        """Buy the tickets currently held by the ticket source.

        Ticket numbers are read at submission time so the latest edited or
        randomized set is bought. On success the caller is told to dismiss
        the purchase surface and refresh the user's tickets; on failure the
        flow returns to ``APPROVED``.
        """
        self._apply(FlowEvent.CONFIRM)
        attempt = self._attempt
        try:
            ticket_numbers = self._tickets.get_tickets_for_purchase()
            receipt = await self._lottery.buy_tickets(self._lottery_id, ticket_numbers)
            _ensure_succeeded(receipt, "Ticket purchase")
        except Exception as exc:
            logger.warning("Ticket purchase failed", exc_info=True)
            if self._is_current(attempt):
                self._fail(FlowEvent.CONFIRM_FAILED, f"Please try again. {exc}")
            return self._state

        if not self._is_current(attempt):
            return self._state
        logger.info("Bought %d tickets in %s", len(ticket_numbers), receipt.tx_hash)
        self._apply(FlowEvent.CONFIRM_SUCCEEDED)
        self._notifier.dismiss()
        self._notifier.refresh_user_tickets(self._account, self._lottery_id)
        self._notifier.show_success(PURCHASE_SUCCESS_MESSAGE)
        return self._state

    def dismiss(self) -> None:
        """Abandon the attempt and stop waiting on any in-flight call."""
        self._attempt += 1
        self._apply(FlowEvent.DISMISS)

    def _is_current(self, attempt: int) -> bool:
        if attempt != self._attempt:
            logger.info("Ignoring result of a dismissed purchase attempt")
            return False
        return True


def _ensure_succeeded(receipt: TransactionReceipt, action: str) -> None:
    if not receipt.succeeded:
        msg = f"{action} transaction {receipt.tx_hash} reverted"
        raise TransactionRevertedError(msg)


def has_allowance(allowance: Decimal) -> bool:
    """Return True when an existing allowance lets the purchase skip approval."""
    return allowance > ZERO
