"""Tests for the approve-then-confirm transaction flow."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from lottery_tools.apps.ticket_purchase.transaction_flow import (
    APPROVE_SUCCESS_MESSAGE,
    MAX_UINT256,
    PURCHASE_SUCCESS_MESSAGE,
    ApproveConfirmTransactionFlow,
    FlowEvent,
    FlowState,
    InvalidTransitionError,
    transition,
)
from lottery_tools.clients.lottery.exceptions import LotteryContractError
from lottery_tools.core.models import TransactionReceipt

_ACCOUNT = "0x1111111111111111111111111111111111111111"
_LOTTERY_ADDRESS = "0x2222222222222222222222222222222222222222"
_LOTTERY_ID = 42
_TICKETS = [1_123_456, 1_654_321]
_OK_RECEIPT = TransactionReceipt(tx_hash="0xabc", status=1, gas_used=21000)
_REVERTED_RECEIPT = TransactionReceipt(tx_hash="0xdead", status=0, gas_used=21000)


def _mock_token(*, allowance: Decimal = Decimal(0)) -> AsyncMock:
    """Build a mock TokenService.

    Args:
        allowance: Allowance returned by ``allowance``.

    Returns:
        AsyncMock configured as a TokenService.

    """
    token = AsyncMock()
    token.allowance = AsyncMock(return_value=allowance)
    token.approve = AsyncMock(return_value=_OK_RECEIPT)
    return token


def _mock_lottery() -> AsyncMock:
    """Build a mock LotteryService with a fixed address."""
    lottery = AsyncMock()
    lottery.address = _LOTTERY_ADDRESS
    lottery.buy_tickets = AsyncMock(return_value=_OK_RECEIPT)
    return lottery


def _mock_tickets(numbers: list[int] | None = None) -> MagicMock:
    """Build a mock TicketSource."""
    tickets = MagicMock()
    tickets.get_tickets_for_purchase = MagicMock(return_value=numbers or list(_TICKETS))
    return tickets


def _flow(
    token: AsyncMock,
    lottery: AsyncMock | None = None,
    tickets: MagicMock | None = None,
    notifier: MagicMock | None = None,
    states: list[FlowState] | None = None,
) -> ApproveConfirmTransactionFlow:
    return ApproveConfirmTransactionFlow(
        token=token,
        lottery=lottery or _mock_lottery(),
        tickets=tickets or _mock_tickets(),
        notifier=notifier or MagicMock(),
        account=_ACCOUNT,
        lottery_id=_LOTTERY_ID,
        on_state_change=states.append if states is not None else None,
    )


class TestTransition:
    """Tests for the pure transition function."""

    @pytest.mark.parametrize(
        ("state", "event", "expected"),
        [
            (FlowState.IDLE, FlowEvent.START, FlowState.CHECKING_ALLOWANCE),
            (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_GRANTED, FlowState.APPROVED),
            (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_MISSING, FlowState.NEEDS_APPROVAL),
            (FlowState.CHECKING_ALLOWANCE, FlowEvent.ALLOWANCE_FAILED, FlowState.NEEDS_APPROVAL),
            (FlowState.NEEDS_APPROVAL, FlowEvent.APPROVE, FlowState.APPROVING),
            (FlowState.APPROVING, FlowEvent.APPROVE_SUCCEEDED, FlowState.APPROVED),
            (FlowState.APPROVING, FlowEvent.APPROVE_FAILED, FlowState.NEEDS_APPROVAL),
            (FlowState.APPROVED, FlowEvent.CONFIRM, FlowState.CONFIRMING),
            (FlowState.CONFIRMING, FlowEvent.CONFIRM_SUCCEEDED, FlowState.CONFIRMED),
            (FlowState.CONFIRMING, FlowEvent.CONFIRM_FAILED, FlowState.APPROVED),
        ],
    )
    def test_allowed_transitions(
        self, state: FlowState, event: FlowEvent, expected: FlowState
    ) -> None:
        """Follow the transition table."""
        assert transition(state, event) is expected

    @pytest.mark.parametrize("state", list(FlowState))
    def test_dismiss_from_any_state(self, state: FlowState) -> None:
        """Dismissal always returns to IDLE."""
        assert transition(state, FlowEvent.DISMISS) is FlowState.IDLE

    @pytest.mark.parametrize(
        ("state", "event"),
        [
            (FlowState.IDLE, FlowEvent.CONFIRM),
            (FlowState.NEEDS_APPROVAL, FlowEvent.CONFIRM),
            (FlowState.CONFIRMED, FlowEvent.CONFIRM),
            (FlowState.APPROVED, FlowEvent.APPROVE_SUCCEEDED),
            (FlowState.CHECKING_ALLOWANCE, FlowEvent.APPROVE),
        ],
    )
    def test_illegal_transitions_raise(self, state: FlowState, event: FlowEvent) -> None:
        """Reject events that are not allowed from the state."""
        with pytest.raises(InvalidTransitionError, match="Illegal purchase flow transition"):
            transition(state, event)


class TestStart:
    """Tests for the allowance check."""

    @pytest.mark.asyncio
    async def test_existing_allowance_is_approved(self) -> None:
        """A positive allowance skips approval."""
        token = _mock_token(allowance=Decimal(1))
        flow = _flow(token)

        state = await flow.start()

        assert state is FlowState.APPROVED
        assert flow.is_approved is True
        token.allowance.assert_awaited_once_with(_ACCOUNT, _LOTTERY_ADDRESS)

    @pytest.mark.asyncio
    async def test_zero_allowance_needs_approval(self) -> None:
        """A zero allowance requires approval."""
        flow = _flow(_mock_token(allowance=Decimal(0)))
        assert await flow.start() is FlowState.NEEDS_APPROVAL

    @pytest.mark.asyncio
    async def test_allowance_query_failure_needs_approval(self) -> None:
        """A failed allowance query fails safe to NEEDS_APPROVAL, never APPROVED."""
        token = _mock_token()
        token.allowance = AsyncMock(side_effect=LotteryContractError(msg="RPC down"))
        notifier = MagicMock()
        flow = _flow(token, notifier=notifier)

        state = await flow.start()

        assert state is FlowState.NEEDS_APPROVAL
        assert flow.is_approved is False
        notifier.show_error.assert_not_called()


class TestApprove:
    """Tests for the approval step."""

    @pytest.mark.asyncio
    async def test_approve_grants_unlimited_allowance(self) -> None:
        """Approve the lottery contract for MAX_UINT256 and report success."""
        token = _mock_token()
        notifier = MagicMock()
        flow = _flow(token, notifier=notifier)
        await flow.start()

        state = await flow.approve()

        assert state is FlowState.APPROVED
        token.approve.assert_awaited_once_with(_LOTTERY_ADDRESS, MAX_UINT256)
        notifier.show_success.assert_called_once_with(APPROVE_SUCCESS_MESSAGE)

    @pytest.mark.asyncio
    async def test_approve_failure_returns_to_needs_approval(self) -> None:
        """A failed approval reports an error and can be retried."""
        token = _mock_token()
        token.approve = AsyncMock(side_effect=LotteryContractError(msg="user rejected"))
        notifier = MagicMock()
        states: list[FlowState] = []
        flow = _flow(token, notifier=notifier, states=states)
        await flow.start()

        state = await flow.approve()

        assert state is FlowState.NEEDS_APPROVAL
        assert states[-3:] == [FlowState.APPROVING, FlowState.FAILED, FlowState.NEEDS_APPROVAL]
        notifier.show_error.assert_called_once()
        assert flow.last_error is not None
        assert "user rejected" in flow.last_error
        token.approve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reverted_approval_is_a_failure(self) -> None:
        """A mined but reverted approval does not count as approved."""
        token = _mock_token()
        token.approve = AsyncMock(return_value=_REVERTED_RECEIPT)
        flow = _flow(token)
        await flow.start()

        assert await flow.approve() is FlowState.NEEDS_APPROVAL

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(self) -> None:
        """The user can approve again after a failure."""
        token = _mock_token()
        token.approve = AsyncMock(side_effect=[LotteryContractError(msg="boom"), _OK_RECEIPT])
        flow = _flow(token)
        await flow.start()

        await flow.approve()
        state = await flow.approve()

        assert state is FlowState.APPROVED


class TestConfirm:
    """Tests for the purchase step."""

    @pytest.mark.asyncio
    async def test_confirm_success_notifies_once(self) -> None:
        """A successful purchase refreshes tickets and dismisses exactly once."""
        lottery = _mock_lottery()
        notifier = MagicMock()
        flow = _flow(_mock_token(allowance=Decimal(1)), lottery=lottery, notifier=notifier)
        await flow.start()

        state = await flow.confirm()

        assert state is FlowState.CONFIRMED
        assert flow.is_confirmed is True
        lottery.buy_tickets.assert_awaited_once_with(_LOTTERY_ID, _TICKETS)
        notifier.refresh_user_tickets.assert_called_once_with(_ACCOUNT, _LOTTERY_ID)
        notifier.dismiss.assert_called_once_with()
        notifier.show_success.assert_called_once_with(PURCHASE_SUCCESS_MESSAGE)

    @pytest.mark.asyncio
    async def test_ticket_numbers_read_at_submission(self) -> None:
        """Buy the ticket set as it is when confirm is called."""
        lottery = _mock_lottery()
        tickets = _mock_tickets()
        flow = _flow(_mock_token(allowance=Decimal(1)), lottery=lottery, tickets=tickets)
        await flow.start()
        tickets.get_tickets_for_purchase.return_value = [1_999_999]

        await flow.confirm()

        lottery.buy_tickets.assert_awaited_once_with(_LOTTERY_ID, [1_999_999])

    @pytest.mark.asyncio
    async def test_confirm_failure_returns_to_approved(self) -> None:
        """A failed purchase reports an error and stays approved for a retry."""
        lottery = _mock_lottery()
        lottery.buy_tickets = AsyncMock(side_effect=LotteryContractError(msg="reverted"))
        notifier = MagicMock()
        flow = _flow(_mock_token(allowance=Decimal(1)), lottery=lottery, notifier=notifier)
        await flow.start()

        state = await flow.confirm()

        assert state is FlowState.APPROVED
        notifier.show_error.assert_called_once()
        notifier.refresh_user_tickets.assert_not_called()
        notifier.dismiss.assert_not_called()

    @pytest.mark.asyncio
    async def test_ticket_source_error_returns_to_approved(self) -> None:
        """A ticket set that cannot be encoded fails the purchase without buying."""
        lottery = _mock_lottery()
        tickets = _mock_tickets()
        tickets.get_tickets_for_purchase.side_effect = ValueError("bad digit")
        notifier = MagicMock()
        states: list[FlowState] = []
        flow = _flow(
            _mock_token(allowance=Decimal(1)),
            lottery=lottery,
            tickets=tickets,
            notifier=notifier,
            states=states,
        )
        await flow.start()

        state = await flow.confirm()

        assert state is FlowState.APPROVED
        assert states[-3:] == [FlowState.CONFIRMING, FlowState.FAILED, FlowState.APPROVED]
        assert flow.last_error is not None
        assert "bad digit" in flow.last_error
        notifier.show_error.assert_called_once()
        lottery.buy_tickets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirm_before_approval_is_illegal(self) -> None:
        """Confirming without an allowance is a programming error."""
        flow = _flow(_mock_token())
        await flow.start()

        with pytest.raises(InvalidTransitionError):
            await flow.confirm()


class TestDismiss:
    """Tests for dismissal while a call is in flight."""

    @pytest.mark.asyncio
    async def test_dismiss_stops_waiting_on_purchase(self) -> None:
        """A purchase that lands after dismissal emits no notifications."""
        release = asyncio.Event()

        async def _slow_buy(lottery_id: int, numbers: list[int]) -> TransactionReceipt:  # noqa: ARG001
            await release.wait()
            return _OK_RECEIPT

        lottery = _mock_lottery()
        lottery.buy_tickets = AsyncMock(side_effect=_slow_buy)
        notifier = MagicMock()
        flow = _flow(_mock_token(allowance=Decimal(1)), lottery=lottery, notifier=notifier)
        await flow.start()

        task = asyncio.create_task(flow.confirm())
        await asyncio.sleep(0)
        assert flow.is_confirming is True
        flow.dismiss()
        release.set()
        state = await task

        assert state is FlowState.IDLE
        notifier.refresh_user_tickets.assert_not_called()
        notifier.dismiss.assert_not_called()
        lottery.buy_tickets.assert_awaited_once()
