"""Tests for the ticket purchase CLI commands."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from lottery_tools.apps.ticket_purchase.cli import app
from lottery_tools.clients.lottery.exceptions import LotteryContractError
from lottery_tools.core.models import (
    BalanceSnapshot,
    FetchStatus,
    LotteryRound,
    TransactionReceipt,
)

_QUOTE_CLIENT = "lottery_tools.apps.ticket_purchase.cli.quote_cmd.build_client"
_BUY_CLIENT = "lottery_tools.apps.ticket_purchase.cli.buy_cmd.build_client"
_ACCOUNT = "0x1111111111111111111111111111111111111111"
_LOTTERY_ADDRESS = "0x5aF6D33DE2ccEC94efb1bDF8f92Bd58085432d2c"
_OK_RECEIPT = TransactionReceipt(tx_hash="0xabc", status=1, gas_used=90000)


@pytest.fixture
def runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


def _mock_client(
    lottery_round: LotteryRound,
    *,
    balance: Decimal = Decimal(1000),
    allowance: Decimal = Decimal(1),
) -> MagicMock:
    """Build a mock LotteryClient.

    Args:
        lottery_round: Round returned by ``get_current_round``.
        balance: CAKE balance of the account.
        allowance: Allowance already granted to the lottery.

    Returns:
        MagicMock with async client methods.

    """
    client = MagicMock()
    client.account = _ACCOUNT
    client.address = _LOTTERY_ADDRESS
    client.get_current_round = AsyncMock(return_value=lottery_round)
    client.get_balance = AsyncMock(
        return_value=BalanceSnapshot(amount=balance, status=FetchStatus.SUCCESS)
    )
    client.get_user_tickets = AsyncMock(side_effect=[[], [1_123_456, 1_234_567, 1_345_678]])
    client.allowance = AsyncMock(return_value=allowance)
    client.approve = AsyncMock(return_value=_OK_RECEIPT)
    client.buy_tickets = AsyncMock(return_value=_OK_RECEIPT)
    return client


class TestQuoteCommand:
    """Tests for the quote command."""

    def test_offline_quote(self, runner: CliRunner) -> None:
        """Price a purchase from explicit price and divisor."""
        result = runner.invoke(
            app, ["quote", "--tickets", "100", "--price", "5", "--divisor", "2000"]
        )
        assert result.exit_code == 0
        assert "Cost: 500 CAKE" in result.output
        assert "Bulk discount: 4.95% (~24.75000 CAKE)" in result.output
        assert "You pay: ~475.25 CAKE" in result.output

    def test_quote_fetches_round(self, runner: CliRunner, standard_round: LotteryRound) -> None:
        """Fetch pricing from chain when no overrides are given."""
        client = _mock_client(standard_round)
        with patch(_QUOTE_CLIENT, return_value=client):
            result = runner.invoke(app, ["quote", "--tickets", "1"])
        assert result.exit_code == 0
        assert "Cost: 5 CAKE" in result.output
        assert "Bulk discount: 0% (~0.00000 CAKE)" in result.output
        client.get_current_round.assert_awaited_once()

    def test_zero_divisor_warns(self, runner: CliRunner) -> None:
        """A zero divisor prints zero costs instead of failing."""
        result = runner.invoke(app, ["quote", "--tickets", "3", "--price", "5", "--divisor", "0"])
        assert result.exit_code == 0
        assert "pricing unavailable" in result.output
        assert "You pay: ~0 CAKE" in result.output

    def test_price_without_divisor_fails(self, runner: CliRunner) -> None:
        """Require both overrides together."""
        result = runner.invoke(app, ["quote", "--tickets", "3", "--price", "5"])
        assert result.exit_code == 1

    def test_invalid_price_fails(self, runner: CliRunner) -> None:
        """Reject a price that is not a number."""
        result = runner.invoke(
            app, ["quote", "--tickets", "3", "--price", "abc", "--divisor", "2000"]
        )
        assert result.exit_code == 1


class TestRoundCommand:
    """Tests for the round command."""

    def test_shows_round(self, runner: CliRunner, standard_round: LotteryRound) -> None:
        """Print the open round's pricing and cap."""
        with patch(_QUOTE_CLIENT, return_value=_mock_client(standard_round)):
            result = runner.invoke(app, ["round"])
        assert result.exit_code == 0
        assert "Lottery: #42" in result.output
        assert "Ticket price: 5 CAKE" in result.output
        assert "Discount divisor: 2000" in result.output
        assert "Max tickets per buy: 100" in result.output


class TestBuyCommand:
    """Tests for the buy command."""

    def test_buy_with_existing_allowance(
        self, runner: CliRunner, standard_round: LotteryRound
    ) -> None:
        """Skip approval and buy when an allowance exists."""
        client = _mock_client(standard_round)
        with patch(_BUY_CLIENT, return_value=client):
            result = runner.invoke(app, ["buy", "--tickets", "3", "--no-confirm"])

        assert result.exit_code == 0
        assert "Lottery tickets purchased!" in result.output
        assert "You now hold 3 tickets in lottery #42." in result.output
        client.approve.assert_not_awaited()
        lottery_id, numbers = client.buy_tickets.await_args.args
        assert lottery_id == 42
        assert len(numbers) == 3

    def test_buy_approves_first(self, runner: CliRunner, standard_round: LotteryRound) -> None:
        """Approve, then buy, after confirming both prompts."""
        client = _mock_client(standard_round, allowance=Decimal(0))
        with patch(_BUY_CLIENT, return_value=client):
            result = runner.invoke(app, ["buy", "--tickets", "3"], input="y\ny\n")

        assert result.exit_code == 0
        assert "Contract approved - you can now purchase tickets" in result.output
        client.approve.assert_awaited_once()
        client.buy_tickets.assert_awaited_once()

    def test_declined_approval_aborts(
        self, runner: CliRunner, standard_round: LotteryRound
    ) -> None:
        """Answering no at the approval prompt sends nothing."""
        client = _mock_client(standard_round, allowance=Decimal(0))
        with patch(_BUY_CLIENT, return_value=client):
            result = runner.invoke(app, ["buy", "--tickets", "3"], input="n\n")

        assert result.exit_code != 0
        client.approve.assert_not_awaited()
        client.buy_tickets.assert_not_awaited()

    def test_insufficient_balance_fails(
        self, runner: CliRunner, standard_round: LotteryRound
    ) -> None:
        """Refuse to buy what the balance cannot cover."""
        client = _mock_client(standard_round, balance=Decimal(1))
        with patch(_BUY_CLIENT, return_value=client):
            result = runner.invoke(app, ["buy", "--tickets", "3", "--no-confirm"])

        assert result.exit_code == 1
        assert "Insufficient CAKE balance" in result.output
        client.buy_tickets.assert_not_awaited()

    def test_failed_purchase_exits_nonzero(
        self, runner: CliRunner, standard_round: LotteryRound
    ) -> None:
        """A reverted purchase reports the error and exits 1."""
        client = _mock_client(standard_round)
        client.buy_tickets = AsyncMock(side_effect=LotteryContractError(msg="buyTickets reverted"))
        with patch(_BUY_CLIENT, return_value=client):
            result = runner.invoke(app, ["buy", "--tickets", "3", "--no-confirm"])

        assert result.exit_code == 1
        assert "Please try again." in result.output

    def test_zero_tickets_rejected(self, runner: CliRunner) -> None:
        """Require at least one ticket."""
        result = runner.invoke(app, ["buy", "--tickets", "0"])
        assert result.exit_code == 1
