"""Structural protocols for the external collaborators of the purchase engine.

Define the token, lottery, ticket-set, and notification interfaces that
decouple the approve/confirm flow from concrete implementations. Any class
whose shape matches these protocols can be injected without explicit
inheritance (structural subtyping), which keeps the flow testable with
in-memory fakes.
"""

from decimal import Decimal
from typing import Protocol, runtime_checkable

from lottery_tools.core.models import BalanceSnapshot, LotteryRound, TransactionReceipt


@runtime_checkable
class TokenService(Protocol):
    """Async access to the ERC-20 token used to pay for tickets."""

    async def allowance(self, owner: str, spender: str) -> Decimal:
        """Return how many tokens ``spender`` may transfer on behalf of ``owner``."""
        ...

    async def approve(self, spender: str, amount: int) -> TransactionReceipt:
        """Grant ``spender`` an allowance of ``amount`` base units and wait for the receipt."""
        ...

    async def get_balance(self, account: str) -> BalanceSnapshot:
        """Return the latest token balance of ``account``."""
        ...


@runtime_checkable
class LotteryService(Protocol):
    """Async access to the lottery contract."""

    @property
    def address(self) -> str:
        """Return the lottery contract address (the allowance spender)."""
        ...

    async def buy_tickets(self, lottery_id: int, ticket_numbers: list[int]) -> TransactionReceipt:
        """Submit a ticket purchase and wait for the receipt."""
        ...

    async def get_current_round(self) -> LotteryRound:
        """Return the round currently open for ticket sales."""
        ...

    async def get_user_tickets(self, account: str, lottery_id: int) -> list[int]:
        """Return the encoded ticket numbers ``account`` holds in a round."""
        ...


@runtime_checkable
class TicketSource(Protocol):
    """Supplier of the concrete ticket numbers to purchase."""

    def get_tickets_for_purchase(self) -> list[int]:
        """Return encoded ticket numbers ready for ``buyTickets``."""
        ...


@runtime_checkable
class PurchaseNotifier(Protocol):
    """Fire-and-forget sink for purchase outcomes.

    Implementors forward these signals to whatever presentation or state
    layer sits above the engine (toasts, a CLI, a state store).
    """

    def refresh_user_tickets(self, account: str, lottery_id: int) -> None:
        """Request a refresh of the user's tickets for a round."""
        ...

    def dismiss(self) -> None:
        """Request that the purchase surface be closed."""
        ...

    def show_success(self, message: str) -> None:
        """Display a success message."""
        ...

    def show_error(self, message: str) -> None:
        """Display an error message."""
        ...
