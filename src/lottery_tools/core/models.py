"""Core data models shared across the lottery tools application.

Define the immutable value objects (RoundPricing, LotteryRound,
BalanceSnapshot, TransactionReceipt) that flow between the contract
client, the pricing engine, the quantity validator, and the
approve/confirm transaction flow. Every token amount is a ``Decimal``
expressed in whole token units; wei conversion happens only inside the
contract client.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)

TX_STATUS_SUCCESS = 1


class FetchStatus(Enum):
    """Lifecycle of an externally fetched balance."""

    NOT_FETCHED = "not-fetched"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class RoundPricing:
    """Immutable per-round pricing parameters.

    Supplied by the lottery contract at the start of each round and never
    mutated by the engine. ``discount_divisor`` shapes the bulk discount
    curve; a zero divisor means pricing is unavailable.

    Args:
        price_ticket_in_cake: Price of a single ticket in CAKE.
        discount_divisor: Bulk-discount divisor for the round.

    Raises:
        ValueError: If either value is negative.

    """

    price_ticket_in_cake: Decimal
    discount_divisor: Decimal

    def __post_init__(self) -> None:
        """Validate that pricing values are non-negative."""
        if self.price_ticket_in_cake < ZERO:
            msg = f"price_ticket_in_cake must be non-negative, got {self.price_ticket_in_cake}"
            raise ValueError(msg)
        if self.discount_divisor < ZERO:
            msg = f"discount_divisor must be non-negative, got {self.discount_divisor}"
            raise ValueError(msg)


@dataclass(frozen=True)
class LotteryRound:
    """Snapshot of the lottery round currently open for ticket sales.

    Args:
        lottery_id: On-chain identifier of the round.
        pricing: Ticket price and discount divisor for the round.
        max_number_tickets_per_buy_or_claim: Protocol cap on tickets per
            transaction.

    """

    lottery_id: int
    pricing: RoundPricing
    max_number_tickets_per_buy_or_claim: int


@dataclass(frozen=True)
class BalanceSnapshot:
    """Latest known token balance together with its fetch status.

    The engine only reads this snapshot; polling and subscription live
    with whoever owns the wallet connection.
    """

    amount: Decimal = ZERO
    status: FetchStatus = FetchStatus.NOT_FETCHED

    @property
    def has_fetched(self) -> bool:
        """Return True once the balance query has completed successfully."""
        return self.status is FetchStatus.SUCCESS


@dataclass(frozen=True)
class TransactionReceipt:
    """Outcome of a mined on-chain transaction.

    Args:
        tx_hash: Hex-encoded transaction hash.
        status: Receipt status (1 for success, 0 for revert).
        gas_used: Gas consumed by the transaction.

    """

    tx_hash: str
    status: int
    gas_used: int = 0

    @property
    def succeeded(self) -> bool:
        """Return True when the transaction executed without reverting."""
        return self.status == TX_STATUS_SUCCESS
