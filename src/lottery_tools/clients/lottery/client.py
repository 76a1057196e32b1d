"""Typed async facade for the lottery and CAKE token contracts.

Wrap the synchronous web3 adapter in ``asyncio.to_thread()`` to avoid
blocking the event loop, serialise calls with a lock so only one RPC or
transaction is in flight at a time, and convert wei amounts into ``Decimal``
token units. ``LotteryClient`` satisfies both the ``TokenService`` and
``LotteryService`` protocols consumed by the purchase flow.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any

from lottery_tools.clients.lottery import _contract_adapter
from lottery_tools.clients.lottery.exceptions import LotteryContractError, NotAuthenticatedError
from lottery_tools.core.models import (
    BalanceSnapshot,
    FetchStatus,
    LotteryRound,
    RoundPricing,
    TransactionReceipt,
)

logger = logging.getLogger(__name__)

_WEI_PER_TOKEN = Decimal(10) ** 18
_DEFAULT_GAS = 500_000
_DEFAULT_RECEIPT_TIMEOUT = 120


def wei_to_tokens(amount: int) -> Decimal:
    """Convert an 18-decimal wei amount into whole token units."""
    return Decimal(amount) / _WEI_PER_TOKEN


class LotteryClient:
    """Async client for buying tickets on the lottery contract.

    Without a private key the client is read-only: round data, balances and
    allowances can be queried but ``approve`` and ``buy_tickets`` raise
    ``NotAuthenticatedError``.

    Args:
        rpc_url: JSON-RPC endpoint URL.
        lottery_address: Lottery contract address (the allowance spender).
        token_address: CAKE token contract address.
        private_key: Hex-encoded key used to sign transactions.
        gas: Gas limit per transaction.
        receipt_timeout: Seconds to wait for each receipt.

    """

    def __init__(
        self,
        rpc_url: str,
        lottery_address: str,
        token_address: str,
        private_key: str | None = None,
        *,
        gas: int = _DEFAULT_GAS,
        receipt_timeout: int = _DEFAULT_RECEIPT_TIMEOUT,
    ) -> None:
        """Initialize the lottery client."""
        self._w3: Any = _contract_adapter.create_web3(rpc_url)
        self._lottery_address = lottery_address
        self._token_address = token_address
        self._private_key = private_key or None
        self._account = (
            _contract_adapter.account_address(private_key) if private_key else None
        )
        self._gas = gas
        self._receipt_timeout = receipt_timeout
        self._lock = asyncio.Lock()

    @property
    def address(self) -> str:
        """Return the lottery contract address."""
        return self._lottery_address

    @property
    def account(self) -> str | None:
        """Return the signing account address, or None in read-only mode."""
        return self._account

    def _require_auth(self) -> str:
        if self._private_key is None:
            msg = "A private key is required to send transactions"
            raise NotAuthenticatedError(msg)
        return self._private_key

    async def get_current_round(self) -> LotteryRound:
        """Fetch the open round's id, pricing and per-transaction cap."""
        async with self._lock:
            lottery_id = await asyncio.to_thread(
                _contract_adapter.fetch_current_lottery_id, self._w3, self._lottery_address
            )
            cap = await asyncio.to_thread(
                _contract_adapter.fetch_max_tickets_per_buy, self._w3, self._lottery_address
            )
            raw = await asyncio.to_thread(
                _contract_adapter.fetch_lottery, self._w3, self._lottery_address, lottery_id
            )
        return LotteryRound(
            lottery_id=lottery_id,
            pricing=RoundPricing(
                price_ticket_in_cake=wei_to_tokens(raw["price_ticket_in_cake"]),
                discount_divisor=Decimal(raw["discount_divisor"]),
            ),
            max_number_tickets_per_buy_or_claim=cap,
        )

    async def get_user_tickets(self, account: str, lottery_id: int) -> list[int]:
        """Fetch the encoded ticket numbers ``account`` holds in a round."""
        async with self._lock:
            return await asyncio.to_thread(
                _contract_adapter.fetch_user_tickets,
                self._w3,
                self._lottery_address,
                account,
                lottery_id,
            )

    async def get_balance(self, account: str) -> BalanceSnapshot:
        """Fetch the CAKE balance of ``account``.

        On RPC failure, log a warning and return a ``FAILED`` snapshot so the
        purchase screen keeps its "not fetched" behaviour.
        """
        try:
            async with self._lock:
                wei = await asyncio.to_thread(
                    _contract_adapter.fetch_balance, self._w3, self._token_address, account
                )
        except LotteryContractError:
            logger.warning("Balance fetch failed for %s", account, exc_info=True)
            return BalanceSnapshot(status=FetchStatus.FAILED)
        return BalanceSnapshot(amount=wei_to_tokens(wei), status=FetchStatus.SUCCESS)

    async def allowance(self, owner: str, spender: str) -> Decimal:
        """Fetch how much CAKE ``spender`` may transfer for ``owner``."""
        async with self._lock:
            wei = await asyncio.to_thread(
                _contract_adapter.fetch_allowance, self._w3, self._token_address, owner, spender
            )
        return wei_to_tokens(wei)

    async def approve(self, spender: str, amount: int) -> TransactionReceipt:
        """Approve ``spender`` for ``amount`` wei and wait for the receipt.

        Raises:
            NotAuthenticatedError: When the client has no private key.
            LotteryContractError: When the transaction fails or reverts.

        """
        private_key = self._require_auth()
        fn = _contract_adapter.build_approve(self._w3, self._token_address, spender, amount)
        return await self._send(private_key, fn, "approve")

    async def buy_tickets(self, lottery_id: int, ticket_numbers: list[int]) -> TransactionReceipt:
        """Buy ``ticket_numbers`` in round ``lottery_id`` and wait for the receipt.

        Raises:
            NotAuthenticatedError: When the client has no private key.
            LotteryContractError: When the transaction fails or reverts.

        """
        private_key = self._require_auth()
        fn = _contract_adapter.build_buy_tickets(
            self._w3, self._lottery_address, lottery_id, ticket_numbers
        )
        return await self._send(private_key, fn, "buyTickets")

    async def _send(self, private_key: str, fn: Any, action: str) -> TransactionReceipt:
        async with self._lock:
            raw = await asyncio.to_thread(
                _contract_adapter.send_transaction,
                self._w3,
                private_key,
                fn,
                gas=self._gas,
                timeout=self._receipt_timeout,
            )
        receipt = TransactionReceipt(
            tx_hash=raw["tx_hash"], status=raw["status"], gas_used=raw["gas_used"]
        )
        logger.info(
            "%s %s (gas used: %d, tx: %s)",
            action,
            "SUCCESS" if receipt.succeeded else "FAILED",
            receipt.gas_used,
            receipt.tx_hash,
        )
        if not receipt.succeeded:
            raise LotteryContractError(msg=f"{action} reverted", tx_hash=receipt.tx_hash)
        return receipt
