"""Isolated bridge to ``web3`` for the lottery and CAKE token contracts.

This is the **only** module that imports from ``web3``. Functions are
synchronous and return primitive types (``int``, ``dict``, ``list``); the
async facade in ``client.py`` runs them in a worker thread and converts
wei amounts into ``Decimal`` token units.
"""

import logging
from collections.abc import Callable
from typing import Any

from eth_account import Account
from web3 import Web3
from web3.types import Nonce, TxParams, Wei

from lottery_tools.clients.lottery.exceptions import LotteryContractError

_logger = logging.getLogger(__name__)

_GAS_PRICE_MULTIPLIER = 1.25  # 25% above estimated to ensure inclusion
_USER_TICKETS_PAGE_SIZE = 100

# Minimum ERC-20 ABI used for CAKE
_ERC20_ABI: list[dict[str, Any]] = [
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

_LOTTERY_STRUCT_COMPONENTS: list[dict[str, Any]] = [
    {"name": "status", "type": "uint8"},
    {"name": "startTime", "type": "uint256"},
    {"name": "endTime", "type": "uint256"},
    {"name": "priceTicketInCake", "type": "uint256"},
    {"name": "discountDivisor", "type": "uint256"},
    {"name": "rewardsBreakdown", "type": "uint256[6]"},
    {"name": "treasuryFee", "type": "uint256"},
    {"name": "cakePerBracket", "type": "uint256[6]"},
    {"name": "countWinnersPerBracket", "type": "uint256[6]"},
    {"name": "firstTicketId", "type": "uint256"},
    {"name": "firstTicketIdNextLottery", "type": "uint256"},
    {"name": "amountCollectedInCake", "type": "uint256"},
    {"name": "finalNumber", "type": "uint32"},
]

# Minimum ABI for the lottery contract calls used by the purchase flow
_LOTTERY_ABI: list[dict[str, Any]] = [
    {
        "name": "currentLotteryId",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "maxNumberTicketsPerBuyOrClaim",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "viewLottery",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_lotteryId", "type": "uint256"}],
        "outputs": [
            {"name": "", "type": "tuple", "components": _LOTTERY_STRUCT_COMPONENTS},
        ],
    },
    {
        "name": "viewUserInfoForLotteryId",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "_user", "type": "address"},
            {"name": "_lotteryId", "type": "uint256"},
            {"name": "_cursor", "type": "uint256"},
            {"name": "_size", "type": "uint256"},
        ],
        "outputs": [
            {"name": "", "type": "uint256[]"},
            {"name": "", "type": "uint32[]"},
            {"name": "", "type": "bool[]"},
            {"name": "", "type": "uint256"},
        ],
    },
    {
        "name": "buyTickets",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_lotteryId", "type": "uint256"},
            {"name": "_ticketNumbers", "type": "uint32[]"},
        ],
        "outputs": [],
    },
]


def _safe_call(action: str, fn: Callable[..., Any], *args: Any) -> Any:
    """Execute a contract call, converting any failure into ``LotteryContractError``.

    Args:
        action: Human-readable description for error messages.
        fn: The callable to invoke.
        *args: Positional arguments forwarded to *fn*.

    Returns:
        The raw result from *fn*.

    Raises:
        LotteryContractError: When the call fails.

    """
    try:
        return fn(*args)
    except LotteryContractError:
        raise
    except Exception as exc:
        raise LotteryContractError(msg=f"Failed to {action}: {exc}") from exc


def create_web3(rpc_url: str) -> Web3:
    """Create a Web3 instance bound to an HTTP JSON-RPC endpoint."""
    return Web3(Web3.HTTPProvider(rpc_url))


def account_address(private_key: str) -> str:
    """Return the checksummed address that ``private_key`` signs for."""
    return str(Account.from_key(private_key).address)


def _token(w3: Web3, token_address: str) -> Any:
    return w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=_ERC20_ABI)


def _lottery(w3: Web3, lottery_address: str) -> Any:
    return w3.eth.contract(address=Web3.to_checksum_address(lottery_address), abi=_LOTTERY_ABI)


def fetch_allowance(w3: Web3, token_address: str, owner: str, spender: str) -> int:
    """Return the token allowance in wei."""
    fn = _token(w3, token_address).functions.allowance(
        Web3.to_checksum_address(owner),
        Web3.to_checksum_address(spender),
    )
    return int(_safe_call(f"fetch allowance of {owner}", fn.call))


def fetch_balance(w3: Web3, token_address: str, account: str) -> int:
    """Return the token balance of ``account`` in wei."""
    fn = _token(w3, token_address).functions.balanceOf(Web3.to_checksum_address(account))
    return int(_safe_call(f"fetch balance of {account}", fn.call))


def fetch_current_lottery_id(w3: Web3, lottery_address: str) -> int:
    """Return the id of the round currently open."""
    fn = _lottery(w3, lottery_address).functions.currentLotteryId()
    return int(_safe_call("fetch current lottery id", fn.call))


def fetch_max_tickets_per_buy(w3: Web3, lottery_address: str) -> int:
    """Return the protocol cap on tickets per transaction."""
    fn = _lottery(w3, lottery_address).functions.maxNumberTicketsPerBuyOrClaim()
    return int(_safe_call("fetch max tickets per buy", fn.call))


def fetch_lottery(w3: Web3, lottery_address: str, lottery_id: int) -> dict[str, int]:
    """Return the pricing fields of ``viewLottery`` for one round.

    Returns:
        Dictionary with ``status``, ``price_ticket_in_cake`` (wei) and
        ``discount_divisor`` keys.

    """
    fn = _lottery(w3, lottery_address).functions.viewLottery(lottery_id)
    raw = _safe_call(f"fetch lottery {lottery_id}", fn.call)
    return {
        "status": int(raw[0]),
        "price_ticket_in_cake": int(raw[3]),
        "discount_divisor": int(raw[4]),
    }


def fetch_user_tickets(w3: Web3, lottery_address: str, account: str, lottery_id: int) -> list[int]:
    """Return every encoded ticket number ``account`` holds in a round.

    Page through ``viewUserInfoForLotteryId`` until a short page is returned.
    """
    contract = _lottery(w3, lottery_address)
    user = Web3.to_checksum_address(account)
    numbers: list[int] = []
    cursor = 0
    while True:
        fn = contract.functions.viewUserInfoForLotteryId(
            user, lottery_id, cursor, _USER_TICKETS_PAGE_SIZE
        )
        _ids, page, _statuses, next_cursor = _safe_call(
            f"fetch tickets of {account} for lottery {lottery_id}", fn.call
        )
        numbers.extend(int(n) for n in page)
        if len(page) < _USER_TICKETS_PAGE_SIZE or int(next_cursor) == cursor:
            return numbers
        cursor = int(next_cursor)


def build_approve(w3: Web3, token_address: str, spender: str, amount: int) -> Any:
    """Return the unsent ``approve`` contract function."""
    return _token(w3, token_address).functions.approve(Web3.to_checksum_address(spender), amount)


def build_buy_tickets(w3: Web3, lottery_address: str, lottery_id: int, numbers: list[int]) -> Any:
    """Return the unsent ``buyTickets`` contract function."""
    return _lottery(w3, lottery_address).functions.buyTickets(lottery_id, numbers)


def send_transaction(
    w3: Web3,
    private_key: str,
    contract_fn: Any,
    *,
    gas: int,
    timeout: int,
) -> dict[str, Any]:
    """Sign, send and wait for a contract transaction.

    Use the network's recommended gas price with a 25% buffer to avoid
    stale-gas failures.

    Args:
        w3: Connected Web3 instance.
        private_key: Hex-encoded private key of the sender.
        contract_fn: Contract function built by ``build_approve`` or
            ``build_buy_tickets``.
        gas: Gas limit for the transaction.
        timeout: Seconds to wait for the receipt.

    Returns:
        Dictionary with ``tx_hash``, ``status`` and ``gas_used``.

    Raises:
        LotteryContractError: When signing, sending or waiting fails.

    """
    account = w3.eth.account.from_key(private_key)

    def _submit() -> str:
        nonce = w3.eth.get_transaction_count(account.address, "pending")
        tx_params: TxParams = {
            "from": account.address,
            "gas": gas,
            "gasPrice": Wei(int(w3.eth.gas_price * _GAS_PRICE_MULTIPLIER)),
            "nonce": Nonce(nonce),
        }
        tx = contract_fn.build_transaction(tx_params)
        signed = w3.eth.account.sign_transaction(tx, private_key=private_key)
        return Web3.to_hex(w3.eth.send_raw_transaction(signed.raw_transaction))

    tx_hash = str(_safe_call("submit transaction", _submit))
    _logger.info("Submitted transaction %s", tx_hash)
    try:
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)  # type: ignore[arg-type]
    except Exception as exc:
        raise LotteryContractError(msg=f"No receipt within {timeout}s: {exc}", tx_hash=tx_hash) from exc

    return {
        "tx_hash": tx_hash,
        "status": int(receipt["status"]),
        "gas_used": int(receipt["gasUsed"]),
    }
