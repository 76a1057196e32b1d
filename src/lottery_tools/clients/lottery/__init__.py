"""Lottery contract client for ticket purchases on BNB Chain."""

from lottery_tools.clients.lottery.client import LotteryClient
from lottery_tools.clients.lottery.exceptions import (
    LotteryContractError,
    LotteryError,
    NotAuthenticatedError,
)

__all__ = [
    "LotteryClient",
    "LotteryContractError",
    "LotteryError",
    "NotAuthenticatedError",
]
