"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from decimal import Decimal
from unittest.mock import patch

import pytest

from lottery_tools.core.models import LotteryRound, RoundPricing

_ISOLATED_ENV_VARS = ("LOTTERY_PRIVATE_KEY", "BSC_RPC_URL", "LOTTERY_ADDRESS", "CAKE_ADDRESS")


@pytest.fixture(autouse=True)
def _isolate_lottery_env() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Hide real wallet settings from the test run.

    The default configuration reads the signing key and contract addresses
    from the environment. Removing them guarantees no test ever picks up a
    developer's real key or RPC endpoint.
    """
    cleaned = {k: v for k, v in os.environ.items() if k not in _ISOLATED_ENV_VARS}
    with patch.dict(os.environ, cleaned, clear=True):
        yield


@pytest.fixture
def standard_round() -> LotteryRound:
    """Return a round priced at 5 CAKE with a 2000 divisor and a 100-ticket cap."""
    return LotteryRound(
        lottery_id=42,
        pricing=RoundPricing(
            price_ticket_in_cake=Decimal(5),
            discount_divisor=Decimal(2000),
        ),
        max_number_tickets_per_buy_or_claim=100,
    )
