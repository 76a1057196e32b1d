"""Shared helpers for ticket purchase CLI commands.

Centralise the utilities reused across command modules: verbose logging
setup, Decimal option parsing, client construction from configuration,
and the notifier that turns flow signals into terminal output.
"""

import logging
from decimal import Decimal, InvalidOperation

import typer

from lottery_tools.clients.lottery.client import LotteryClient
from lottery_tools.core.config import ConfigError, get_config


def configure_verbose_logging() -> None:
    """Enable INFO-level logging for state transitions and transactions."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_decimal(value: str, name: str) -> Decimal:
    """Parse a Decimal option value, aborting with exit code 1 when invalid."""
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        typer.echo(f"Error: Invalid {name} '{value}'.", err=True)
        raise typer.Exit(code=1) from None
    if not parsed.is_finite() or parsed < 0:
        typer.echo(f"Error: {name} must be a non-negative number, got '{value}'.", err=True)
        raise typer.Exit(code=1)
    return parsed


def token_symbol() -> str:
    """Return the configured payment token symbol."""
    return get_config().lottery_settings().token_symbol


def build_client(*, authenticated: bool = False) -> LotteryClient:
    """Build a LotteryClient from configuration.

    Abort with an error when ``authenticated`` is requested and no private
    key is configured.

    Returns:
        LotteryClient ready for reads (and transactions when authenticated).

    """
    config = get_config()
    try:
        settings = config.lottery_settings()
        private_key = config.get_private_key() if authenticated else None
    except (ConfigError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    return LotteryClient(
        rpc_url=settings.rpc_url,
        lottery_address=settings.lottery_address,
        token_address=settings.token_address,
        private_key=private_key,
        gas=settings.gas_limit,
        receipt_timeout=settings.receipt_timeout,
    )


class CliNotifier:
    """Purchase notifier that prints to the terminal.

    Refresh requests are recorded so the command can fetch the user's
    tickets once the flow returns.
    """

    def __init__(self) -> None:
        """Initialize with no pending refresh requests."""
        self.refresh_requests: list[tuple[str, int]] = []
        self.dismissed = False

    def refresh_user_tickets(self, account: str, lottery_id: int) -> None:
        """Record a ticket refresh request."""
        self.refresh_requests.append((account, lottery_id))

    def dismiss(self) -> None:
        """Mark the purchase as finished."""
        self.dismissed = True

    def show_success(self, message: str) -> None:
        """Print a success message."""
        typer.echo(message)

    def show_error(self, message: str) -> None:
        """Print an error message to stderr."""
        typer.echo(f"Error: {message}", err=True)
