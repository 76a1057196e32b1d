"""CLI commands that read round data and price a purchase without sending anything."""

import asyncio
from typing import Annotated

import typer

from lottery_tools.apps.ticket_purchase.cli._helpers import (
    build_client,
    parse_decimal,
    token_symbol,
)
from lottery_tools.apps.ticket_purchase.display import format_amount, format_percentage
from lottery_tools.apps.ticket_purchase.pricing import (
    ZERO_COSTS,
    PricingUnavailableError,
    compute_ticket_costs,
)
from lottery_tools.core.models import LotteryRound, RoundPricing


async def _fetch_round() -> LotteryRound:
    """Fetch the open round with a read-only client."""
    return await build_client().get_current_round()


def quote(
    tickets: Annotated[int, typer.Option(help="Number of tickets to price")],
    price: Annotated[
        str | None, typer.Option(help="Ticket price in CAKE (fetched from chain if omitted)")
    ] = None,
    divisor: Annotated[
        str | None, typer.Option(help="Discount divisor (fetched from chain if omitted)")
    ] = None,
) -> None:
    """Show the bulk-discounted cost of buying a number of tickets.

    Args:
        tickets: Number of tickets to price.
        price: Ticket price in CAKE; requires ``divisor`` as well.
        divisor: Discount divisor; requires ``price`` as well.

    """
    if tickets < 0:
        typer.echo("Error: Tickets must be zero or more.", err=True)
        raise typer.Exit(code=1)
    if (price is None) != (divisor is None):
        typer.echo("Error: Pass both --price and --divisor, or neither.", err=True)
        raise typer.Exit(code=1)

    if price is not None and divisor is not None:
        pricing = RoundPricing(parse_decimal(price, "price"), parse_decimal(divisor, "divisor"))
    else:
        pricing = asyncio.run(_fetch_round()).pricing

    symbol = token_symbol()
    try:
        costs = compute_ticket_costs(pricing, tickets)
    except PricingUnavailableError:
        typer.echo("Warning: discount divisor is zero, pricing unavailable.", err=True)
        costs = ZERO_COSTS

    typer.echo(f"Tickets: {tickets}")
    typer.echo(f"Cost: {format_amount(costs.cost_before_discount)} {symbol}")
    typer.echo(
        f"Bulk discount: {format_percentage(costs.percentage_discount)}% "
        f"(~{format_amount(costs.discount_amount, 5)} {symbol})"
    )
    typer.echo(f"You pay: ~{format_amount(costs.cost_after_discount)} {symbol}")


def round_info() -> None:
    """Show the lottery round currently open for ticket sales."""
    lottery_round = asyncio.run(_fetch_round())
    pricing = lottery_round.pricing
    typer.echo(f"Lottery: #{lottery_round.lottery_id}")
    typer.echo(f"Ticket price: {format_amount(pricing.price_ticket_in_cake)} {token_symbol()}")
    typer.echo(f"Discount divisor: {format_amount(pricing.discount_divisor)}")
    typer.echo(f"Max tickets per buy: {lottery_round.max_number_tickets_per_buy_or_claim}")
