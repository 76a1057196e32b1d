"""CLI command that buys lottery tickets through the approve-then-confirm flow.

Load the open round, the buyer's balance and existing tickets, validate the
requested quantity exactly as the purchase screen does, then run the flow:
check the allowance, approve if needed, and buy. Every purchase requires
confirmation by default.
"""

import asyncio
from typing import Annotated

import typer

from lottery_tools.apps.ticket_purchase.cli._helpers import (
    CliNotifier,
    build_client,
    configure_verbose_logging,
    token_symbol,
)
from lottery_tools.apps.ticket_purchase.session import PurchaseSession
from lottery_tools.apps.ticket_purchase.transaction_flow import (
    ApproveConfirmTransactionFlow,
    FlowState,
)


def buy(
    tickets: Annotated[int, typer.Option(help="Number of tickets to buy")],
    no_confirm: Annotated[  # noqa: FBT002
        bool, typer.Option("--no-confirm", help="Skip confirmation prompts")
    ] = False,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Log flow transitions")
    ] = False,
) -> None:
    """Buy tickets with random numbers in the current lottery round.

    Args:
        tickets: Number of tickets to buy.
        no_confirm: Skip the approval and purchase prompts.
        verbose: Enable INFO-level logging.

    """
    if verbose:
        configure_verbose_logging()
    if tickets < 1:
        typer.echo("Error: Tickets must be at least 1.", err=True)
        raise typer.Exit(code=1)
    if no_confirm:
        typer.echo("WARNING: Confirmation disabled. Transactions will be sent immediately.")

    asyncio.run(_buy(tickets=tickets, confirm=not no_confirm))


async def _buy(*, tickets: int, confirm: bool) -> None:
    """Execute the purchase workflow asynchronously.

    Args:
        tickets: Number of tickets requested.
        confirm: Whether to prompt before each transaction.

    """
    client = build_client(authenticated=True)
    account = client.account or ""
    symbol = token_symbol()

    lottery_round = await client.get_current_round()
    balance = await client.get_balance(account)
    existing = await client.get_user_tickets(account, lottery_round.lottery_id)

    session = PurchaseSession(lottery_round, balance, existing, token_symbol=symbol)
    quantity = session.handle_input(str(tickets))

    typer.echo(f"\nLottery #{lottery_round.lottery_id}")
    typer.echo(f"Account: {account}")
    typer.echo(f"Balance: {balance.amount} {symbol}")
    if session.validation.insufficient_balance:
        typer.echo(f"Error: {session.error_message()}", err=True)
        raise typer.Exit(code=1)
    if quantity < tickets:
        typer.echo(f"Note: {session.error_message()}")

    summary = session.summary()
    typer.echo(f"Tickets: {quantity}")
    typer.echo(f"Cost: {summary['cost']} {symbol}")
    typer.echo(f"Bulk discount: {summary['discount_percentage']}% (~{summary['discount']} {symbol})")
    typer.echo(f"You pay: ~{summary['total']} {symbol}")

    notifier = CliNotifier()
    flow = ApproveConfirmTransactionFlow(
        token=client,
        lottery=client,
        tickets=session.ticket_set,
        notifier=notifier,
        account=account,
        lottery_id=lottery_round.lottery_id,
    )

    await flow.start()
    if flow.state is FlowState.NEEDS_APPROVAL:
        if confirm:
            typer.confirm(f"Approve the lottery contract to spend your {symbol}?", abort=True)
        await flow.approve()
        if not flow.is_approved:
            raise typer.Exit(code=1)

    if session.disable_buying(flow.state):
        typer.echo("Error: Purchase is not possible with the current ticket set.", err=True)
        raise typer.Exit(code=1)

    if confirm:
        typer.confirm(f"Buy {quantity} tickets for ~{summary['total']} {symbol}?", abort=True)

    await flow.confirm()
    if not flow.is_confirmed:
        raise typer.Exit(code=1)

    for owner, lottery_id in notifier.refresh_requests:
        owned = await client.get_user_tickets(owner, lottery_id)
        typer.echo(f"You now hold {len(owned)} tickets in lottery #{lottery_id}.")
