"""CLI subpackage for the lottery ticket purchase app.

Create the Typer application and register all command modules.
"""

import typer

from lottery_tools.apps.ticket_purchase.cli.buy_cmd import buy
from lottery_tools.apps.ticket_purchase.cli.quote_cmd import quote, round_info

app = typer.Typer(help="Lottery ticket purchase tools")

app.command()(quote)
app.command(name="round")(round_info)
app.command()(buy)

__all__ = ["app"]
