"""Command: look up a conversion rate."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import click

from ledgerctl.commands._base import DATE, LedgerCommand

if TYPE_CHECKING:
    from ledgerctl.commands._context import AppContext


@click.command(
    cls=LedgerCommand,
    examples="""\
  ledgerctl price EUR USD
  ledgerctl price HOOL EUR --on 2024-03-01""",
)
@click.argument("base")
@click.argument("quote")
@click.option("--on", "on", type=DATE, default=None, help="Rate in effect on this date.")
@click.pass_obj
def price(app: AppContext, base: str, quote: str, on: date | None) -> None:
    """Show the value of one BASE in QUOTE, converting through other currencies if needed."""
    from ledgerctl.services.query import QueryService

    app.emit(QueryService(app.workspace).price(base, quote, on=on))
