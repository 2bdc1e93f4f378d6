"""Command: hierarchical account balances."""

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
  ledgerctl balances
  ledgerctl balances --root Assets
  ledgerctl balances --as-of 2024-06-30 --at-cost
  ledgerctl balances --show-closed""",
)
@click.option("--as-of", type=DATE, default=None, help="Only count entries up to this date.")
@click.option("--at-cost", is_flag=True, help="Value lots held at cost in their cost currency.")
@click.option("--root", default=None, help="Only show this account and its sub-accounts.")
@click.option("--show-closed", is_flag=True, help="Include closed accounts.")
@click.pass_obj
def balances(
    app: AppContext,
    as_of: date | None,
    at_cost: bool,
    root: str | None,
    show_closed: bool,
) -> None:
    """Show account balances; each parent includes its children."""
    from ledgerctl.services.query import QueryService

    app.emit(
        QueryService(app.workspace).balances(
            as_of=as_of, at_cost=at_cost, root=root, show_closed=show_closed
        )
    )
