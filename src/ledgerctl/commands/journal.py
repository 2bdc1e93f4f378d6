"""Command: postings of one account with a running balance."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ledgerctl.commands._base import LedgerCommand

if TYPE_CHECKING:
    from ledgerctl.commands._context import AppContext


@click.command(
    cls=LedgerCommand,
    examples="""\
  ledgerctl journal Assets:Bank:Checking
  ledgerctl journal Expenses --children""",
)
@click.argument("account")
@click.option("--children", is_flag=True, help="Include postings to sub-accounts.")
@click.pass_obj
def journal(app: AppContext, account: str, children: bool) -> None:
    """Show the postings of ACCOUNT in ledger order."""
    from ledgerctl.services.query import QueryService

    app.emit(QueryService(app.workspace).journal(account, include_children=children))
