"""Command: list accounts with their validity windows."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ledgerctl.commands._base import LedgerCommand

if TYPE_CHECKING:
    from ledgerctl.commands._context import AppContext


@click.command(cls=LedgerCommand, examples="  ledgerctl accounts\n  ledgerctl -q accounts")
@click.pass_obj
def accounts(app: AppContext) -> None:
    """List opened accounts with open/close dates and currency restrictions."""
    from ledgerctl.services.query import QueryService

    app.emit(QueryService(app.workspace).accounts())
