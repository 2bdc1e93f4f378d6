"""Command: list every source file of the ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ledgerctl.commands._base import LedgerCommand

if TYPE_CHECKING:
    from ledgerctl.commands._context import AppContext


@click.command(cls=LedgerCommand, examples="  ledgerctl files\n  ledgerctl --json files")
@click.pass_obj
def files(app: AppContext) -> None:
    """List the root file and every included file, in include order."""
    from ledgerctl.services.query import QueryService

    app.emit(QueryService(app.workspace).files())
