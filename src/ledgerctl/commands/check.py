"""Command: load the ledger and report every error."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ledgerctl.commands._base import LedgerCommand

if TYPE_CHECKING:
    from ledgerctl.commands._context import AppContext


@click.command(
    cls=LedgerCommand,
    examples="""\
  ledgerctl -f main.ledger check
  ledgerctl --json check
  ledgerctl -q check        # one 'file:line:col: message' per error""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Parse, book and verify the ledger. Exits 1 when any error is found."""
    from ledgerctl.services.check import CheckService

    result = CheckService(app.workspace).check()
    app.emit(result)
    if result.data.get("count"):
        raise SystemExit(1)
