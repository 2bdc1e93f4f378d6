"""Subcommand modules for ledgerctl.

Provides register_commands(), which imports command modules lazily at
registration time so ``ledgerctl --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    from ledgerctl.commands.accounts import accounts
    from ledgerctl.commands.balances import balances
    from ledgerctl.commands.check import check
    from ledgerctl.commands.files import files
    from ledgerctl.commands.journal import journal
    from ledgerctl.commands.price import price

    cli.add_command(check)
    cli.add_command(balances)
    cli.add_command(accounts)
    cli.add_command(files)
    cli.add_command(journal)
    cli.add_command(price)
