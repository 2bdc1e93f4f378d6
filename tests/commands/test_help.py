"""Parametrized help tests for all CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from ledgerctl.cli import cli

# (CLI args, expected keywords in output)
HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["--help"], ["check", "balances", "accounts", "files", "journal", "price"]),
    (["check", "--help"], ["Exits 1"]),
    (["balances", "--help"], ["--as-of", "--at-cost", "--root", "--show-closed"]),
    (["accounts", "--help"], []),
    (["files", "--help"], []),
    (["journal", "--help"], ["ACCOUNT", "--children"]),
    (["price", "--help"], ["BASE", "QUOTE", "--on"]),
]


@pytest.mark.parametrize(
    ("args", "keywords"),
    HELP_COMMANDS,
    ids=[" ".join(args) for args, _ in HELP_COMMANDS],
)
def test_help_output(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    assert "Usage" in result.output
    for keyword in keywords:
        assert keyword in result.output
