"""Tests for the read-only report commands: balances, accounts, files, journal, price."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from ledgerctl.cli import cli


@pytest.mark.usefixtures("_isolated_ledger")
class TestBalancesCommand:
    def test_tree(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["balances"])
        assert result.exit_code == 0
        assert "Checking" in result.output
        assert "454.50 USD" in result.output

    def test_json_as_of(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "balances", "--as-of", "2024-01-05"])
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        rows = {row["account"]: row for row in data["rows"]}
        assert rows["Assets:Bank:Checking"]["balance"] == {"USD": "954.50"}
        assert data["as_of"] == "2024-01-05"

    def test_root_and_cost(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "balances", "--root", "Assets:Broker", "--at-cost"]
        )
        rows = json.loads(result.output)["data"]["rows"]
        assert rows[0] == {
            "account": "Assets:Broker",
            "depth": 1,
            "balance": {"USD": "500.00"},
            "own": {},
        }

    def test_bad_date(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["balances", "--as-of", "January"])
        assert result.exit_code == 2
        assert "is not a YYYY-MM-DD date" in result.output


@pytest.mark.usefixtures("_isolated_ledger")
class TestAccountsAndFiles:
    def test_accounts(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["accounts"])
        assert result.exit_code == 0
        assert "6 accounts" in result.output

    def test_accounts_quiet(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "accounts"])
        names = result.output.split()
        assert names[0] == "Assets:Bank:Checking"
        assert len(names) == 6

    def test_files(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "files"])
        data = json.loads(result.output)["data"]
        assert data["count"] == 1
        assert data["root"].endswith("main.ledger")


@pytest.mark.usefixtures("_isolated_ledger")
class TestJournalCommand:
    def test_journal(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["journal", "Assets:Bank:Checking"])
        assert result.exit_code == 0
        assert "3 postings" in result.output
        assert "Employer | January salary" in result.output

    def test_children(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "journal", "Assets:Broker", "--children"])
        assert json.loads(result.output)["data"]["count"] == 3

    def test_unknown_account(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["journal", "Assets:Nowhere"])
        assert result.exit_code == 1
        assert "No account named Assets:Nowhere" in result.output


@pytest.mark.usefixtures("_isolated_ledger")
class TestPriceCommand:
    def test_price(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["price", "HOOL", "USD"])
        assert result.exit_code == 0
        assert result.output.strip() == "1 HOOL = 110.00 USD"

    def test_price_on_date(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["price", "HOOL", "USD", "--on", "2024-02-01"])
        assert result.output.strip() == "1 HOOL = 110.00 USD on 2024-02-01"

    def test_no_price(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "price", "HOOL", "USD", "--on", "2024-01-19"])
        assert result.exit_code == 1
        assert result.output.startswith("ERROR: price — ")
