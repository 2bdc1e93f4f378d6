"""Tests for the check CLI command."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from ledgerctl.cli import cli
from tests.conftest import SAMPLE_LEDGER

FAILING_BALANCE = "2024-02-01 balance Assets:Bank:Checking 1.00 USD\n"


@pytest.mark.usefixtures("_isolated_ledger")
class TestCheckCommand:
    def test_clean_ledger(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "OK  No errors in 12 entries across 1 files." in result.output

    def test_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "check"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["op"] == "check"
        assert data["data"]["count"] == 0
        assert data["data"]["entries"] == 12

    def test_errors_exit_nonzero(
        self, cli_runner: CliRunner, write_ledger: Callable[..., Path]
    ) -> None:
        write_ledger(SAMPLE_LEDGER + FAILING_BALANCE)
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "balance_assertion" in result.output
        assert "1 errors" in result.output

    def test_quiet_prints_locations(
        self, cli_runner: CliRunner, write_ledger: Callable[..., Path]
    ) -> None:
        path = write_ledger(SAMPLE_LEDGER + FAILING_BALANCE)
        result = cli_runner.invoke(cli, ["-q", "check"])
        assert result.exit_code == 1
        line = result.output.strip()
        assert line.startswith(f"{path.resolve()}:29:1: Balance failed for Assets:Bank:Checking")

    def test_json_errors_still_parse(
        self, cli_runner: CliRunner, write_ledger: Callable[..., Path]
    ) -> None:
        write_ledger(SAMPLE_LEDGER + FAILING_BALANCE)
        result = cli_runner.invoke(cli, ["--json", "check"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["data"]["by_kind"] == {"balance_assertion": 1}
        issue = data["data"]["issues"][0]
        assert issue["detail"]["expected"] == "1.00 USD"
        assert issue["detail"]["actual"] == "454.50 USD"

    def test_fatal_error(self, cli_runner: CliRunner, write_ledger: Callable[..., Path]) -> None:
        write_ledger('2024-01-01 note Assets:Cash "open ended\n')
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "ERROR  check — unterminated string" in result.output

    def test_file_flag(self, cli_runner: CliRunner, write_ledger: Callable[..., Path]) -> None:
        other = write_ledger("2024-01-01 open Assets:Cash\n", "other.ledger")
        result = cli_runner.invoke(cli, ["-f", str(other), "check"])
        assert result.exit_code == 0
        assert "No errors in 1 entries" in result.output

    def test_missing_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["-f", str(tmp_path / "nope.ledger"), "check"])
        assert result.exit_code == 1
        assert "ERROR  check — Cannot read" in result.output

    def test_verbose_shows_telemetry(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "check"])
        assert result.exit_code == 0
        assert "CheckService.check" in result.output
        assert "replay" in result.output


class TestCheckWithoutLedger:
    def test_no_ledger_configured(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("LEDGERCTL_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 2
        assert "No ledger file given" in result.output

    def test_booking_config_applies(
        self,
        cli_runner: CliRunner,
        write_ledger: Callable[..., Path],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_ledger(
            """\
            2024-01-01 open Assets:Cash
            2024-01-01 open Assets:Broker

            2024-01-02 * "Buy"
              Assets:Broker   1 HOOL {10 USD}
              Assets:Cash
            2024-01-03 * "Buy"
              Assets:Broker   1 HOOL {12 USD}
              Assets:Cash
            2024-01-04 * "Sell"
              Assets:Broker  -1 HOOL {}
              Assets:Cash    10 USD
            """
        )
        monkeypatch.delenv("LEDGERCTL_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        strict = cli_runner.invoke(cli, ["-f", "main.ledger", "-q", "check"])
        assert strict.exit_code == 1
        assert "ambiguous" in strict.output.lower()

        (tmp_path / "ledgerctl.toml").write_text(
            '[ledger]\nfile = "main.ledger"\n[booking]\ndefault_method = "FIFO"\n'
        )
        fifo = cli_runner.invoke(cli, ["check"])
        assert fifo.exit_code == 0
