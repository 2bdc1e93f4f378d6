"""Shared pytest fixtures and test helpers for ledgerctl tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from textwrap import dedent

import pytest
from click.testing import CliRunner

from ledgerctl.config.models import LedgerConfig
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.ledger import Ledger
from ledgerctl.domain.types import ErrorKind
from ledgerctl.services.loader import load_string
from ledgerctl.services.telemetry import _current_span, disable_telemetry

# A small ledger with no errors: salary, groceries, a broker transfer,
# a share purchase at cost, a price and one passing balance assertion.
SAMPLE_LEDGER = """\
option "title" "Sample"

2024-01-01 open Assets:Bank:Checking USD
2024-01-01 open Assets:Broker:Cash USD
2024-01-01 open Assets:Broker:HOOL HOOL
2024-01-01 open Expenses:Food
2024-01-01 open Income:Salary USD
2024-01-01 open Equity:Opening

2024-01-02 * "Employer" "January salary"
  Assets:Bank:Checking   1000.00 USD
  Income:Salary

2024-01-05 * "Grocer" "Weekly shop"
  Expenses:Food   45.50 USD
  Assets:Bank:Checking

2024-01-10 * "Transfer to broker"
  Assets:Broker:Cash   500.00 USD
  Assets:Bank:Checking

2024-01-15 * "Buy shares"
  Assets:Broker:HOOL   2 HOOL {100.00 USD}
  Assets:Broker:Cash

2024-01-20 price HOOL 110.00 USD

2024-01-31 balance Assets:Bank:Checking 454.50 USD
"""


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """A verbose CLI run enables telemetry for the rest of the thread; undo it."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def write_ledger(tmp_path: Path) -> Callable[..., Path]:
    """Write a ledger file under tmp_path and return its path.

    Text is dedented, so tests can indent ledgers along with the code.
    """

    def _write(text: str, name: str = "main.ledger") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(text), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_file(write_ledger: Callable[..., Path]) -> Path:
    return write_ledger(SAMPLE_LEDGER)


@pytest.fixture
def _isolated_ledger(
    tmp_path: Path, sample_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Change CWD to a temp dir whose ledgerctl.toml points at the sample ledger.

    Use via ``@pytest.mark.usefixtures("_isolated_ledger")`` on command test
    classes.
    """
    monkeypatch.delenv("LEDGERCTL_CONFIG", raising=False)
    (tmp_path / "ledgerctl.toml").write_text(f'[ledger]\nfile = "{sample_file.name}"\n')
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def load(text: str, config: LedgerConfig | None = None) -> tuple[Ledger, list[LedgerError]]:
    """Load dedented ledger *text* from memory."""
    return load_string(dedent(text), "main.ledger", config=config)


def kinds(errors: list[LedgerError] | tuple[LedgerError, ...]) -> list[ErrorKind]:
    return [error.kind for error in errors]
