"""Tests for LedgerSettings — unified settings with TOML source."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import click
import pytest

from ledgerctl.config.settings import LedgerSettings
from ledgerctl.domain.types import BookingMethod


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LEDGERCTL_CONFIG",
        "LEDGERCTL_BOOKING__DEFAULT_METHOD",
        "LEDGERCTL_LOADER__WORKERS",
        "LEDGERCTL_QUIET",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLedgerSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = LedgerSettings.from_cli(ledger_root=tmp_path)
        assert settings.ledger_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.quiet is False
        assert settings.verbose is False
        assert settings.booking.default_method is None
        assert settings.resolved_ledger_file() is None

    def test_frozen(self, tmp_path: Path) -> None:
        settings = LedgerSettings.from_cli(ledger_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "ledgerctl.toml").write_text(
            '[ledger]\nfile = "main.ledger"\n[tolerance]\noverride = "0.01"\n'
        )
        settings = LedgerSettings.from_cli(ledger_root=tmp_path)
        assert settings.config_path == tmp_path / "ledgerctl.toml"
        assert settings.tolerance.override == Decimal("0.01")
        assert settings.loader.workers == 1
        assert settings.resolved_ledger_file() == tmp_path / "main.ledger"

    def test_root_from_toml_location(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "ledgerctl.toml").write_text('[ledger]\nfile = "books/main.ledger"\n')
        subdir = tmp_path / "sub" / "deep"
        subdir.mkdir(parents=True)
        monkeypatch.chdir(subdir)
        settings = LedgerSettings.from_cli()
        assert settings.ledger_root == tmp_path
        assert settings.resolved_ledger_file() == tmp_path / "books" / "main.ledger"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[booking]\ndefault_method = "LIFO"\n')
        settings = LedgerSettings.from_cli(config_path=str(custom), ledger_root=tmp_path)
        assert settings.booking.default_method is BookingMethod.LIFO
        assert settings.config_path == custom

    def test_missing_config_path(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            LedgerSettings.from_cli(config_path=str(tmp_path / "nope.toml"))

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "ledgerctl.toml").write_text("[ledger\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            LedgerSettings.from_cli(ledger_root=tmp_path)


class TestPriority:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "ledgerctl.toml").write_text('[booking]\ndefault_method = "LIFO"\n')
        monkeypatch.setenv("LEDGERCTL_BOOKING__DEFAULT_METHOD", "FIFO")
        settings = LedgerSettings.from_cli(ledger_root=tmp_path)
        assert settings.booking.default_method is BookingMethod.FIFO

    def test_cli_flags_override_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEDGERCTL_QUIET", "false")
        settings = LedgerSettings.from_cli(ledger_root=tmp_path, quiet=True, json_output=True)
        assert settings.quiet is True
        assert settings.json_output is True

    def test_none_flags_ignored(self, tmp_path: Path) -> None:
        settings = LedgerSettings.from_cli(ledger_root=tmp_path, ledger_file=None, quiet=None)
        assert settings.ledger_file is None
        assert settings.quiet is False

    def test_file_flag_beats_toml(self, tmp_path: Path) -> None:
        (tmp_path / "ledgerctl.toml").write_text('[ledger]\nfile = "main.ledger"\n')
        other = tmp_path / "other.ledger"
        settings = LedgerSettings.from_cli(ledger_root=tmp_path, ledger_file=other)
        assert settings.resolved_ledger_file() == other

    def test_ledger_config(self, tmp_path: Path) -> None:
        (tmp_path / "ledgerctl.toml").write_text("[loader]\nworkers = 2\n")
        config = LedgerSettings.from_cli(ledger_root=tmp_path).ledger_config()
        assert config.loader.workers == 2
