"""Tests for Workspace — lazy, load-once ledger access."""

from __future__ import annotations

from pathlib import Path

import pytest

from ledgerctl.config.models import LedgerConfig
from ledgerctl.domain.errors import LedgerError, SourceReadError
from ledgerctl.domain.ledger import Ledger
from ledgerctl.domain.prices import PriceDatabase
from ledgerctl.infrastructure.workspace import Workspace
from ledgerctl.services.loader import load_file


class _CountingLoader:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, path: Path, config: LedgerConfig) -> tuple[Ledger, list[LedgerError]]:
        self.calls += 1
        return Ledger(entries=(), accounts={}, prices=PriceDatabase()), []


class TestWorkspace:
    def test_lazy_and_cached(self, tmp_path: Path) -> None:
        loader = _CountingLoader()
        ws = Workspace(tmp_path / "main.ledger", LedgerConfig(), loader)
        assert not ws.is_loaded
        assert loader.calls == 0
        first = ws.ledger
        assert ws.ledger is first
        assert loader.calls == 1
        assert ws.is_loaded

    def test_properties(self, tmp_path: Path) -> None:
        config = LedgerConfig()
        ws = Workspace(tmp_path / "main.ledger", config, _CountingLoader())
        assert ws.root_file == tmp_path / "main.ledger"
        assert ws.config is config

    def test_load_error_not_cached(self, tmp_path: Path) -> None:
        ws = Workspace(tmp_path / "missing.ledger", LedgerConfig(), load_file)
        with pytest.raises(SourceReadError):
            _ = ws.ledger
        with pytest.raises(SourceReadError):
            _ = ws.ledger
        assert not ws.is_loaded

    def test_real_loader(self, sample_file: Path) -> None:
        ws = Workspace(sample_file, LedgerConfig(), load_file)
        assert ws.ledger.is_valid
