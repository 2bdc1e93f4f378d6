"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``LEDGERCTL_*`` prefix, ``__`` for nested sections
                    (``LEDGERCTL_BOOKING__DEFAULT_METHOD=FIFO``)
  3. TOML file    — ``ledgerctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from ledgerctl.config.discovery import find_config
from ledgerctl.config.models import (
    BookingConfig,
    LedgerConfig,
    LedgerFileConfig,
    LoaderConfig,
    ToleranceConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a discovered ``ledgerctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# The TOML path is handed to settings_customise_sources through a
# thread-local because pydantic-settings builds sources from the class.
_tls = threading.local()


class LedgerSettings(BaseSettings):
    """Unified settings for the ledgerctl CLI, frozen after construction.

    Attributes:
        ledger_root: Directory that relative ``[ledger].file`` paths resolve
            against (parent of ``ledgerctl.toml``, or CWD without one).
        config_path: The TOML file in effect, if any.
        ledger_file: ``-f/--file`` override of ``[ledger].file``.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "LEDGERCTL_",
        "env_nested_delimiter": "__",
    }

    ledger_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    ledger_file: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    ledger: LedgerFileConfig = Field(default_factory=LedgerFileConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    tolerance: ToleranceConfig = Field(default_factory=ToleranceConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        ledger_root: Path | None = None,
        **cli_flags: Any,
    ) -> LedgerSettings:
        """Construct settings from a CLI invocation.

        Discovers ``ledgerctl.toml`` via walk-up (or uses *config_path*),
        takes *ledger_root* from the config file's directory, and applies
        CLI flags as highest-priority overrides. Flags passed as None are
        treated as not given.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if not p.is_file():
                msg = f"Config file not found: {config_path}"
                raise click.ClickException(msg)
            toml_path = p
        else:
            toml_path = find_config(ledger_root)

        resolved_root = ledger_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        flags = {key: value for key, value in cli_flags.items() if value is not None}
        _tls.toml_path = toml_path
        try:
            return cls(ledger_root=resolved_root, config_path=toml_path, **flags)
        finally:
            _tls.toml_path = None

    def resolved_ledger_file(self) -> Path | None:
        """The root ledger file: ``--file`` first, else ``[ledger].file``."""
        if self.ledger_file is not None:
            return self.ledger_file
        if self.ledger.file:
            path = Path(self.ledger.file)
            return path if path.is_absolute() else self.ledger_root / path
        return None

    def ledger_config(self) -> LedgerConfig:
        """The subset of settings the loader depends on."""
        return LedgerConfig(booking=self.booking, tolerance=self.tolerance, loader=self.loader)
