"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ledgerctl.toml only contains
overrides. An empty file (or none at all) means strict booking, inferred
tolerances and a sequential loader.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ledgerctl.domain.accounts import ancestors
from ledgerctl.domain.types import BookingMethod

# --- ledgerctl.toml sections ---


class LedgerFileConfig(BaseModel):
    """[ledger] section."""

    model_config = {"frozen": True}

    file: str | None = None


class BookingConfig(BaseModel):
    """[booking] section.

    ``accounts`` maps an account or an ancestor prefix to a method; the
    longest matching name wins.
    """

    model_config = {"frozen": True}

    default_method: BookingMethod | None = None
    accounts: dict[str, BookingMethod] = Field(default_factory=dict)

    def method_for(self, account: str) -> BookingMethod | None:
        for name in ancestors(account):
            if name in self.accounts:
                return self.accounts[name]
        return self.default_method


class ToleranceConfig(BaseModel):
    """[tolerance] section."""

    model_config = {"frozen": True}

    override: Decimal | None = None

    @field_validator("override")
    @classmethod
    def _non_negative(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and value < 0:
            msg = "tolerance override must not be negative"
            raise ValueError(msg)
        return value


class LoaderConfig(BaseModel):
    """[loader] section."""

    model_config = {"frozen": True}

    workers: int = Field(default=1, ge=1)


class LedgerConfig(BaseModel):
    """Everything a load depends on besides the source files themselves."""

    model_config = {"frozen": True}

    booking: BookingConfig = Field(default_factory=BookingConfig)
    tolerance: ToleranceConfig = Field(default_factory=ToleranceConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)


class LedgerctlConfig(BaseModel):
    """Root configuration composing all ledgerctl.toml sections."""

    model_config = {"frozen": True}

    ledger: LedgerFileConfig = Field(default_factory=LedgerFileConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    tolerance: ToleranceConfig = Field(default_factory=ToleranceConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)

    def ledger_config(self) -> LedgerConfig:
        return LedgerConfig(booking=self.booking, tolerance=self.tolerance, loader=self.loader)
