"""Ledger diagnostics — accumulated errors and fatal load failures.

Two tiers:
- ``LedgerError`` records are collected from every stage and attached to an
  otherwise usable ledger.
- ``LoadError`` exceptions abort the whole load; no ledger is produced.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ledgerctl.domain.tokens import Location
from ledgerctl.domain.types import ErrorKind


class LedgerError(BaseModel):
    """A non-fatal diagnostic pointing at the offending source text."""

    model_config = {"frozen": True}

    kind: ErrorKind
    message: str
    location: Location | None = None
    detail: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        where = f"{self.location}: " if self.location else ""
        return f"{where}{self.message}"

    def to_issue(self) -> dict[str, Any]:
        """Flatten into the plain dict shape used by service payloads."""
        loc = self.location
        return {
            "kind": str(self.kind),
            "message": self.message,
            "file": loc.file if loc else None,
            "line": loc.line if loc else None,
            "column": loc.column if loc else None,
            "detail": {key: _plain(value) for key, value in self.detail.items()},
        }


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# ---------------------------------------------------------------------------
# Fatal tier
# ---------------------------------------------------------------------------


class LoadError(Exception):
    """Base class for failures that abort a whole ledger load."""

    code = "LOAD_FAILED"

    def __init__(self, message: str, location: Location | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location is not None:
            return f"{self.location}: {self.message}"
        return self.message


class SourceReadError(LoadError):
    """A ledger file (root or included) could not be read."""

    code = "READ_ERROR"

    def __init__(self, path: str, reason: str, location: Location | None = None) -> None:
        super().__init__(f"Cannot read {path}: {reason}", location)
        self.path = path


class LexError(LoadError):
    """Invalid encoding, unterminated string, or malformed numeric literal."""

    code = "LEX_ERROR"

    def __init__(self, location: Location, reason: str) -> None:
        super().__init__(reason, location)
        self.reason = reason


class IncludeCycleError(LoadError):
    """A file is reachable from itself through include directives."""

    code = "INCLUDE_CYCLE"

    def __init__(self, cycle: list[str]) -> None:
        chain = " -> ".join([*cycle, cycle[0]]) if cycle else ""
        super().__init__(f"Include cycle detected: {chain}")
        self.cycle = cycle
