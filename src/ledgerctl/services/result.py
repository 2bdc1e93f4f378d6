"""ServiceResult and ServiceError — the contract between services and the CLI.

Every public service method returns a ``ServiceResult``. Fatal load
failures become ``ok=False`` results; accumulated ledger diagnostics are
data (``data["issues"]``), not failures of the service call itself.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ledgerctl.domain.errors import LoadError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_load_error(cls, exc: LoadError) -> ServiceError:
        detail: dict[str, Any] = {}
        if exc.location is not None:
            detail = {
                "file": exc.location.file,
                "line": exc.location.line,
                "column": exc.location.column,
            }
        return cls(code=exc.code, message=exc.message, detail=detail)


class ServiceResult(BaseModel):
    """Universal return type for service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"check"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal notes about the operation itself.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
