"""Telemetry primitives — Span, @traced, trace_span.

Disabled unless ``--verbose`` is given: each call then costs a single
``ContextVar.get``. When enabled, the loader stages and service calls build
a span tree with timings and counts, which ``@traced`` injects into
``ServiceResult.meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from ledgerctl.services.result import ServiceResult

# ── Context variables ────────────────────────────────────────────────

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


# ── Span ─────────────────────────────────────────────────────────────


@dataclass
class Span:
    """Timed node in the span tree. ``annotations`` carries stage counts."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.annotations:
            result["annotations"] = self.annotations
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


# ── trace_span context manager ───────────────────────────────────────


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child span under the current span.

    Yields None when telemetry is disabled or no parent span is active.
    """
    if not _verbose_enabled.get():
        yield None
        return

    parent = _current_span.get()
    if parent is None:
        yield None
        return

    child = Span(name=name, parent=parent)
    parent.children.append(child)

    token = _current_span.set(child)
    try:
        yield child
    finally:
        child.end()
        _current_span.reset(token)


# ── @traced decorator ────────────────────────────────────────────────


def _inject_meta(result: ServiceResult, span: Span) -> ServiceResult:
    merged_meta = {**(result.meta or {}), "telemetry": span.to_dict()}
    return result.model_copy(update={"meta": merged_meta})


def _log_span(span: Span, *, ok: bool) -> None:
    log = structlog.get_logger("ledgerctl.telemetry")
    log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        children=len(span.children),
        **span.annotations,
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method and inject the span tree into ServiceResult.meta."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            span.end()
            _current_span.reset(token)
            _log_span(span, ok=False)
            raise

        span.end()
        _current_span.reset(token)

        if isinstance(result, ServiceResult):
            result = _inject_meta(result, span)  # type: ignore[assignment]
            _log_span(span, ok=result.ok)  # type: ignore[attr-defined]
        else:
            _log_span(span, ok=True)
        return result

    return wrapper


# ── Public helpers ───────────────────────────────────────────────────


def enable_telemetry() -> None:
    """Enable verbose telemetry (called by AppContext at startup)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """The active span, for manual annotation; None when disabled."""
    if not _verbose_enabled.get():
        return None
    return _current_span.get()
