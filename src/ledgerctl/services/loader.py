"""Loader — the single entry point from source files to a ``Ledger``.

A load is a pure function of the file set and a :class:`LedgerConfig`:
collect sources (read, tokenize, parse, resolve includes), sort the dated
directives, replay them, and freeze the result. It either returns a
``(Ledger, errors)`` pair or raises a :class:`LoadError`; no partial ledger
is ever returned.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from pathlib import Path

from ledgerctl.config.models import LedgerConfig
from ledgerctl.domain.accounts import AccountRegistry
from ledgerctl.domain.amounts import parse_decimal
from ledgerctl.domain.directives import DatedDirective, Include, Option
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.ledger import Ledger
from ledgerctl.domain.types import BookingMethod, ErrorKind
from ledgerctl.infrastructure.sources import SourceSet, collect, collect_from, parse_string
from ledgerctl.services.replay import Replayer
from ledgerctl.services.telemetry import trace_span

logger = logging.getLogger(__name__)

BOOKING_METHOD_OPTION = "booking_method"
DEFAULT_TOLERANCE_OPTION = "default_tolerance"


def load_file(
    path: Path | str, config: LedgerConfig | None = None
) -> tuple[Ledger, list[LedgerError]]:
    """Load the ledger rooted at *path*.

    Raises:
        SourceReadError: a file cannot be read.
        LexError: a file is not valid UTF-8 or cannot be tokenized.
        IncludeCycleError: a file includes itself, directly or not.
    """
    config = config or LedgerConfig()
    with trace_span("sources") as span:
        sources = collect(Path(path), workers=config.loader.workers)
        if span:
            span.annotate("files", len(sources.files))
    return _build(sources, config)


def load_string(
    text: str,
    filename: str = "<string>",
    *,
    base_dir: Path | None = None,
    config: LedgerConfig | None = None,
) -> tuple[Ledger, list[LedgerError]]:
    """Load a ledger from in-memory *text*; includes resolve against *base_dir*."""
    config = config or LedgerConfig()
    with trace_span("sources") as span:
        first = parse_string(text, filename, base_dir or Path.cwd())
        sources = collect_from(first, workers=config.loader.workers)
        if span:
            span.annotate("files", len(sources.files))
    return _build(sources, config)


def sort_directives(directives: Sequence[DatedDirective]) -> list[DatedDirective]:
    """Stable sort by ``(date, declaration sequence)``.

    The declaration sequence is the position in the depth-first assembly of
    the include graph, so directives sharing a date keep the order in which
    they were first seen. Within one file this is their literal textual
    order.
    """
    order = sorted(range(len(directives)), key=lambda seq: (directives[seq].date, seq))
    return [directives[seq] for seq in order]


def _build(sources: SourceSet, config: LedgerConfig) -> tuple[Ledger, list[LedgerError]]:
    options: dict[str, str] = {}
    errors: list[LedgerError] = list(sources.errors)
    file_method: BookingMethod | None = None
    default_tolerance: Decimal | None = None
    dated: list[DatedDirective] = []

    for directive in sources.directives:
        if isinstance(directive, Include):
            continue
        if not isinstance(directive, Option):
            dated.append(directive)
            continue
        options[directive.name] = directive.value
        try:
            if directive.name == BOOKING_METHOD_OPTION:
                file_method = BookingMethod(directive.value)
            elif directive.name == DEFAULT_TOLERANCE_OPTION:
                default_tolerance = abs(parse_decimal(directive.value))
        except ValueError:
            errors.append(_invalid_option(directive))

    with trace_span("sort") as span:
        ordered = sort_directives(dated)
        if span:
            span.annotate("directives", len(ordered))

    with trace_span("replay") as span:
        replayer = Replayer(
            AccountRegistry.scan(ordered),
            config,
            file_method=file_method,
            default_tolerance=default_tolerance,
        )
        replayer.run(ordered)
        errors.extend(replayer.errors)
        if span:
            span.annotate("errors", len(errors))

    ledger = Ledger(
        entries=tuple(replayer.entries()),
        accounts=replayer.registry.snapshot(),
        prices=replayer.prices,
        errors=tuple(errors),
        files=sources.files,
        options=options,
        commodities=replayer.commodities,
        history={account: tuple(snaps) for account, snaps in sorted(replayer.history.items())},
    )
    logger.debug(
        "Loaded %s: %d files, %d entries, %d errors",
        sources.root,
        len(ledger.files),
        len(ledger.entries),
        len(ledger.errors),
    )
    return ledger, list(errors)


def _invalid_option(option: Option) -> LedgerError:
    if option.name == BOOKING_METHOD_OPTION:
        message = f"Unknown booking method {option.value!r}"
    else:
        message = f"Invalid number {option.value!r} for option {option.name}"
    return LedgerError(
        kind=ErrorKind.INVALID_DIRECTIVE,
        message=message,
        location=option.location,
    )
