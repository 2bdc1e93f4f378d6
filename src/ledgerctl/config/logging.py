"""structlog configuration for ledgerctl.

Everything goes to stderr; stdout carries reports only, so ``--json``
output stays parseable with logging switched on.

- Human (default): console renderer, colored when stderr is a TTY
- JSON (--log-json): one object per line, tracebacks rendered into the record
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

_PACKAGE_LOGGER = "ledgerctl"


def _pre_chain() -> list[Processor]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _final_chain(log_json: bool) -> list[Processor]:
    chain: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if log_json:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return chain


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Safe to call repeatedly; the root handler is replaced, not stacked.

    Args:
        verbose: DEBUG for ``ledgerctl.*`` loggers (loader stages, booking,
            span timings). Otherwise WARNING.
        log_json: Render JSON lines instead of console output.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=_final_chain(log_json),
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # Third-party loggers (networkx) stay at WARNING regardless of --verbose.
    root.setLevel(logging.WARNING)
    logging.getLogger(_PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
