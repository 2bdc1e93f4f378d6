"""Workspace — the single dependency injected into every service.

The workspace knows which root file to load and with which configuration,
and loads the ledger at most once, on first access. A fatal ``LoadError``
is re-raised on every access rather than cached as a partial result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerctl.config.models import LedgerConfig
    from ledgerctl.domain.errors import LedgerError
    from ledgerctl.domain.ledger import Ledger

logger = logging.getLogger(__name__)

type Loader = Callable[[Path, LedgerConfig], tuple[Ledger, list[LedgerError]]]


class Workspace:
    """Lazily loaded ledger rooted at one file."""

    def __init__(self, root_file: Path, config: LedgerConfig, loader: Loader) -> None:
        self._root_file = root_file
        self._config = config
        self._loader = loader
        self._ledger: Ledger | None = None

    @property
    def root_file(self) -> Path:
        return self._root_file

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def ledger(self) -> Ledger:
        """The loaded ledger. Raises ``LoadError`` when the load aborts."""
        if self._ledger is None:
            logger.debug("Loading ledger from %s", self._root_file)
            self._ledger, _ = self._loader(self._root_file, self._config)
        return self._ledger

    @property
    def is_loaded(self) -> bool:
        return self._ledger is not None
