"""BaseService — foundation for services that read a loaded ledger.

Every service receives a :class:`Workspace` at construction time. The
workspace loads the ledger lazily, once, and hands out the same immutable
``Ledger`` to every service that asks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ledgerctl.domain.errors import LoadError
from ledgerctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from ledgerctl.domain.ledger import Ledger
    from ledgerctl.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class QueryService(BaseService):
            def accounts(self) -> ServiceResult:
                ledger = self._ledger_or_error("accounts")
                if isinstance(ledger, ServiceResult):
                    return ledger
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def _ledger_or_error(self, op: str) -> Ledger | ServiceResult:
        """Return the workspace ledger, or a failed result when the load aborts."""
        try:
            return self._workspace.ledger
        except LoadError as exc:
            logger.debug("Ledger load failed for %s: %s", op, exc)
            return ServiceResult(ok=False, op=op, error=ServiceError.from_load_error(exc))
