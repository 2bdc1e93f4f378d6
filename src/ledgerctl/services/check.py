"""CheckService — load the ledger and report every accumulated diagnostic."""

from __future__ import annotations

from collections import Counter

from ledgerctl.services.base import BaseService
from ledgerctl.services.result import ServiceResult
from ledgerctl.services.telemetry import traced


class CheckService(BaseService):
    """Surfaces parse, booking, balance and account errors in one pass."""

    @traced
    def check(self) -> ServiceResult:
        """Load the ledger and list its errors in ledger order.

        The call itself succeeds whenever the load completes; a ledger
        with errors is still a successful check with a non-empty
        ``issues`` list.
        """
        ledger = self._ledger_or_error("check")
        if isinstance(ledger, ServiceResult):
            return ledger

        issues = [error.to_issue() for error in ledger.errors]
        by_kind = Counter(issue["kind"] for issue in issues)
        return ServiceResult(
            ok=True,
            op="check",
            data={
                "issues": issues,
                "count": len(issues),
                "by_kind": dict(sorted(by_kind.items())),
                "files": len(ledger.files),
                "entries": len(ledger.entries),
            },
        )
