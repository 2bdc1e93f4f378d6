"""QueryService — read-only reports over a loaded ledger.

Five surfaces, all returning plain JSON-ready payloads:
- balances: hierarchical account totals, each parent including its children
- accounts: validity windows, currency restrictions and booking methods
- files: every source file touched by the load, in include order
- journal: one account's postings with a running balance
- price: point-in-time rate between two currencies
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from ledgerctl.domain.accounts import ancestors, is_descendant
from ledgerctl.domain.amounts import ZERO
from ledgerctl.domain.inventory import Inventory
from ledgerctl.domain.prices import PriceNotFoundError
from ledgerctl.services.base import BaseService
from ledgerctl.services.result import ServiceError, ServiceResult
from ledgerctl.services.telemetry import traced


def _amounts(totals: dict[str, Decimal]) -> dict[str, str]:
    return {currency: str(number) for currency, number in sorted(totals.items())}


class QueryService(BaseService):
    """Reports consumed by the CLI."""

    # ------------------------------------------------------------------
    # balances
    # ------------------------------------------------------------------

    @traced
    def balances(
        self,
        *,
        as_of: date | None = None,
        at_cost: bool = False,
        root: str | None = None,
        show_closed: bool = False,
    ) -> ServiceResult:
        """Account tree with per-currency totals.

        Args:
            as_of: Only count entries dated on or before this date.
            at_cost: Value lots held at cost in their cost currency.
            root: Restrict the tree to this account and its descendants.
            show_closed: Include accounts closed on or before *as_of*.
        """
        ledger = self._ledger_or_error("balances")
        if isinstance(ledger, ServiceResult):
            return ledger

        leaves: set[str] = set()
        for name, info in ledger.accounts.items():
            if as_of is not None and info.open_date > as_of:
                continue
            closed = info.close_date is not None and (as_of is None or info.close_date <= as_of)
            if closed and not show_closed:
                continue
            leaves.add(name)
        # Closed accounts still holding units stay visible.
        leaves.update(
            name for name in ledger.touched_accounts() if ledger.units(name, as_of=as_of)
        )

        names = sorted({parent for leaf in leaves for parent in ancestors(leaf)})
        if root is not None:
            names = [name for name in names if is_descendant(name, root)]

        rows: list[dict[str, Any]] = []
        for name in names:
            total = ledger.balance(name, as_of=as_of, include_children=True)
            own = ledger.balance(name, as_of=as_of)
            rows.append(
                {
                    "account": name,
                    "depth": name.count(":"),
                    "balance": _amounts(self._value(total, at_cost)),
                    "own": _amounts(self._value(own, at_cost)),
                }
            )

        return ServiceResult(
            ok=True,
            op="balances",
            data={
                "as_of": as_of.isoformat() if as_of else None,
                "at_cost": at_cost,
                "root": root,
                "rows": rows,
                "count": len(rows),
            },
        )

    @staticmethod
    def _value(inventory: Inventory, at_cost: bool) -> dict[str, Decimal]:
        return inventory.at_cost() if at_cost else inventory.units()

    # ------------------------------------------------------------------
    # accounts
    # ------------------------------------------------------------------

    @traced
    def accounts(self) -> ServiceResult:
        ledger = self._ledger_or_error("accounts")
        if isinstance(ledger, ServiceResult):
            return ledger

        items = [
            {
                "account": info.name,
                "open": info.open_date.isoformat(),
                "close": info.close_date.isoformat() if info.close_date else None,
                "currencies": sorted(info.currencies),
                "booking": str(info.booking) if info.booking else None,
                "file": info.open_location.file,
                "line": info.open_location.line,
            }
            for info in ledger.accounts.values()
        ]
        return ServiceResult(ok=True, op="accounts", data={"items": items, "count": len(items)})

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------

    @traced
    def files(self) -> ServiceResult:
        ledger = self._ledger_or_error("files")
        if isinstance(ledger, ServiceResult):
            return ledger
        files = list(ledger.files)
        return ServiceResult(
            ok=True,
            op="files",
            data={"root": files[0] if files else None, "files": files, "count": len(files)},
        )

    # ------------------------------------------------------------------
    # journal
    # ------------------------------------------------------------------

    @traced
    def journal(self, account: str, *, include_children: bool = False) -> ServiceResult:
        """Postings of *account* in ledger order with the running units balance."""
        ledger = self._ledger_or_error("journal")
        if isinstance(ledger, ServiceResult):
            return ledger

        known = account in ledger.accounts or any(
            is_descendant(name, account) for name in ledger.accounts
        )
        if not known:
            return ServiceResult(
                ok=False,
                op="journal",
                error=ServiceError(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"No account named {account}",
                    detail={"account": account},
                ),
            )

        running: dict[str, Decimal] = {}
        rows: list[dict[str, Any]] = []
        for txn, posting in ledger.postings(account, include_children=include_children):
            assert posting.number is not None and posting.currency is not None
            running[posting.currency] = running.get(posting.currency, ZERO) + posting.number
            rows.append(
                {
                    "date": txn.date.isoformat(),
                    "flag": txn.flag,
                    "payee": txn.payee,
                    "narration": txn.narration,
                    "account": posting.account,
                    "amount": f"{posting.number} {posting.currency}",
                    "cost": str(posting.cost) if posting.cost is not None else None,
                    "price": str(posting.price) if posting.price is not None else None,
                    "balance": _amounts({c: n for c, n in running.items() if n != ZERO}),
                    "file": txn.location.file,
                    "line": txn.location.line,
                }
            )
        return ServiceResult(
            ok=True,
            op="journal",
            data={"account": account, "rows": rows, "count": len(rows)},
        )

    # ------------------------------------------------------------------
    # price
    # ------------------------------------------------------------------

    @traced
    def price(self, base: str, quote: str, *, on: date | None = None) -> ServiceResult:
        """Rate of one *base* in *quote*, on *on* (default: the last price date)."""
        ledger = self._ledger_or_error("price")
        if isinstance(ledger, ServiceResult):
            return ledger

        when = on or date.max
        try:
            rate = ledger.prices.rate(base, quote, when)
        except PriceNotFoundError as exc:
            return ServiceResult(
                ok=False,
                op="price",
                error=ServiceError(
                    code="NO_PRICE",
                    message=str(exc) if on else f"No price for {base} in {quote}",
                    detail={"base": base, "quote": quote},
                ),
            )
        return ServiceResult(
            ok=True,
            op="price",
            data={
                "base": base,
                "quote": quote,
                "on": on.isoformat() if on else None,
                "rate": str(rate),
            },
        )
