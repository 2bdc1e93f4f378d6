"""Ledger — the immutable result of a load.

Holds the final directive order, the account table, per-account inventory
history, the price database and every accumulated diagnostic. Query methods
return copies so the ledger can be shared between concurrent readers.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from ledgerctl.domain.accounts import AccountInfo, is_descendant
from ledgerctl.domain.directives import Commodity, Directive, Event, Posting, Transaction
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.inventory import Inventory
from ledgerctl.domain.prices import PriceDatabase

type Snapshot = tuple[date, Inventory]


@dataclass(frozen=True)
class Ledger:
    """Read-only view over a fully replayed ledger.

    ``entries`` contains every dated directive in final order: transactions
    as booked (interpolated amounts and resolved lot costs), padding
    transactions directly after the pad that produced them, and without
    transactions that were rejected.
    """

    entries: tuple[Directive, ...]
    accounts: Mapping[str, AccountInfo]
    prices: PriceDatabase
    errors: tuple[LedgerError, ...] = ()
    files: tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict)
    commodities: Mapping[str, Commodity] = field(default_factory=dict)
    history: Mapping[str, tuple[Snapshot, ...]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for name in ("accounts", "options", "commodities", "history"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def directives(self, *kinds: type) -> list[Directive]:
        """Entries in final order, optionally filtered to the given types."""
        if not kinds:
            return list(self.entries)
        return [entry for entry in self.entries if isinstance(entry, kinds)]

    def transactions(self) -> list[Transaction]:
        return [entry for entry in self.entries if isinstance(entry, Transaction)]

    def postings(
        self, account: str, *, include_children: bool = False
    ) -> Iterator[tuple[Transaction, Posting]]:
        """Booked postings touching *account*, in ledger order."""
        for txn in self.transactions():
            for posting in txn.postings:
                if posting.account == account or (
                    include_children and is_descendant(posting.account, account)
                ):
                    yield txn, posting

    def events(self) -> dict[str, list[Event]]:
        """Events grouped by type, each group in date order."""
        grouped: dict[str, list[Event]] = {}
        for entry in self.entries:
            if isinstance(entry, Event):
                grouped.setdefault(entry.type, []).append(entry)
        return grouped

    # ------------------------------------------------------------------
    # Accounts and balances
    # ------------------------------------------------------------------

    def account(self, name: str) -> AccountInfo | None:
        return self.accounts.get(name)

    def open_accounts(self, on: date) -> list[AccountInfo]:
        return [info for info in self.accounts.values() if info.is_open_on(on)]

    def balance(
        self,
        account: str,
        *,
        as_of: date | None = None,
        include_children: bool = False,
    ) -> Inventory:
        """Inventory of *account* after every entry dated on or before *as_of*.

        With *include_children*, the inventories of all sub-accounts are
        merged in.
        """
        names = (
            [name for name in self.history if is_descendant(name, account)]
            if include_children
            else [account]
        )
        total = Inventory()
        for name in names:
            snapshot = self._snapshot(name, as_of)
            if snapshot is not None:
                total.merge(snapshot)
        return total

    def units(
        self, account: str, *, as_of: date | None = None, include_children: bool = False
    ) -> dict[str, Decimal]:
        return self.balance(account, as_of=as_of, include_children=include_children).units()

    def _snapshot(self, account: str, as_of: date | None) -> Inventory | None:
        snapshots = self.history.get(account)
        if not snapshots:
            return None
        if as_of is None:
            return snapshots[-1][1]
        index = bisect.bisect_right([on for on, _ in snapshots], as_of)
        if index == 0:
            return None
        return snapshots[index - 1][1]

    def touched_accounts(self) -> list[str]:
        """Accounts that have received at least one posting."""
        return sorted(self.history)
