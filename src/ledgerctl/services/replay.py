"""Replayer — single sequential pass over the sorted directive stream.

Owns the live state of a load (account registry, inventories, price
database) and dispatches each directive to the component that handles it.
Booking and checking are order dependent, so this pass never runs in
parallel.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import assert_never

from ledgerctl.config.models import LedgerConfig
from ledgerctl.domain.accounts import AccountRegistry
from ledgerctl.domain.amounts import Cost, parse_decimal
from ledgerctl.domain.directives import (
    Balance,
    Close,
    Commodity,
    Custom,
    DatedDirective,
    Directive,
    Document,
    Event,
    Include,
    Note,
    Open,
    Option,
    Pad,
    Price,
    Transaction,
)
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.inventory import Inventory, Lot
from ledgerctl.domain.ledger import Snapshot
from ledgerctl.domain.prices import PriceDatabase
from ledgerctl.domain.tokens import Location
from ledgerctl.domain.types import BookingMethod, ErrorKind
from ledgerctl.services.assertions import BalanceChecker
from ledgerctl.services.booking import TransactionBooker

logger = logging.getLogger(__name__)


class Replayer:
    """Replays dated directives in order, accumulating state and errors."""

    def __init__(
        self,
        declared: dict[str, date],
        config: LedgerConfig,
        *,
        file_method: BookingMethod | None = None,
        default_tolerance: Decimal | None = None,
    ) -> None:
        override = config.tolerance.override
        self.registry = AccountRegistry(declared)
        self.inventories: dict[str, Inventory] = {}
        self.prices = PriceDatabase()
        self.commodities: dict[str, Commodity] = {}
        self.commodity_tolerances: dict[str, Decimal] = {}
        self.booker = TransactionBooker(
            self.inventories,
            self.prices,
            self.registry,
            booking=config.booking,
            file_method=file_method,
            tolerance_override=override,
            commodity_tolerances=self.commodity_tolerances,
            default_tolerance=default_tolerance,
        )
        self.checker = BalanceChecker(
            self.inventories,
            self.registry,
            self.booker,
            tolerance_override=override,
            commodity_tolerances=self.commodity_tolerances,
            default_tolerance=default_tolerance,
        )
        self.errors: list[LedgerError] = []
        self.history: dict[str, list[Snapshot]] = {}
        self._entries: list[DatedDirective] = []
        self._padding: dict[Location, list[Transaction]] = {}
        self._rejected = 0

    def run(self, directives: Iterable[DatedDirective]) -> None:
        for directive in directives:
            self._dispatch(directive)
        self.errors.extend(self.checker.finish())
        logger.debug(
            "Replayed %d entries: %d accounts, %d prices, %d rejected transactions",
            len(self._entries),
            len(self.registry.snapshot()),
            len(self.prices),
            self._rejected,
        )

    def entries(self) -> list[DatedDirective]:
        """Final entry order: padding transactions follow the pad that produced them."""
        result: list[DatedDirective] = []
        for entry in self._entries:
            result.append(entry)
            if isinstance(entry, Pad):
                result.extend(self._padding.get(entry.location, []))
        return result

    def _dispatch(self, directive: Directive) -> None:
        match directive:
            case Open():
                self._record(self.registry.open(directive))
                self._entries.append(directive)
            case Close():
                self._record(self.registry.close(directive))
                self.errors.extend(self.checker.close(directive))
                self._entries.append(directive)
            case Commodity():
                self._commodity(directive)
                self._entries.append(directive)
            case Transaction():
                outcome = self.booker.book(directive)
                self.errors.extend(outcome.errors)
                if outcome.transaction is None:
                    self._rejected += 1
                else:
                    self._snapshot(outcome.transaction)
                    self._entries.append(outcome.transaction)
            case Pad():
                self.errors.extend(self.checker.pad(directive))
                self._entries.append(directive)
            case Balance():
                balance = self.checker.balance(directive)
                self.errors.extend(balance.errors)
                for padding in balance.padding:
                    self._padding.setdefault(padding.location, []).append(padding)
                    self._backfill(padding)
                self._entries.append(directive)
            case Price():
                amount = directive.amount
                self.prices.add(directive.date, directive.currency, amount.currency, amount.number)
                self._entries.append(directive)
            case Note() | Document():
                self._record(
                    self.registry.check_active(
                        directive.account, directive.date, directive.location
                    )
                )
                self._entries.append(directive)
            case Event() | Custom():
                self._entries.append(directive)
            case Include() | Option():
                pass
            case _:
                assert_never(directive)

    def _record(self, error: LedgerError | None) -> None:
        if error is not None:
            self.errors.append(error)

    def _commodity(self, directive: Commodity) -> None:
        self.commodities.setdefault(directive.currency, directive)
        raw = directive.meta.get("tolerance")
        if raw is None:
            return
        try:
            tolerance = raw if isinstance(raw, Decimal) else parse_decimal(str(raw))
        except ValueError:
            tolerance = None
        if tolerance is None or tolerance < 0:
            self._record(
                LedgerError(
                    kind=ErrorKind.INVALID_DIRECTIVE,
                    message=f"Invalid tolerance {raw!r} for commodity {directive.currency}",
                    location=directive.location,
                )
            )
            return
        self.commodity_tolerances[directive.currency] = tolerance

    def _snapshot(self, txn: Transaction) -> None:
        """Record the post-transaction inventory of every account it touched."""
        for account in dict.fromkeys(p.account for p in txn.postings):
            snapshots = self.history.setdefault(account, [])
            state = self.inventories.get(account, Inventory()).copy()
            if snapshots and snapshots[-1][0] == txn.date:
                snapshots[-1] = (txn.date, state)
            else:
                snapshots.append((txn.date, state))

    def _backfill(self, padding: Transaction) -> None:
        """File a padding transaction under its pad date.

        Padding is booked when the balance is reached, after entries dated
        between the pad and the balance. Its postings are added to the
        snapshot on the pad date, created from the one before when missing,
        and to every later snapshot of the same account.
        """
        for posting in padding.postings:
            assert posting.number is not None and posting.currency is not None
            lot = Lot(posting.currency, posting.cost if isinstance(posting.cost, Cost) else None)
            snapshots = self.history.setdefault(posting.account, [])
            index = bisect.bisect_left([on for on, _ in snapshots], padding.date)
            if index == len(snapshots) or snapshots[index][0] != padding.date:
                prior = snapshots[index - 1][1].copy() if index else Inventory()
                snapshots.insert(index, (padding.date, prior))
            for _, state in snapshots[index:]:
                state.add(lot, posting.number)
