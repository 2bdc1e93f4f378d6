"""Booking engine — weights, interpolation, lot matching and balance checks.

:class:`TransactionBooker` books one transaction at a time against the live
per-account inventories. Every posting is first applied to scratch copies
of the inventories it touches; the copies replace the live inventories only
when the whole transaction books cleanly, so a rejected transaction has no
inventory effect at all.

Weights:
- no cost, no price: the units themselves
- price only: units times the per-unit price, or the ``@@`` total carrying
  the sign of the units
- cost: units times the per-unit cost, in the cost currency (a reduction
  uses the cost of each lot it draws from)

At most one unknown is solved per transaction: either the elided units of
one posting, or the omitted cost number of one augmenting posting.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Literal

from ledgerctl.config.models import BookingConfig
from ledgerctl.domain.accounts import AccountRegistry
from ledgerctl.domain.amounts import ZERO, Amount, Cost, CostSpec, infer_tolerance, within
from ledgerctl.domain.directives import Posting, Transaction
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.inventory import Inventory, Lot, Position
from ledgerctl.domain.prices import PriceDatabase
from ledgerctl.domain.types import BookingMethod, ErrorKind

logger = logging.getLogger(__name__)


class _Reject(Exception):
    """Aborts booking of the current transaction with one error."""

    def __init__(self, error: LedgerError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass
class _Slot:
    """Booking state of one written posting."""

    source: Posting
    booked: list[Posting] = field(default_factory=list)
    weights: list[Amount] = field(default_factory=list)
    unknown: Literal["units", "cost"] | None = None


@dataclass(frozen=True)
class BookingOutcome:
    """The booked transaction, or None when it was rejected."""

    transaction: Transaction | None
    errors: list[LedgerError]


class TransactionBooker:
    """Books transactions into *inventories*, which it updates in place.

    *commodity_tolerances* is read at booking time, so tolerances declared
    by ``commodity`` directives apply from the point they are replayed.
    """

    def __init__(
        self,
        inventories: dict[str, Inventory],
        prices: PriceDatabase,
        registry: AccountRegistry,
        *,
        booking: BookingConfig | None = None,
        file_method: BookingMethod | None = None,
        tolerance_override: Decimal | None = None,
        commodity_tolerances: Mapping[str, Decimal] | None = None,
        default_tolerance: Decimal | None = None,
    ) -> None:
        self._inventories = inventories
        self._prices = prices
        self._registry = registry
        self._booking = booking or BookingConfig()
        self._file_method = file_method
        self._override = tolerance_override
        self._commodity_tolerances = commodity_tolerances or {}
        self._default_tolerance = default_tolerance

    def method_for(self, account: str) -> BookingMethod:
        """Open directive, then config (per account, then default), then file option."""
        info = self._registry.get(account)
        if info is not None and info.booking is not None:
            return info.booking
        return self._booking.method_for(account) or self._file_method or BookingMethod.STRICT

    # ------------------------------------------------------------------
    # Transaction
    # ------------------------------------------------------------------

    def book(self, txn: Transaction) -> BookingOutcome:
        errors = self._check_accounts(txn)
        if errors:
            return BookingOutcome(None, errors)

        scratch: dict[str, Inventory] = {}
        try:
            slots = [self._book_posting(txn, posting, scratch) for posting in txn.postings]
            unknown = [slot for slot in slots if slot.unknown is not None]
            if len(unknown) > 1:
                raise _Reject(
                    LedgerError(
                        kind=ErrorKind.AMBIGUOUS_INTERPOLATION,
                        message=(
                            f"Transaction has {len(unknown)} postings with missing "
                            "amounts or costs; at most one can be inferred"
                        ),
                        location=txn.location,
                        detail={"accounts": [slot.source.account for slot in unknown]},
                    )
                )

            tolerances = self._tolerances(txn)
            if unknown:
                self._interpolate(txn, unknown[0], _residual(slots), tolerances, scratch)

            residual = _residual(slots)
            unbalanced = {
                currency: number
                for currency, number in residual.items()
                if not within(number, tolerances(currency))
            }
            if unbalanced:
                summary = ", ".join(f"{n} {c}" for c, n in unbalanced.items())
                raise _Reject(
                    LedgerError(
                        kind=ErrorKind.UNBALANCED,
                        message=f"Transaction does not balance: {summary}",
                        location=txn.location,
                        detail={"residual": unbalanced},
                    )
                )
        except _Reject as exc:
            logger.debug("Rejected transaction at %s: %s", txn.location, exc.error.message)
            return BookingOutcome(None, [exc.error])

        self._inventories.update(scratch)
        booked = replace(txn, postings=tuple(p for slot in slots for p in slot.booked))
        self._record_implied_prices(booked)
        return BookingOutcome(booked, [])

    def _check_accounts(self, txn: Transaction) -> list[LedgerError]:
        errors: list[LedgerError] = []
        for posting in txn.postings:
            error = self._registry.check_active(posting.account, txn.date, posting.location)
            if error is None and posting.currency is not None:
                error = self._registry.check_currency(
                    posting.account, posting.currency, posting.location
                )
            if error is not None:
                errors.append(error)
        return errors

    def _record_implied_prices(self, txn: Transaction) -> None:
        for posting in txn.postings:
            if not isinstance(posting.cost, Cost) or posting.currency is None:
                continue
            price = posting.unit_price
            if price is not None:
                self._prices.add(txn.date, posting.currency, price.currency, price.number)

    # ------------------------------------------------------------------
    # Postings
    # ------------------------------------------------------------------

    def _book_posting(
        self, txn: Transaction, posting: Posting, scratch: dict[str, Inventory]
    ) -> _Slot:
        slot = _Slot(posting)
        if posting.number is None:
            if posting.cost is not None or posting.price is not None:
                raise _Reject(
                    LedgerError(
                        kind=ErrorKind.INVALID_DIRECTIVE,
                        message=(
                            f"Cannot infer the units of {posting.account}: "
                            "a posting with a cost or price must state its amount"
                        ),
                        location=posting.location,
                    )
                )
            slot.unknown = "units"
            return slot

        number, currency = posting.number, posting.currency
        assert currency is not None
        inventory = _scratch(scratch, self._inventories, posting.account)

        if posting.cost is None:
            inventory.add(Lot(currency), number)
            slot.booked.append(posting)
            slot.weights.append(_price_weight(posting))
            return slot

        spec = posting.cost
        if isinstance(spec, Cost):
            spec = CostSpec(
                number_per=spec.number, currency=spec.currency, date=spec.date, label=spec.label
            )
        method = self.method_for(posting.account)
        if method is not BookingMethod.NONE and _reduces(inventory, currency, number):
            self._reduce(posting, spec, method, inventory, slot)
        else:
            self._augment(txn, posting, spec, method, inventory, slot)
        return slot

    def _augment(
        self,
        txn: Transaction,
        posting: Posting,
        spec: CostSpec,
        method: BookingMethod,
        inventory: Inventory,
        slot: _Slot,
    ) -> None:
        assert posting.number is not None and posting.currency is not None
        per = spec.unit_number(posting.number)
        if per is None:
            slot.unknown = "cost"
            return
        if spec.currency is None:
            raise _Reject(
                LedgerError(
                    kind=ErrorKind.INVALID_DIRECTIVE,
                    message=f"Cost of {posting.currency} in {posting.account} has no currency",
                    location=posting.location,
                )
            )
        cost = Cost(per, spec.currency, spec.date or txn.date, spec.label)
        if spec.number_per is None and spec.number_total is not None:
            weight = abs(spec.number_total).copy_sign(posting.number)
        else:
            weight = posting.number * per
        _hold(inventory, method, posting.currency, cost, posting.number)
        slot.booked.append(replace(posting, cost=cost))
        slot.weights.append(Amount(weight, cost.currency))

    def _reduce(
        self,
        posting: Posting,
        spec: CostSpec,
        method: BookingMethod,
        inventory: Inventory,
        slot: _Slot,
    ) -> None:
        number, currency = posting.number, posting.currency
        assert number is not None and currency is not None

        if method is BookingMethod.AVERAGE:
            _average(inventory, currency)
            # Averaged lots only need to agree on the cost currency.
            wanted = CostSpec(currency=spec.currency)
            candidates = [
                p
                for p in _opposing(inventory, currency, number)
                if p.lot.cost is not None and wanted.matches(p.lot.cost, number)
            ]
        else:
            candidates = [
                p
                for p in _opposing(inventory, currency, number)
                if p.lot.cost is not None and spec.matches(p.lot.cost, number)
            ]
        if not candidates:
            raise _Reject(
                LedgerError(
                    kind=ErrorKind.NO_MATCHING_LOT,
                    message=f"No lot of {currency} in {posting.account} matches {spec}",
                    location=posting.location,
                )
            )

        needed = abs(number)
        held = sum((abs(p.number) for p in candidates), ZERO)
        if method is BookingMethod.STRICT and len(candidates) > 1 and needed != held:
            raise _Reject(
                LedgerError(
                    kind=ErrorKind.AMBIGUOUS_LOT,
                    message=(
                        f"Ambiguous lot for {number} {currency} in {posting.account}: "
                        f"{len(candidates)} lots match {spec}"
                    ),
                    location=posting.location,
                    detail={"candidates": [str(p) for p in candidates]},
                )
            )
        if needed > held:
            raise _Reject(
                LedgerError(
                    kind=ErrorKind.INSUFFICIENT_LOT,
                    message=(
                        f"Cannot reduce {posting.account} by {number} {currency}: "
                        f"only {held} held in matching lots"
                    ),
                    location=posting.location,
                    detail={"requested": needed, "held": held},
                )
            )

        if method in (BookingMethod.FIFO, BookingMethod.LIFO):
            # Insertion order breaks ties between lots acquired on the same date.
            dates = [p.lot.cost.date for p in candidates]  # type: ignore[union-attr]
            order = sorted(range(len(candidates)), key=lambda i: (dates[i], i))
            if method is BookingMethod.LIFO:
                order.reverse()
            candidates = [candidates[i] for i in order]

        remaining = needed
        for position in candidates:
            if remaining == ZERO:
                break
            take = min(remaining, abs(position.number))
            booked_number = take.copy_sign(number)
            inventory.add(position.lot, booked_number)
            cost = position.lot.cost
            assert cost is not None
            slot.booked.append(replace(posting, number=booked_number, cost=cost))
            slot.weights.append(Amount(booked_number * cost.number, cost.currency))
            remaining -= take

    # ------------------------------------------------------------------
    # Interpolation
    # ------------------------------------------------------------------

    def _interpolate(
        self,
        txn: Transaction,
        slot: _Slot,
        residual: dict[str, Decimal],
        tolerances: _Tolerances,
        scratch: dict[str, Inventory],
    ) -> None:
        if slot.unknown == "cost":
            self._interpolate_cost(txn, slot, residual, tolerances, scratch)
        else:
            self._interpolate_units(txn, slot, residual, scratch)

    def _interpolate_units(
        self,
        txn: Transaction,
        slot: _Slot,
        residual: dict[str, Decimal],
        scratch: dict[str, Inventory],
    ) -> None:
        posting = slot.source
        outstanding = {c: n for c, n in residual.items() if n != ZERO}
        target = posting.currency

        if target is None:
            for currency, number in outstanding.items():
                slot.booked.append(replace(posting, number=-number, currency=currency))
                slot.weights.append(Amount(-number, currency))
        else:
            for currency, number in outstanding.items():
                if currency == target:
                    slot.booked.append(replace(posting, number=-number))
                    slot.weights.append(Amount(-number, currency))
                    continue
                rate = self._prices.lookup(currency, target, txn.date)
                if rate is None:
                    raise _Reject(
                        LedgerError(
                            kind=ErrorKind.NO_PRICE,
                            message=(
                                f"No price to convert {-number} {currency} into {target} "
                                f"on or before {txn.date.isoformat()}"
                            ),
                            location=posting.location,
                        )
                    )
                slot.booked.append(
                    replace(
                        posting,
                        number=-number * rate,
                        price=Amount(abs(number), currency),
                        price_is_total=True,
                    )
                )
                slot.weights.append(Amount(-number, currency))
            if not slot.booked:
                slot.booked.append(replace(posting, number=ZERO))

        inventory = _scratch(scratch, self._inventories, posting.account)
        for booked in slot.booked:
            assert booked.number is not None and booked.currency is not None
            error = self._registry.check_currency(booked.account, booked.currency, booked.location)
            if error is not None:
                raise _Reject(error)
            inventory.add(Lot(booked.currency), booked.number)

    def _interpolate_cost(
        self,
        txn: Transaction,
        slot: _Slot,
        residual: dict[str, Decimal],
        tolerances: _Tolerances,
        scratch: dict[str, Inventory],
    ) -> None:
        posting = slot.source
        spec = posting.cost
        assert isinstance(spec, CostSpec)
        assert posting.number is not None and posting.currency is not None

        outstanding = {c: n for c, n in residual.items() if not within(n, tolerances(c))}
        mismatch = spec.currency is not None and spec.currency not in outstanding
        if len(outstanding) != 1 or mismatch:
            raise _Reject(
                LedgerError(
                    kind=ErrorKind.INVALID_DIRECTIVE,
                    message=(
                        f"Cannot infer the cost of {posting.currency} in {posting.account}: "
                        f"the rest of the transaction leaves {len(outstanding)} "
                        "currencies unbalanced"
                    ),
                    location=posting.location,
                )
            )
        ((currency, number),) = outstanding.items()
        cost = Cost(-number / posting.number, currency, spec.date or txn.date, spec.label)

        inventory = _scratch(scratch, self._inventories, posting.account)
        _hold(inventory, self.method_for(posting.account), posting.currency, cost, posting.number)
        slot.booked.append(replace(posting, cost=cost))
        slot.weights.append(Amount(-number, currency))

    # ------------------------------------------------------------------
    # Tolerance
    # ------------------------------------------------------------------

    def _tolerances(self, txn: Transaction) -> _Tolerances:
        return _Tolerances(
            txn, self._override, self._commodity_tolerances, self._default_tolerance
        )


class _Tolerances:
    """Per-currency tolerance for one transaction.

    Order: configured override, ``tolerance`` metadata of the commodity, the
    ``default_tolerance`` option, the finest precision among the units
    written in that currency, then
    among cost and price numbers in that currency, then among every number
    written in the transaction.
    """

    def __init__(
        self,
        txn: Transaction,
        override: Decimal | None,
        commodities: Mapping[str, Decimal],
        default: Decimal | None = None,
    ) -> None:
        self._override = override
        self._commodities = commodities
        self._default = default
        units: dict[str, list[Decimal]] = {}
        annotations: dict[str, list[Decimal]] = {}
        every: list[Decimal] = []
        for posting in txn.postings:
            if posting.number is not None and posting.currency is not None:
                units.setdefault(posting.currency, []).append(posting.number)
                every.append(posting.number)
            if isinstance(posting.cost, CostSpec) and posting.cost.currency is not None:
                for value in (posting.cost.number_per, posting.cost.number_total):
                    if value is not None:
                        annotations.setdefault(posting.cost.currency, []).append(value)
                        every.append(value)
            if posting.price is not None:
                annotations.setdefault(posting.price.currency, []).append(posting.price.number)
                every.append(posting.price.number)
        self._units = units
        self._annotations = annotations
        self._fallback = infer_tolerance(every) or ZERO

    def __call__(self, currency: str) -> Decimal:
        if self._override is not None:
            return self._override
        if currency in self._commodities:
            return self._commodities[currency]
        if self._default is not None:
            return self._default
        for source in (self._units, self._annotations):
            if currency in source:
                return infer_tolerance(source[currency]) or ZERO
        return self._fallback


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scratch(scratch: dict[str, Inventory], live: dict[str, Inventory], account: str) -> Inventory:
    inventory = scratch.get(account)
    if inventory is None:
        inventory = live[account].copy() if account in live else Inventory()
        scratch[account] = inventory
    return inventory


def _residual(slots: list[_Slot]) -> dict[str, Decimal]:
    """Sum of weights per currency, in order of first appearance."""
    totals: dict[str, Decimal] = {}
    for slot in slots:
        for weight in slot.weights:
            totals[weight.currency] = totals.get(weight.currency, ZERO) + weight.number
    return totals


def _price_weight(posting: Posting) -> Amount:
    assert posting.number is not None and posting.currency is not None
    price = posting.price
    if price is None:
        return Amount(posting.number, posting.currency)
    if posting.price_is_total:
        return Amount(abs(price.number).copy_sign(posting.number), price.currency)
    return Amount(posting.number * price.number, price.currency)


def _opposing(inventory: Inventory, currency: str, number: Decimal) -> list[Position]:
    return [p for p in inventory.cost_lots(currency) if (p.number > 0) != (number > 0)]


def _reduces(inventory: Inventory, currency: str, number: Decimal) -> bool:
    """A posting reduces when the account holds cost lots of the opposite sign."""
    return bool(_opposing(inventory, currency, number))


def _hold(
    inventory: Inventory, method: BookingMethod, currency: str, cost: Cost, number: Decimal
) -> None:
    if method is BookingMethod.NONE:
        inventory.add(Lot(currency), number)
        return
    inventory.add(Lot(currency, cost), number)
    if method is BookingMethod.AVERAGE:
        _average(inventory, currency)


def _average(inventory: Inventory, currency: str) -> None:
    """Merge the cost lots of *currency* into one lot per cost currency.

    The merged lot carries the weighted average cost and the earliest
    acquisition date.
    """
    groups: dict[str, list[Position]] = {}
    for position in inventory.cost_lots(currency):
        assert position.lot.cost is not None
        groups.setdefault(position.lot.cost.currency, []).append(position)

    for cost_currency, positions in groups.items():
        if len(positions) < 2:
            continue
        units = sum((p.number for p in positions), ZERO)
        costs = [p.lot.cost for p in positions if p.lot.cost is not None]
        total = sum((p.number * c.number for p, c in zip(positions, costs, strict=True)), ZERO)
        earliest = min(c.date for c in costs)
        for position in positions:
            inventory.add(position.lot, -position.number)
        if units != ZERO:
            merged = Cost(total / units, cost_currency, earliest)
            inventory.add(Lot(currency, merged), units)
