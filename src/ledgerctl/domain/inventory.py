"""Inventory — per-account lot holdings.

An inventory maps a lot key ``(currency, cost)`` to a signed unit count.
Lots without a cost basis use ``cost=None``. Zero positions are removed
eagerly so equality and emptiness checks stay simple. Iteration follows
insertion order, which FIFO/LIFO booking uses as a tiebreaker.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal

from ledgerctl.domain.amounts import ZERO, Amount, Cost


@dataclass(frozen=True)
class Lot:
    currency: str
    cost: Cost | None = None

    def __str__(self) -> str:
        return self.currency if self.cost is None else f"{self.currency} {self.cost}"


@dataclass(frozen=True)
class Position:
    lot: Lot
    number: Decimal

    @property
    def units(self) -> Amount:
        return Amount(self.number, self.lot.currency)

    def __str__(self) -> str:
        text = f"{self.number} {self.lot.currency}"
        return text if self.lot.cost is None else f"{text} {self.lot.cost}"


class Inventory:
    """Mutable multiset of lots. Copy before sharing."""

    def __init__(self, positions: dict[Lot, Decimal] | None = None) -> None:
        self._lots: dict[Lot, Decimal] = {}
        for lot, number in (positions or {}).items():
            self.add(lot, number)

    def add(self, lot: Lot, number: Decimal) -> Decimal:
        """Add *number* units to *lot*; return the lot's new total."""
        total = self._lots.get(lot, ZERO) + number
        if total == ZERO:
            self._lots.pop(lot, None)
        else:
            self._lots[lot] = total
        return total

    def get(self, lot: Lot) -> Decimal:
        return self._lots.get(lot, ZERO)

    def positions(self) -> list[Position]:
        return [Position(lot, number) for lot, number in self._lots.items()]

    def cost_lots(self, currency: str) -> list[Position]:
        """Lots of *currency* that carry a cost basis, in insertion order."""
        return [
            Position(lot, number)
            for lot, number in self._lots.items()
            if lot.currency == currency and lot.cost is not None
        ]

    def units(self) -> dict[str, Decimal]:
        """Unit totals per currency, ignoring cost bases."""
        totals: dict[str, Decimal] = {}
        for lot, number in self._lots.items():
            totals[lot.currency] = totals.get(lot.currency, ZERO) + number
        return {currency: n for currency, n in totals.items() if n != ZERO}

    def unit(self, currency: str) -> Decimal:
        return sum((n for lot, n in self._lots.items() if lot.currency == currency), ZERO)

    def at_cost(self) -> dict[str, Decimal]:
        """Totals per currency, valuing lots that have a cost at that cost."""
        totals: dict[str, Decimal] = {}
        for lot, number in self._lots.items():
            if lot.cost is None:
                currency, value = lot.currency, number
            else:
                currency, value = lot.cost.currency, number * lot.cost.number
            totals[currency] = totals.get(currency, ZERO) + value
        return {currency: n for currency, n in totals.items() if n != ZERO}

    def merge(self, other: Inventory) -> None:
        for lot, number in other._lots.items():
            self.add(lot, number)

    def copy(self) -> Inventory:
        clone = Inventory()
        clone._lots = dict(self._lots)
        return clone

    def is_empty(self) -> bool:
        return not self._lots

    def __iter__(self) -> Iterator[Position]:
        return iter(self.positions())

    def __len__(self) -> int:
        return len(self._lots)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Inventory):
            return NotImplemented
        return self._lots == other._lots

    def __repr__(self) -> str:
        return f"Inventory({', '.join(str(p) for p in self.positions())})"
