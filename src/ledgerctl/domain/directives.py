"""Directive variants — the closed union produced by the parser.

Every dated variant carries ``date`` and ``location``; ``Include`` and
``Option`` are undated file-level statements consumed by the ledger builder
and never reach the chronological stream.

Directives are created once by the parser and never mutated. The booking
engine emits *new* ``Transaction`` values with resolved postings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from ledgerctl.domain.amounts import Amount, Cost, CostSpec
from ledgerctl.domain.tokens import Location
from ledgerctl.domain.types import BookingMethod

type MetaValue = str | Decimal | Amount | date | bool | None
type Meta = dict[str, MetaValue]


@dataclass(frozen=True)
class Posting:
    """One account line of a transaction.

    ``number`` may be elided (``None``), and ``currency`` may be elided
    together with it. A booked posting always has both, and its ``cost`` is a
    resolved :class:`Cost` rather than the written :class:`CostSpec`.
    """

    account: str
    number: Decimal | None
    currency: str | None
    location: Location
    cost: CostSpec | Cost | None = None
    price: Amount | None = None
    price_is_total: bool = False
    flag: str | None = None
    meta: Meta = field(default_factory=dict)

    @property
    def units(self) -> Amount | None:
        if self.number is None or self.currency is None:
            return None
        return Amount(self.number, self.currency)

    @property
    def unit_price(self) -> Amount | None:
        """Price per unit, converting an ``@@`` total when units are known."""
        if self.price is None:
            return None
        if not self.price_is_total:
            return self.price
        if self.number is None or self.number == 0:
            return None
        return Amount(self.price.number / abs(self.number), self.price.currency)


@dataclass(frozen=True)
class Open:
    date: date
    location: Location
    account: str
    currencies: tuple[str, ...] = ()
    booking: BookingMethod | None = None
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Close:
    date: date
    location: Location
    account: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Commodity:
    date: date
    location: Location
    currency: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Transaction:
    date: date
    location: Location
    flag: str
    narration: str
    payee: str | None = None
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    postings: tuple[Posting, ...] = ()
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Balance:
    date: date
    location: Location
    account: str
    amount: Amount
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Pad:
    date: date
    location: Location
    account: str
    source_account: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Price:
    """One unit of ``currency`` is worth ``amount`` on ``date``."""

    date: date
    location: Location
    currency: str
    amount: Amount
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Event:
    date: date
    location: Location
    type: str
    description: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Note:
    date: date
    location: Location
    account: str
    comment: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Document:
    date: date
    location: Location
    account: str
    filename: str
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Custom:
    date: date
    location: Location
    type: str
    values: tuple[Any, ...] = ()
    meta: Meta = field(default_factory=dict)


@dataclass(frozen=True)
class Include:
    location: Location
    filename: str
    date: None = None


@dataclass(frozen=True)
class Option:
    location: Location
    name: str
    value: str
    date: None = None


type Directive = (
    Open
    | Close
    | Commodity
    | Transaction
    | Balance
    | Pad
    | Price
    | Event
    | Note
    | Document
    | Custom
    | Include
    | Option
)

type DatedDirective = (
    Open
    | Close
    | Commodity
    | Transaction
    | Balance
    | Pad
    | Price
    | Event
    | Note
    | Document
    | Custom
)
