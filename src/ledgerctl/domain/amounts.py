"""Amounts, lot costs, cost specifications and tolerance inference.

All arithmetic uses :class:`decimal.Decimal`; binary floats never enter the
pipeline. Tolerances are exact decimal thresholds.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

ZERO = Decimal(0)
_HALF = Decimal("0.5")


@dataclass(frozen=True)
class Amount:
    """A signed quantity of one currency."""

    number: Decimal
    currency: str

    def __str__(self) -> str:
        return f"{self.number} {self.currency}"

    def __neg__(self) -> Amount:
        return Amount(-self.number, self.currency)


@dataclass(frozen=True)
class Cost:
    """The resolved cost basis of a lot — part of the lot's identity."""

    number: Decimal
    currency: str
    date: date
    label: str | None = None

    def __str__(self) -> str:
        parts = [f"{self.number} {self.currency}", self.date.isoformat()]
        if self.label:
            parts.append(f'"{self.label}"')
        return "{" + ", ".join(parts) + "}"


@dataclass(frozen=True)
class CostSpec:
    """A cost as written on a posting; any component may be omitted.

    ``number_per`` comes from ``{100 USD}``, ``number_total`` from
    ``{{1000 USD}}``. An empty ``{}`` leaves everything ``None``.
    """

    number_per: Decimal | None = None
    number_total: Decimal | None = None
    currency: str | None = None
    date: date | None = None
    label: str | None = None

    def unit_number(self, units: Decimal) -> Decimal | None:
        """Per-unit cost for a posting of *units*, or None when unspecified."""
        if self.number_per is not None:
            return self.number_per
        if self.number_total is not None and units != ZERO:
            return self.number_total / abs(units)
        return None

    def matches(self, cost: Cost, units: Decimal) -> bool:
        """Whether an existing lot cost satisfies every component given here."""
        per = self.unit_number(units)
        if per is not None and per != cost.number:
            return False
        if self.currency is not None and self.currency != cost.currency:
            return False
        if self.date is not None and self.date != cost.date:
            return False
        return self.label is None or self.label == cost.label

    def __str__(self) -> str:
        parts: list[str] = []
        if self.number_per is not None:
            parts.append(f"{self.number_per} {self.currency or ''}".strip())
        elif self.number_total is not None:
            parts.append(f"# {self.number_total} {self.currency or ''}".strip())
        elif self.currency:
            parts.append(self.currency)
        if self.date is not None:
            parts.append(self.date.isoformat())
        if self.label:
            parts.append(f'"{self.label}"')
        return "{" + ", ".join(parts) + "}"


# ---------------------------------------------------------------------------
# Tolerance
# ---------------------------------------------------------------------------


def quantum_exponent(number: Decimal) -> int:
    """Exponent of the last written digit: ``1.25`` -> -2, ``10`` -> 0."""
    exponent = number.as_tuple().exponent
    return exponent if isinstance(exponent, int) else 0


def tolerance_from_exponent(exponent: int) -> Decimal:
    """Half of the smallest written unit; integers balance exactly.

    ``-2`` -> ``0.005``; any exponent >= 0 -> ``0``.
    """
    if exponent >= 0:
        return ZERO
    return _HALF.scaleb(exponent)


def infer_tolerance(numbers: Iterable[Decimal]) -> Decimal | None:
    """Tolerance implied by the finest precision among *numbers*."""
    exponents = [quantum_exponent(n) for n in numbers]
    if not exponents:
        return None
    return tolerance_from_exponent(min(exponents))


def within(residual: Decimal, tolerance: Decimal) -> bool:
    """True when *residual* does not exceed *tolerance* in magnitude."""
    return abs(residual) <= tolerance


def parse_decimal(text: str) -> Decimal:
    """Parse a decimal literal, raising ``ValueError`` on malformed input."""
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        msg = f"Invalid number: {text!r}"
        raise ValueError(msg) from exc
    if not value.is_finite():
        msg = f"Invalid number: {text!r}"
        raise ValueError(msg)
    return value
