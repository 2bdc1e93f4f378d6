"""Price database — dated exchange rates with inverse and multi-hop lookup.

Rates are stored per ordered ``(base, quote)`` pair as parallel sorted lists
of dates and rates. A lookup on date *d* uses the latest point on or before
*d*; when two points share a date, the one declared later wins.

Conversions that have no direct or inverse pair are resolved through a path
in an undirected graph of currencies (networkx), walking pairs that have a
point on or before the requested date.
"""

from __future__ import annotations

import bisect
import logging
from datetime import date
from decimal import Decimal

import networkx as nx

from ledgerctl.domain.amounts import ZERO

logger = logging.getLogger(__name__)

_ONE = Decimal(1)


class PriceNotFoundError(LookupError):
    """No rate connects two currencies on or before the requested date."""

    def __init__(self, base: str, quote: str, on: date) -> None:
        super().__init__(f"No price for {base} in {quote} on or before {on.isoformat()}")
        self.base = base
        self.quote = quote
        self.on = on


class PriceDatabase:
    def __init__(self) -> None:
        self._dates: dict[tuple[str, str], list[date]] = {}
        self._rates: dict[tuple[str, str], list[Decimal]] = {}

    def add(self, on: date, base: str, quote: str, rate: Decimal) -> None:
        """Record that one *base* is worth *rate* *quote* on *on*."""
        if base == quote:
            return
        key = (base, quote)
        dates = self._dates.setdefault(key, [])
        rates = self._rates.setdefault(key, [])
        index = bisect.bisect_right(dates, on)
        dates.insert(index, on)
        rates.insert(index, rate)

    def pairs(self) -> list[tuple[str, str]]:
        return sorted(self._dates)

    def currencies(self) -> set[str]:
        return {c for pair in self._dates for c in pair}

    def history(self, base: str, quote: str) -> list[tuple[date, Decimal]]:
        """Every recorded point for the ordered pair, oldest first."""
        key = (base, quote)
        return list(zip(self._dates.get(key, []), self._rates.get(key, []), strict=True))

    def __len__(self) -> int:
        return sum(len(dates) for dates in self._dates.values())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _latest(self, base: str, quote: str, on: date) -> tuple[date, Decimal] | None:
        dates = self._dates.get((base, quote))
        if not dates:
            return None
        index = bisect.bisect_right(dates, on)
        if index == 0:
            return None
        return dates[index - 1], self._rates[(base, quote)][index - 1]

    def _direct(self, base: str, quote: str, on: date) -> tuple[date, Decimal] | None:
        """Latest rate from the pair or its inverse, whichever is more recent."""
        direct = self._latest(base, quote, on)
        inverse = self._latest(quote, base, on)
        if inverse is not None and inverse[1] == ZERO:
            inverse = None
        if direct is None and inverse is None:
            return None
        if inverse is None or (direct is not None and direct[0] >= inverse[0]):
            return direct
        return inverse[0], _ONE / inverse[1]

    def rate(self, base: str, quote: str, on: date) -> Decimal:
        """Value of one *base* in *quote* on *on*.

        Raises :class:`PriceNotFoundError` when no path of known rates exists.
        """
        if base == quote:
            return _ONE
        found = self._direct(base, quote, on)
        if found is not None:
            return found[1]

        path = self._path(base, quote, on)
        if path is None:
            raise PriceNotFoundError(base, quote, on)
        result = _ONE
        for left, right in zip(path, path[1:], strict=False):
            hop = self._direct(left, right, on)
            if hop is None:  # pragma: no cover - graph edges always have a point
                raise PriceNotFoundError(base, quote, on)
            result *= hop[1]
        logger.debug("Price %s->%s on %s via %s", base, quote, on, "->".join(path))
        return result

    def _path(self, base: str, quote: str, on: date) -> list[str] | None:
        graph: nx.Graph = nx.Graph()
        for left, right in sorted(self._dates):
            if self._latest(left, right, on) is not None:
                graph.add_edge(left, right)
        if base not in graph or quote not in graph:
            return None
        try:
            return nx.shortest_path(graph, base, quote)
        except nx.NetworkXNoPath:
            return None

    def lookup(self, base: str, quote: str, on: date) -> Decimal | None:
        """Like :meth:`rate` but returns None instead of raising."""
        try:
            return self.rate(base, quote, on)
        except PriceNotFoundError:
            return None
