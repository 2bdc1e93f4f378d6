"""Balance & pad checker.

A ``balance`` directive compares the units an account holds in one
currency, summed across all of its lots and ignoring cost, against the
asserted amount.

A ``pad`` stays active for its account until a later ``balance`` of that
account consumes it for the asserted currency. When the balance is off by
more than tolerance, a padding transaction dated on the pad moves exactly
the difference from the pad's source account. A pad that no balance ever
consumes, because it is replaced by another pad, the account is closed,
or the ledger ends, is reported as unused.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from ledgerctl.domain.accounts import AccountRegistry
from ledgerctl.domain.amounts import ZERO, Amount, quantum_exponent, tolerance_from_exponent, within
from ledgerctl.domain.directives import Balance, Close, Pad, Posting, Transaction
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.inventory import Inventory
from ledgerctl.domain.types import FLAG_PADDING, ErrorKind
from ledgerctl.services.booking import TransactionBooker

logger = logging.getLogger(__name__)


@dataclass
class _ActivePad:
    pad: Pad
    consumed: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class BalanceOutcome:
    """Padding transactions created for one balance, and its errors."""

    padding: list[Transaction]
    errors: list[LedgerError]


class BalanceChecker:
    """Checks balances and resolves pads against the live inventories."""

    def __init__(
        self,
        inventories: dict[str, Inventory],
        registry: AccountRegistry,
        booker: TransactionBooker,
        *,
        tolerance_override: Decimal | None = None,
        commodity_tolerances: Mapping[str, Decimal] | None = None,
        default_tolerance: Decimal | None = None,
    ) -> None:
        self._inventories = inventories
        self._registry = registry
        self._booker = booker
        self._override = tolerance_override
        self._commodity_tolerances = commodity_tolerances or {}
        self._default_tolerance = default_tolerance
        self._pads: dict[str, _ActivePad] = {}

    def tolerance(self, amount: Amount) -> Decimal:
        if self._override is not None:
            return self._override
        if amount.currency in self._commodity_tolerances:
            return self._commodity_tolerances[amount.currency]
        if self._default_tolerance is not None:
            return self._default_tolerance
        return tolerance_from_exponent(quantum_exponent(amount.number))

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def pad(self, directive: Pad) -> list[LedgerError]:
        errors = [
            error
            for account in (directive.account, directive.source_account)
            if (error := self._registry.check_active(account, directive.date, directive.location))
        ]
        if errors:
            return errors
        previous = self._pads.get(directive.account)
        if previous is not None and not previous.consumed:
            errors.append(_unused(previous.pad))
        self._pads[directive.account] = _ActivePad(directive)
        return errors

    def balance(self, directive: Balance) -> BalanceOutcome:
        account, expected = directive.account, directive.amount
        error = self._registry.check_active(account, directive.date, directive.location)
        if error is None:
            error = self._registry.check_currency(account, expected.currency, directive.location)
        if error is not None:
            return BalanceOutcome([], [error])

        inventory = self._inventories.get(account)
        actual = inventory.unit(expected.currency) if inventory is not None else ZERO
        tolerance = self.tolerance(expected)
        padding: list[Transaction] = []

        active = self._pads.get(account)
        if active is not None and expected.currency not in active.consumed:
            active.consumed.add(expected.currency)
            difference = expected.number - actual
            if not within(difference, tolerance):
                outcome = self._booker.book(_padding(active.pad, expected, difference))
                if outcome.transaction is None:
                    return BalanceOutcome([], outcome.errors)
                padding.append(outcome.transaction)
                actual += difference
                logger.debug("Padded %s by %s %s", account, difference, expected.currency)

        if within(expected.number - actual, tolerance):
            return BalanceOutcome(padding, [])
        difference = actual - expected.number
        return BalanceOutcome(
            padding,
            [
                LedgerError(
                    kind=ErrorKind.BALANCE_ASSERTION,
                    message=(
                        f"Balance failed for {account}: expected {expected}, "
                        f"actual {actual} {expected.currency} "
                        f"({difference:+} {expected.currency})"
                    ),
                    location=directive.location,
                    detail={
                        "account": account,
                        "expected": expected,
                        "actual": Amount(actual, expected.currency),
                        "difference": Amount(difference, expected.currency),
                    },
                )
            ],
        )

    def close(self, directive: Close) -> list[LedgerError]:
        active = self._pads.pop(directive.account, None)
        if active is not None and not active.consumed:
            return [_unused(active.pad)]
        return []

    def finish(self) -> list[LedgerError]:
        """Report pads still unused at the end of the ledger."""
        errors = [_unused(active.pad) for active in self._pads.values() if not active.consumed]
        self._pads.clear()
        return errors


def _padding(pad: Pad, expected: Amount, difference: Decimal) -> Transaction:
    return Transaction(
        date=pad.date,
        location=pad.location,
        flag=FLAG_PADDING,
        narration=(
            f"(Padding inserted for Balance of {expected} "
            f"for difference {difference} {expected.currency})"
        ),
        postings=(
            Posting(pad.account, difference, expected.currency, pad.location),
            Posting(pad.source_account, -difference, expected.currency, pad.location),
        ),
    )


def _unused(pad: Pad) -> LedgerError:
    return LedgerError(
        kind=ErrorKind.UNUSED_PAD,
        message=f"Unused pad of {pad.account} from {pad.source_account}",
        location=pad.location,
        detail={"account": pad.account, "source_account": pad.source_account},
    )
