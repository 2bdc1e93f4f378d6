"""Account registry — validity windows, currency constraints, booking methods.

The registry is built during replay. ``open`` and ``close`` only move an
account's validity window; the account's identity is its name.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date

from ledgerctl.domain.directives import Close, Directive, Meta, Open
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.tokens import Location
from ledgerctl.domain.types import BookingMethod, ErrorKind


def parent_of(account: str) -> str | None:
    """``Assets:Bank:Checking`` -> ``Assets:Bank``; a root has no parent."""
    head, sep, _ = account.rpartition(":")
    return head if sep else None


def ancestors(account: str) -> list[str]:
    """The account itself followed by each parent up to the root."""
    chain = [account]
    while (parent := parent_of(chain[-1])) is not None:
        chain.append(parent)
    return chain


def is_descendant(account: str, root: str) -> bool:
    return account == root or account.startswith(root + ":")


@dataclass(frozen=True)
class AccountInfo:
    """Validity window and constraints of one account."""

    name: str
    open_date: date
    open_location: Location
    close_date: date | None = None
    close_location: Location | None = None
    currencies: frozenset[str] = frozenset()
    booking: BookingMethod | None = None
    meta: Meta = field(default_factory=dict)

    def is_open_on(self, on: date) -> bool:
        if on < self.open_date:
            return False
        return self.close_date is None or on <= self.close_date

    def allows(self, currency: str) -> bool:
        return not self.currencies or currency in self.currencies


class AccountRegistry:
    """Mutable account table used while replaying the directive stream.

    *declared* maps each account to the date of its first ``open`` anywhere in
    the stream, which distinguishes "not yet opened" from "never opened".
    """

    def __init__(self, declared: dict[str, date] | None = None) -> None:
        self._declared = dict(declared or {})
        self._accounts: dict[str, AccountInfo] = {}

    @staticmethod
    def scan(directives: Iterable[Directive]) -> dict[str, date]:
        """Collect the earliest ``open`` date per account from *directives*."""
        declared: dict[str, date] = {}
        for directive in directives:
            if isinstance(directive, Open):
                known = declared.get(directive.account)
                if known is None or directive.date < known:
                    declared[directive.account] = directive.date
        return declared

    def get(self, name: str) -> AccountInfo | None:
        return self._accounts.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._accounts

    def snapshot(self) -> dict[str, AccountInfo]:
        return dict(sorted(self._accounts.items()))

    # ------------------------------------------------------------------
    # Window changes
    # ------------------------------------------------------------------

    def open(self, directive: Open) -> LedgerError | None:
        existing = self._accounts.get(directive.account)
        if existing is not None:
            return LedgerError(
                kind=ErrorKind.DUPLICATE_OPEN,
                message=(
                    f"Account {directive.account} is already open "
                    f"(opened at {existing.open_location})"
                ),
                location=directive.location,
            )
        self._accounts[directive.account] = AccountInfo(
            name=directive.account,
            open_date=directive.date,
            open_location=directive.location,
            currencies=frozenset(directive.currencies),
            booking=directive.booking,
            meta=directive.meta,
        )
        return None

    def close(self, directive: Close) -> LedgerError | None:
        existing = self._accounts.get(directive.account)
        if existing is None:
            return self._missing(directive.account, directive.date, directive.location)
        if existing.close_date is not None:
            return LedgerError(
                kind=ErrorKind.DUPLICATE_CLOSE,
                message=(
                    f"Account {directive.account} is already closed "
                    f"(closed at {existing.close_location})"
                ),
                location=directive.location,
            )
        self._accounts[directive.account] = replace(
            existing, close_date=directive.date, close_location=directive.location
        )
        return None

    # ------------------------------------------------------------------
    # Reference checks
    # ------------------------------------------------------------------

    def check_active(self, account: str, on: date, location: Location) -> LedgerError | None:
        """Error when *account* is referenced outside its validity window."""
        info = self._accounts.get(account)
        if info is None:
            return self._missing(account, on, location)
        if info.close_date is not None and on > info.close_date:
            return LedgerError(
                kind=ErrorKind.INACTIVE_ACCOUNT,
                message=f"Account {account} is closed as of {on.isoformat()}",
                location=location,
                detail={"account": account, "close_date": info.close_date.isoformat()},
            )
        return None

    def check_currency(self, account: str, currency: str, location: Location) -> LedgerError | None:
        info = self._accounts.get(account)
        if info is None or info.allows(currency):
            return None
        allowed = ", ".join(sorted(info.currencies))
        return LedgerError(
            kind=ErrorKind.CURRENCY_CONSTRAINT,
            message=f"Currency {currency} is not allowed in {account} (allowed: {allowed})",
            location=location,
            detail={"account": account, "currency": currency},
        )

    def _missing(self, account: str, on: date, location: Location) -> LedgerError:
        opened = self._declared.get(account)
        if opened is not None and opened > on:
            return LedgerError(
                kind=ErrorKind.INACTIVE_ACCOUNT,
                message=f"Account {account} is unopened as of {on.isoformat()}",
                location=location,
                detail={"account": account, "open_date": opened.isoformat()},
            )
        return LedgerError(
            kind=ErrorKind.UNKNOWN_ACCOUNT,
            message=f"Reference to unknown account {account}",
            location=location,
            detail={"account": account},
        )
