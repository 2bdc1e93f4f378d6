"""Tests for account names and the account registry."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ledgerctl.domain.accounts import AccountRegistry, ancestors, is_descendant, parent_of
from ledgerctl.domain.amounts import Amount
from ledgerctl.domain.directives import Close, Open, Price
from ledgerctl.domain.tokens import Location
from ledgerctl.domain.types import ErrorKind

LOC = Location("main.ledger", 1)


def _open(account: str, on: date, *currencies: str) -> Open:
    return Open(on, LOC, account, tuple(currencies))


class TestNames:
    def test_parent_of(self) -> None:
        assert parent_of("Assets:Bank:Checking") == "Assets:Bank"
        assert parent_of("Assets") is None

    def test_ancestors(self) -> None:
        assert ancestors("Assets:Bank:Checking") == [
            "Assets:Bank:Checking",
            "Assets:Bank",
            "Assets",
        ]

    def test_is_descendant(self) -> None:
        assert is_descendant("Assets:Bank", "Assets")
        assert is_descendant("Assets", "Assets")
        assert not is_descendant("AssetsX:Bank", "Assets")


class TestScan:
    def test_earliest_open_per_account(self) -> None:
        declared = AccountRegistry.scan(
            [
                _open("Assets:Cash", date(2024, 3, 1)),
                Price(date(2024, 1, 1), LOC, "EUR", Amount(Decimal(1), "USD")),
                _open("Assets:Cash", date(2024, 1, 1)),
            ]
        )
        assert declared == {"Assets:Cash": date(2024, 1, 1)}


class TestWindow:
    def test_open_then_active(self) -> None:
        registry = AccountRegistry()
        assert registry.open(_open("Assets:Cash", date(2024, 1, 1))) is None
        assert "Assets:Cash" in registry
        assert registry.check_active("Assets:Cash", date(2024, 1, 1), LOC) is None

    def test_duplicate_open(self) -> None:
        registry = AccountRegistry()
        registry.open(_open("Assets:Cash", date(2024, 1, 1)))
        error = registry.open(_open("Assets:Cash", date(2024, 2, 1)))
        assert error is not None
        assert error.kind is ErrorKind.DUPLICATE_OPEN

    def test_close_window(self) -> None:
        registry = AccountRegistry()
        registry.open(_open("Assets:Cash", date(2024, 1, 1)))
        assert registry.close(Close(date(2024, 6, 30), LOC, "Assets:Cash")) is None
        assert registry.check_active("Assets:Cash", date(2024, 6, 30), LOC) is None
        error = registry.check_active("Assets:Cash", date(2024, 7, 1), LOC)
        assert error is not None
        assert error.kind is ErrorKind.INACTIVE_ACCOUNT
        assert "closed as of 2024-07-01" in error.message

    def test_duplicate_close(self) -> None:
        registry = AccountRegistry()
        registry.open(_open("Assets:Cash", date(2024, 1, 1)))
        registry.close(Close(date(2024, 6, 30), LOC, "Assets:Cash"))
        error = registry.close(Close(date(2024, 7, 30), LOC, "Assets:Cash"))
        assert error is not None
        assert error.kind is ErrorKind.DUPLICATE_CLOSE

    def test_close_unknown(self) -> None:
        error = AccountRegistry().close(Close(date(2024, 6, 30), LOC, "Assets:Ghost"))
        assert error is not None
        assert error.kind is ErrorKind.UNKNOWN_ACCOUNT

    def test_unknown_vs_not_yet_open(self) -> None:
        registry = AccountRegistry({"Assets:Later": date(2024, 5, 1)})
        early = registry.check_active("Assets:Later", date(2024, 1, 1), LOC)
        assert early is not None
        assert early.kind is ErrorKind.INACTIVE_ACCOUNT
        assert "unopened as of 2024-01-01" in early.message

        never = registry.check_active("Assets:Never", date(2024, 1, 1), LOC)
        assert never is not None
        assert never.kind is ErrorKind.UNKNOWN_ACCOUNT
        assert never.message == "Reference to unknown account Assets:Never"

    def test_currency_constraint(self) -> None:
        registry = AccountRegistry()
        registry.open(_open("Assets:Cash", date(2024, 1, 1), "USD", "EUR"))
        assert registry.check_currency("Assets:Cash", "USD", LOC) is None
        error = registry.check_currency("Assets:Cash", "GBP", LOC)
        assert error is not None
        assert error.kind is ErrorKind.CURRENCY_CONSTRAINT
        assert "allowed: EUR, USD" in error.message

    def test_snapshot_sorted(self) -> None:
        registry = AccountRegistry()
        registry.open(_open("Liabilities:Card", date(2024, 1, 1)))
        registry.open(_open("Assets:Cash", date(2024, 1, 1)))
        assert list(registry.snapshot()) == ["Assets:Cash", "Liabilities:Card"]
        info = registry.get("Assets:Cash")
        assert info is not None
        assert info.is_open_on(date(2024, 1, 1))
        assert not info.is_open_on(date(2023, 12, 31))
        assert info.allows("ANY")
