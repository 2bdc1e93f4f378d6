"""Tests for balance assertions and pad resolution."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ledgerctl.domain.amounts import Amount
from ledgerctl.domain.directives import Balance, Pad, Transaction
from ledgerctl.domain.types import FLAG_PADDING, ErrorKind
from tests.conftest import kinds, load

D = Decimal

HEADER = """\
2024-01-01 open Assets:Cash USD
2024-01-01 open Assets:Wallet
2024-01-01 open Equity:Opening
2024-01-01 open Income:Salary

2024-01-02 * "Salary"
  Assets:Cash   10.00 USD
  Income:Salary
"""


def _padding(transactions: list[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.flag == FLAG_PADDING]


class TestBalance:
    def test_passing_balance(self) -> None:
        _, errors = load(HEADER + "2024-01-03 balance Assets:Cash 10.00 USD\n")
        assert errors == []

    def test_failing_balance_then_continues(self) -> None:
        _, errors = load(
            HEADER
            + "2024-01-03 balance Assets:Cash 12.00 USD\n"
            + "2024-01-04 balance Assets:Cash 10.00 USD\n"
        )
        assert kinds(errors) == [ErrorKind.BALANCE_ASSERTION]
        detail = errors[0].detail
        assert detail["expected"] == Amount(D("12.00"), "USD")
        assert detail["actual"] == Amount(D("10.00"), "USD")
        assert detail["difference"] == Amount(D("-2.00"), "USD")
        assert "expected 12.00 USD" in errors[0].message
        assert errors[0].location is not None
        assert errors[0].location.line == 9

    def test_within_tolerance_of_asserted_precision(self) -> None:
        text = HEADER.replace("10.00 USD", "10.004 USD")
        _, errors = load(text + "2024-01-03 balance Assets:Cash 10.00 USD\n")
        assert errors == []

    def test_default_tolerance_option(self) -> None:
        text = 'option "default_tolerance" "0.5"\n' + HEADER
        _, errors = load(text + "2024-01-03 balance Assets:Cash 10.40 USD\n")
        assert errors == []
        _, errors = load(text + "2024-01-03 balance Assets:Cash 10.60 USD\n")
        assert kinds(errors) == [ErrorKind.BALANCE_ASSERTION]

    def test_commodity_tolerance_beats_default_option(self) -> None:
        text = (
            'option "default_tolerance" "0.5"\n'
            + HEADER
            + "2024-01-01 commodity USD\n  tolerance: 0.01\n"
            + "2024-01-03 balance Assets:Cash 10.40 USD\n"
        )
        _, errors = load(text)
        assert kinds(errors) == [ErrorKind.BALANCE_ASSERTION]

    def test_balance_sums_lots_regardless_of_cost(self) -> None:
        _, errors = load(
            HEADER
            + """
2024-01-03 * "Buy"
  Assets:Wallet   2 HOOL {3.00 USD}
  Assets:Wallet   1 HOOL {4.00 USD}
  Assets:Cash

2024-01-04 balance Assets:Wallet 3 HOOL
"""
        )
        assert errors == []

    def test_balance_counts_only_the_account_itself(self) -> None:
        _, errors = load(
            """\
            2024-01-01 open Assets:Bank
            2024-01-01 open Assets:Bank:Checking
            2024-01-01 open Equity:Opening

            2024-01-02 * "Deposit"
              Assets:Bank:Checking   10 USD
              Equity:Opening

            2024-01-03 balance Assets:Bank 0 USD
            """
        )
        assert errors == []

    def test_unknown_account(self) -> None:
        _, errors = load(HEADER + "2024-01-03 balance Assets:Ghost 1 USD\n")
        assert kinds(errors) == [ErrorKind.UNKNOWN_ACCOUNT]

    def test_disallowed_currency(self) -> None:
        _, errors = load(HEADER + "2024-01-03 balance Assets:Cash 1 EUR\n")
        assert kinds(errors) == [ErrorKind.CURRENCY_CONSTRAINT]


class TestPad:
    def test_pad_inserts_exactly_one_transaction(self) -> None:
        ledger, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 balance Assets:Cash 15.00 USD\n"
        )
        assert errors == []
        (padding,) = _padding(ledger.transactions())
        assert padding.date == date(2024, 1, 3)
        assert [(p.account, p.number, p.currency) for p in padding.postings] == [
            ("Assets:Cash", D("5.00"), "USD"),
            ("Equity:Opening", D("-5.00"), "USD"),
        ]
        assert ledger.units("Assets:Cash") == {"USD": D("15.00")}
        assert ledger.units("Equity:Opening") == {"USD": D("-5.00")}

    def test_padding_counts_from_pad_date(self) -> None:
        ledger, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-04 * \"Refund\"\n  Assets:Cash  1.00 USD\n  Income:Salary\n"
            + "2024-01-10 balance Assets:Cash 16.00 USD\n"
        )
        assert errors == []
        assert ledger.units("Assets:Cash", as_of=date(2024, 1, 2)) == {"USD": D("10.00")}
        assert ledger.units("Assets:Cash", as_of=date(2024, 1, 3)) == {"USD": D("15.00")}
        assert ledger.units("Assets:Cash", as_of=date(2024, 1, 5)) == {"USD": D("16.00")}
        assert ledger.units("Assets:Cash") == {"USD": D("16.00")}
        assert ledger.units("Equity:Opening", as_of=date(2024, 1, 2)) == {}
        assert ledger.units("Equity:Opening", as_of=date(2024, 1, 5)) == {"USD": D("-5.00")}

    def test_padding_follows_its_pad(self) -> None:
        ledger, _ = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-04 * \"Refund\"\n  Assets:Cash  1.00 USD\n  Income:Salary\n"
            + "2024-01-05 balance Assets:Cash 15.00 USD\n"
        )
        kinds_in_order = [type(entry) for entry in ledger.entries[-4:]]
        assert kinds_in_order == [Pad, Transaction, Transaction, Balance]
        padding = ledger.entries[-3]
        assert isinstance(padding, Transaction) and padding.flag == FLAG_PADDING

    def test_balance_already_satisfied_consumes_pad(self) -> None:
        ledger, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 balance Assets:Cash 10.00 USD\n"
        )
        assert errors == []
        assert _padding(ledger.transactions()) == []

    def test_one_padding_per_currency(self) -> None:
        ledger, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Wallet Equity:Opening\n"
            + "2024-01-05 balance Assets:Wallet 5 USD\n"
            + "2024-01-05 balance Assets:Wallet 7 EUR\n"
        )
        assert errors == []
        assert len(_padding(ledger.transactions())) == 2
        assert ledger.units("Assets:Wallet") == {"USD": D("5"), "EUR": D("7")}

    def test_pad_used_once_per_currency(self) -> None:
        ledger, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 balance Assets:Cash 15.00 USD\n"
            + "2024-01-06 balance Assets:Cash 20.00 USD\n"
        )
        assert kinds(errors) == [ErrorKind.BALANCE_ASSERTION]
        assert len(_padding(ledger.transactions())) == 1

    def test_unused_pad_at_end(self) -> None:
        _, errors = load(HEADER + "2024-01-03 pad Assets:Cash Equity:Opening\n")
        assert kinds(errors) == [ErrorKind.UNUSED_PAD]

    def test_pad_replaced_before_use(self) -> None:
        _, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-04 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 balance Assets:Cash 15.00 USD\n"
        )
        assert kinds(errors) == [ErrorKind.UNUSED_PAD]
        assert errors[0].location is not None
        assert errors[0].location.line == 9

    def test_pad_then_close(self) -> None:
        _, errors = load(
            HEADER
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 close Assets:Cash\n"
        )
        assert kinds(errors) == [ErrorKind.UNUSED_PAD]

    def test_source_currency_restriction_enforced(self) -> None:
        ledger, errors = load(
            HEADER.replace("open Equity:Opening", "open Equity:Opening EUR")
            + "2024-01-03 pad Assets:Cash Equity:Opening\n"
            + "2024-01-05 balance Assets:Cash 15.00 USD\n"
        )
        assert kinds(errors) == [ErrorKind.CURRENCY_CONSTRAINT]
        assert _padding(ledger.transactions()) == []

    def test_pad_with_unknown_source(self) -> None:
        _, errors = load(HEADER + "2024-01-03 pad Assets:Cash Equity:Ghost\n")
        assert kinds(errors) == [ErrorKind.UNKNOWN_ACCOUNT]
