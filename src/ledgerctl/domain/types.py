"""Classification enums shared across the ledger pipeline."""

from __future__ import annotations

from enum import StrEnum


class BookingMethod(StrEnum):
    """Policy for selecting which lots a reducing posting draws from."""

    STRICT = "STRICT"
    FIFO = "FIFO"
    LIFO = "LIFO"
    AVERAGE = "AVERAGE"
    NONE = "NONE"

    @classmethod
    def _missing_(cls, value: object) -> BookingMethod | None:
        # Accept "fifo", "Fifo", etc. from TOML and open directives.
        if isinstance(value, str):
            upper = value.upper()
            for member in cls:
                if member.value == upper:
                    return member
        return None


class ErrorKind(StrEnum):
    """Category of an accumulated (non-fatal) ledger diagnostic."""

    PARSE = "parse"
    INVALID_DIRECTIVE = "invalid_directive"
    UNBALANCED = "unbalanced"
    AMBIGUOUS_INTERPOLATION = "ambiguous_interpolation"
    INSUFFICIENT_LOT = "insufficient_lot"
    NO_MATCHING_LOT = "no_matching_lot"
    AMBIGUOUS_LOT = "ambiguous_lot"
    BALANCE_ASSERTION = "balance_assertion"
    UNKNOWN_ACCOUNT = "unknown_account"
    INACTIVE_ACCOUNT = "inactive_account"
    DUPLICATE_OPEN = "duplicate_open"
    DUPLICATE_CLOSE = "duplicate_close"
    CURRENCY_CONSTRAINT = "currency_constraint"
    UNUSED_PAD = "unused_pad"
    NO_PRICE = "no_price"


# Transaction flags as written in source text.
FLAG_CLEARED = "*"
# Flag carried by transactions synthesized from pad directives.
FLAG_PADDING = "P"
