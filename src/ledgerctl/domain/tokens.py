"""Token and source-location value types produced by the lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True, order=True)
class Location:
    """A position in a source file. Lines and columns are 1-based."""

    file: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class TokenKind(StrEnum):
    """Lexical categories of the ledger grammar."""

    DATE = "date"
    NUMBER = "number"
    CURRENCY = "currency"
    ACCOUNT = "account"
    STRING = "string"
    KEYWORD = "keyword"
    KEY = "key"  # metadata key, e.g. ``filename:``
    FLAG = "flag"
    TAG = "tag"
    LINK = "link"
    LBRACE = "{"
    RBRACE = "}"
    LLBRACE = "{{"
    RRBRACE = "}}"
    AT = "@"
    ATAT = "@@"
    COMMA = ","
    INDENT = "indent"
    NEWLINE = "newline"
    WORD = "word"  # bare word that is neither keyword nor currency
    OTHER = "other"  # any unrecognised character
    EOF = "eof"


KEYWORDS: frozenset[str] = frozenset(
    {
        "open",
        "close",
        "balance",
        "pad",
        "price",
        "commodity",
        "event",
        "note",
        "document",
        "custom",
        "include",
        "option",
        "pushtag",
        "poptag",
        "txn",
    }
)


@dataclass(frozen=True)
class Token:
    """One lexeme.

    ``text`` is the raw lexeme, except for string tokens which carry their
    unescaped contents, tags/links which drop the leading sigil, and metadata
    keys which drop the trailing colon.
    """

    kind: TokenKind
    text: str
    location: Location

    def describe(self) -> str:
        """Human-readable form for diagnostics."""
        if self.kind in (TokenKind.NEWLINE, TokenKind.EOF, TokenKind.INDENT):
            return "end of line" if self.kind is TokenKind.NEWLINE else str(self.kind)
        return f"{self.kind} {self.text!r}"
