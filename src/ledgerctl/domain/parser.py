"""Parser — LL(1) recursive descent from tokens to directives.

Each top-level statement starts with either a date or an undated keyword
(``include``, ``option``, ``pushtag``, ``poptag``); after a date, the next
token (a flag, ``txn``, or a directive keyword) selects the production.
Indented lines below a statement are its metadata and, for transactions,
its postings; the statement ends when a line returns to column zero.

Error recovery is panic mode per statement: a malformed statement is
recorded as a ``parse`` :class:`LedgerError`, tokens are skipped up to the
next line starting at column zero, and parsing resumes there.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar

from ledgerctl.domain.amounts import Amount, CostSpec, parse_decimal
from ledgerctl.domain.directives import (
    Balance,
    Close,
    Commodity,
    Custom,
    Directive,
    Document,
    Event,
    Include,
    Meta,
    MetaValue,
    Note,
    Open,
    Option,
    Pad,
    Posting,
    Price,
    Transaction,
)
from ledgerctl.domain.errors import LedgerError
from ledgerctl.domain.lexer import tokenize
from ledgerctl.domain.tokens import Location, Token, TokenKind
from ledgerctl.domain.types import FLAG_CLEARED, BookingMethod, ErrorKind

_BOOLEANS = {"TRUE": True, "FALSE": False}


class _SyntaxFault(Exception):
    """Raised inside a production; caught by the statement loop."""

    def __init__(self, token: Token, message: str) -> None:
        super().__init__(message)
        self.location = token.location
        self.message = message


@dataclass(frozen=True)
class ParsedFile:
    """Directives and parse errors of one source file, in textual order."""

    file: str
    directives: tuple[Directive, ...]
    errors: tuple[LedgerError, ...]


def parse(tokens: Iterable[Token], file: str = "<string>") -> ParsedFile:
    """Parse a token stream into directives, collecting parse errors."""
    return Parser(tokens, file).parse()


def parse_text(text: str, file: str = "<string>") -> ParsedFile:
    """Tokenize and parse *text*. Lexical failures propagate as ``LexError``."""
    return parse(tokenize(text, file), file)


class Parser:
    """Single-use recursive-descent parser over one file's tokens."""

    def __init__(self, tokens: Iterable[Token], file: str) -> None:
        self._stream = iter(tokens)
        self._file = file
        self._tok: Token = next(self._stream, Token(TokenKind.EOF, "", Location(file, 1, 1)))
        self._pushed_tags: list[str] = []
        self._directives: list[Directive] = []
        self._errors: list[LedgerError] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self) -> ParsedFile:
        while not self._at(TokenKind.EOF):
            if self._at(TokenKind.NEWLINE):
                self._advance()
                continue
            try:
                directive = self._statement()
            except _SyntaxFault as fault:
                self._errors.append(
                    LedgerError(
                        kind=ErrorKind.PARSE, message=fault.message, location=fault.location
                    )
                )
                self._synchronize()
                continue
            if directive is not None:
                self._directives.append(directive)

        for tag in self._pushed_tags:
            self._errors.append(
                LedgerError(
                    kind=ErrorKind.PARSE,
                    message=f"Unbalanced pushtag #{tag} at end of file",
                    location=self._tok.location,
                )
            )
        return ParsedFile(self._file, tuple(self._directives), tuple(self._errors))

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _advance(self) -> Token:
        tok = self._tok
        if tok.kind is not TokenKind.EOF:
            self._tok = next(self._stream)
        return tok

    def _at(self, *kinds: TokenKind) -> bool:
        return self._tok.kind in kinds

    def _expect(self, kind: TokenKind, what: str | None = None) -> Token:
        if self._tok.kind is not kind:
            raise _SyntaxFault(self._tok, f"Expected {what or kind}, found {self._tok.describe()}")
        return self._advance()

    def _end_line(self) -> None:
        if self._at(TokenKind.NEWLINE):
            self._advance()
        elif not self._at(TokenKind.EOF):
            raise _SyntaxFault(self._tok, f"Unexpected {self._tok.describe()} at end of line")

    def _synchronize(self) -> None:
        """Skip to the first token of the next line that starts at column zero."""
        while not self._at(TokenKind.EOF):
            tok = self._advance()
            if tok.kind is TokenKind.NEWLINE and not self._at(TokenKind.INDENT):
                return

    def _date(self, tok: Token) -> date:
        try:
            return date.fromisoformat(tok.text)
        except ValueError:
            raise _SyntaxFault(tok, f"Invalid date {tok.text!r}") from None

    def _number(self, tok: Token) -> Decimal:
        try:
            return parse_decimal(tok.text)
        except ValueError as exc:
            raise _SyntaxFault(tok, str(exc)) from None

    def _amount(self) -> Amount:
        number = self._number(self._expect(TokenKind.NUMBER, "number"))
        currency = self._expect(TokenKind.CURRENCY, "currency").text
        return Amount(number, currency)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _statement(self) -> Directive | None:
        tok = self._tok
        if tok.kind is TokenKind.DATE:
            return self._dated()
        if tok.kind is TokenKind.KEYWORD:
            handler = self._UNDATED.get(tok.text)
            if handler is None:
                raise _SyntaxFault(tok, f"Directive '{tok.text}' must be preceded by a date")
            self._advance()
            return handler(self, tok.location)
        if tok.kind is TokenKind.INDENT:
            raise _SyntaxFault(tok, "Unexpected indented line outside of a directive")
        raise _SyntaxFault(tok, f"Expected a date or directive keyword, found {tok.describe()}")

    def _dated(self) -> Directive:
        date_tok = self._advance()
        on = self._date(date_tok)
        tok = self._tok
        if tok.kind is TokenKind.FLAG or (tok.kind is TokenKind.KEYWORD and tok.text == "txn"):
            return self._transaction(on, date_tok.location)
        if tok.kind is TokenKind.KEYWORD and tok.text in self._DATED:
            self._advance()
            return self._DATED[tok.text](self, on, date_tok.location)
        raise _SyntaxFault(
            tok, f"Expected a flag or directive keyword after date, found {tok.describe()}"
        )

    # --- undated --------------------------------------------------------

    def _include(self, location: Location) -> Include:
        filename = self._expect(TokenKind.STRING, "quoted file path").text
        self._end_line()
        return Include(location=location, filename=filename)

    def _option(self, location: Location) -> Option:
        name = self._expect(TokenKind.STRING, "option name").text
        value = self._expect(TokenKind.STRING, "option value").text
        self._end_line()
        return Option(location=location, name=name, value=value)

    def _pushtag(self, location: Location) -> None:
        tag = self._expect(TokenKind.TAG, "tag").text
        self._end_line()
        self._pushed_tags.append(tag)

    def _poptag(self, location: Location) -> None:
        tok = self._expect(TokenKind.TAG, "tag")
        if tok.text not in self._pushed_tags:
            raise _SyntaxFault(tok, f"poptag #{tok.text} without a matching pushtag")
        self._end_line()
        self._pushed_tags.remove(tok.text)

    # --- dated ------------------------------------------------------------

    def _open(self, on: date, location: Location) -> Open:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        currencies: list[str] = []
        while self._at(TokenKind.CURRENCY):
            currencies.append(self._advance().text)
            if not self._at(TokenKind.COMMA):
                break
            self._advance()
        booking = None
        if self._at(TokenKind.STRING):
            tok = self._advance()
            try:
                booking = BookingMethod(tok.text)
            except ValueError:
                raise _SyntaxFault(tok, f"Unknown booking method {tok.text!r}") from None
        self._end_line()
        return Open(on, location, account, tuple(currencies), booking, self._meta_block())

    def _close(self, on: date, location: Location) -> Close:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        self._end_line()
        return Close(on, location, account, self._meta_block())

    def _commodity(self, on: date, location: Location) -> Commodity:
        currency = self._expect(TokenKind.CURRENCY, "currency").text
        self._end_line()
        return Commodity(on, location, currency, self._meta_block())

    def _balance(self, on: date, location: Location) -> Balance:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        amount = self._amount()
        self._end_line()
        return Balance(on, location, account, amount, self._meta_block())

    def _pad(self, on: date, location: Location) -> Pad:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        source = self._expect(TokenKind.ACCOUNT, "source account").text
        self._end_line()
        return Pad(on, location, account, source, self._meta_block())

    def _price(self, on: date, location: Location) -> Price:
        currency = self._expect(TokenKind.CURRENCY, "currency").text
        amount = self._amount()
        self._end_line()
        return Price(on, location, currency, amount, self._meta_block())

    def _event(self, on: date, location: Location) -> Event:
        kind = self._expect(TokenKind.STRING, "event type").text
        description = self._expect(TokenKind.STRING, "event description").text
        self._end_line()
        return Event(on, location, kind, description, self._meta_block())

    def _note(self, on: date, location: Location) -> Note:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        comment = self._expect(TokenKind.STRING, "note text").text
        self._end_line()
        return Note(on, location, account, comment, self._meta_block())

    def _document(self, on: date, location: Location) -> Document:
        account = self._expect(TokenKind.ACCOUNT, "account").text
        filename = self._expect(TokenKind.STRING, "document path").text
        self._end_line()
        return Document(on, location, account, filename, self._meta_block())

    def _custom(self, on: date, location: Location) -> Custom:
        kind = self._expect(TokenKind.STRING, "custom type").text
        values: list[Any] = []
        while not self._at(TokenKind.NEWLINE, TokenKind.EOF):
            values.append(self._value())
        self._end_line()
        return Custom(on, location, kind, tuple(values), self._meta_block())

    # --- transactions -------------------------------------------------

    def _transaction(self, on: date, location: Location) -> Transaction:
        marker = self._advance()
        flag = FLAG_CLEARED if marker.kind is TokenKind.KEYWORD else marker.text

        strings: list[str] = []
        while self._at(TokenKind.STRING):
            strings.append(self._advance().text)
        if len(strings) > 2:
            raise _SyntaxFault(marker, "Too many strings in transaction header")
        payee = strings[0] if len(strings) == 2 else None
        narration = strings[-1] if strings else ""

        tags = set(self._pushed_tags)
        links: set[str] = set()
        while self._at(TokenKind.TAG, TokenKind.LINK):
            tok = self._advance()
            (tags if tok.kind is TokenKind.TAG else links).add(tok.text)
        self._end_line()

        meta: Meta = {}
        postings: list[Posting] = []
        posting_depth = 0
        while self._at(TokenKind.INDENT):
            depth = len(self._advance().text.expandtabs(4))
            if self._at(TokenKind.KEY):
                key = self._advance().text
                value = self._value()
                self._end_line()
                # Metadata indented deeper than the last posting belongs to it.
                target = postings[-1].meta if postings and depth > posting_depth else meta
                target[key] = value
            else:
                postings.append(self._posting())
                posting_depth = depth

        return Transaction(
            date=on,
            location=location,
            flag=flag,
            narration=narration,
            payee=payee,
            tags=frozenset(tags),
            links=frozenset(links),
            postings=tuple(postings),
            meta=meta,
        )

    def _posting(self) -> Posting:
        location = self._tok.location
        flag = self._advance().text if self._at(TokenKind.FLAG) else None
        account = self._expect(TokenKind.ACCOUNT, "account or metadata key").text

        number: Decimal | None = None
        currency: str | None = None
        if self._at(TokenKind.NUMBER):
            number = self._number(self._advance())
            currency = self._expect(TokenKind.CURRENCY, "currency after number").text
        elif self._at(TokenKind.CURRENCY):
            currency = self._advance().text

        cost = self._cost_spec() if self._at(TokenKind.LBRACE, TokenKind.LLBRACE) else None

        price: Amount | None = None
        price_is_total = False
        if self._at(TokenKind.AT, TokenKind.ATAT):
            price_is_total = self._advance().kind is TokenKind.ATAT
            price = self._amount()
        self._end_line()

        return Posting(
            account=account,
            number=number,
            currency=currency,
            location=location,
            cost=cost,
            price=price,
            price_is_total=price_is_total,
            flag=flag,
        )

    def _cost_spec(self) -> CostSpec:
        opener = self._advance()
        total = opener.kind is TokenKind.LLBRACE
        closer = TokenKind.RRBRACE if total else TokenKind.RBRACE

        number: Decimal | None = None
        currency: str | None = None
        on: date | None = None
        label: str | None = None
        first = True
        while not self._at(closer):
            if not first:
                self._expect(TokenKind.COMMA, f"',' or '{closer}'")
            first = False
            tok = self._tok
            if tok.kind is TokenKind.NUMBER and number is None:
                number = self._number(self._advance())
                currency = self._expect(TokenKind.CURRENCY, "cost currency").text
            elif tok.kind is TokenKind.CURRENCY and currency is None:
                currency = self._advance().text
            elif tok.kind is TokenKind.DATE and on is None:
                on = self._date(self._advance())
            elif tok.kind is TokenKind.STRING and label is None:
                label = self._advance().text
            else:
                raise _SyntaxFault(tok, f"Unexpected {tok.describe()} in cost specification")
        self._advance()

        if total and number is None:
            raise _SyntaxFault(opener, "Total cost requires a number")
        return CostSpec(
            number_per=None if total else number,
            number_total=number if total else None,
            currency=currency,
            date=on,
            label=label,
        )

    # --- metadata -------------------------------------------------------

    def _meta_block(self) -> Meta:
        meta: Meta = {}
        while self._at(TokenKind.INDENT):
            self._advance()
            key = self._expect(TokenKind.KEY, "metadata key").text
            meta[key] = self._value()
            self._end_line()
        return meta

    def _value(self) -> MetaValue:
        tok = self._tok
        match tok.kind:
            case TokenKind.STRING | TokenKind.ACCOUNT | TokenKind.TAG | TokenKind.LINK:
                return self._advance().text
            case TokenKind.NUMBER:
                number = self._number(self._advance())
                if self._at(TokenKind.CURRENCY):
                    return Amount(number, self._advance().text)
                return number
            case TokenKind.DATE:
                return self._date(self._advance())
            case TokenKind.CURRENCY:
                text = self._advance().text
                return _BOOLEANS.get(text, text)
            case TokenKind.NEWLINE | TokenKind.EOF:
                return None
            case _:
                raise _SyntaxFault(tok, f"Unexpected {tok.describe()} as a value")

    _UNDATED: ClassVar[dict[str, Callable[..., Directive | None]]] = {
        "include": _include,
        "option": _option,
        "pushtag": _pushtag,
        "poptag": _poptag,
    }

    _DATED: ClassVar[dict[str, Callable[..., Directive]]] = {
        "open": _open,
        "close": _close,
        "commodity": _commodity,
        "balance": _balance,
        "pad": _pad,
        "price": _price,
        "event": _event,
        "note": _note,
        "document": _document,
        "custom": _custom,
    }
