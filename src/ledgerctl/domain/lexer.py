"""Tokenizer — ledger source text to a lazy stream of located tokens.

Pure functions, no infrastructure dependencies. The stream is a generator:
finite, consumed once, and it raises :class:`LexError` at the first fatal
lexical defect (there is no recovery inside the lexer).

Line structure is significant. Each line with content starts with an
``INDENT`` token when it does not begin at column zero and ends with a
``NEWLINE`` token. Blank lines, comment-only lines and org-mode headings
(``*`` at column zero) produce no tokens at all.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ledgerctl.domain.errors import LexError
from ledgerctl.domain.tokens import KEYWORDS, Location, Token, TokenKind

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_NUMBER = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
# Characters that may not directly follow a number literal.
_NUMBER_TAIL = re.compile(r"[\w.]|-\d")
# Segments may use any Unicode letter but never start with a lowercase ASCII one.
_ACCOUNT = re.compile(r"(?![a-z])[^\W\d_][\w\-]*(?::(?![a-z_])\w[\w\-]*)+")
_KEY = re.compile(r"[a-z][A-Za-z0-9_\-]*:(?![:\w])")
_WORD = re.compile(r"[A-Za-z][A-Za-z0-9'._\-]*")
_CURRENCY = re.compile(r"[A-Z](?:[A-Z0-9'._\-]*[A-Z0-9])?")
_TAG_BODY = re.compile(r"[A-Za-z0-9\-_/.]+")
_LEADING_WS = re.compile(r"[ \t]*")

_PUNCTUATION: list[tuple[str, TokenKind]] = [
    ("{{", TokenKind.LLBRACE),
    ("}}", TokenKind.RRBRACE),
    ("@@", TokenKind.ATAT),
    ("{", TokenKind.LBRACE),
    ("}", TokenKind.RBRACE),
    ("@", TokenKind.AT),
    (",", TokenKind.COMMA),
    ("*", TokenKind.FLAG),
    ("!", TokenKind.FLAG),
]

_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def decode_source(data: bytes, file: str) -> str:
    """Decode raw file bytes as UTF-8 (an optional BOM is dropped).

    Raises :class:`LexError` pointing at the first invalid byte.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        line = data.count(b"\n", 0, exc.start) + 1
        column = exc.start - (data.rfind(b"\n", 0, exc.start) + 1) + 1
        raise LexError(Location(file, line, column), "invalid UTF-8 encoding") from exc


def tokenize(text: str, file: str = "<string>") -> Iterator[Token]:
    """Yield the tokens of *text*, ending with a single ``EOF`` token."""
    size = len(text)
    pos = 0
    line = 1
    line_start = 0
    at_line_start = True

    while pos < size:
        if at_line_start:
            at_line_start = False
            eol = text.find("\n", pos)
            if eol == -1:
                eol = size
            content = text[pos:eol].strip()
            if not content or content.startswith(";") or text[pos] == "*":
                if eol >= size:
                    pos = size
                    break
                pos = eol + 1
                line += 1
                line_start = pos
                at_line_start = True
                continue
            indent_end = _LEADING_WS.match(text, pos).end()  # type: ignore[union-attr]
            if indent_end > pos:
                yield Token(TokenKind.INDENT, text[pos:indent_end], Location(file, line, 1))
                pos = indent_end
            continue

        ch = text[pos]
        loc = Location(file, line, pos - line_start + 1)

        if ch == "\n":
            yield Token(TokenKind.NEWLINE, "\n", loc)
            pos += 1
            line += 1
            line_start = pos
            at_line_start = True
            continue
        if ch in " \t\r\f\v":
            pos += 1
            continue
        if ch == ";":
            eol = text.find("\n", pos)
            pos = size if eol == -1 else eol
            continue
        if ch == '"':
            value, end = _scan_string(text, pos, loc)
            yield Token(TokenKind.STRING, value, loc)
            newlines = text.count("\n", pos, end)
            if newlines:
                line += newlines
                line_start = text.rfind("\n", pos, end) + 1
            pos = end
            continue
        if ch in "#^" and (m := _TAG_BODY.match(text, pos + 1)):
            kind = TokenKind.TAG if ch == "#" else TokenKind.LINK
            yield Token(kind, m.group(), loc)
            pos = m.end()
            continue

        if m := _DATE.match(text, pos):
            _reject_number_tail(text, m.end(), loc, m.group())
            yield Token(TokenKind.DATE, m.group(), loc)
            pos = m.end()
            continue
        if m := _NUMBER.match(text, pos):
            _reject_number_tail(text, m.end(), loc, m.group())
            yield Token(TokenKind.NUMBER, m.group(), loc)
            pos = m.end()
            continue
        if m := _ACCOUNT.match(text, pos):
            yield Token(TokenKind.ACCOUNT, m.group(), loc)
            pos = m.end()
            continue
        if m := _KEY.match(text, pos):
            yield Token(TokenKind.KEY, m.group()[:-1], loc)
            pos = m.end()
            continue
        if m := _WORD.match(text, pos):
            yield Token(_classify_word(m.group()), m.group(), loc)
            pos = m.end()
            continue

        for symbol, kind in _PUNCTUATION:
            if text.startswith(symbol, pos):
                yield Token(kind, symbol, loc)
                pos += len(symbol)
                break
        else:
            yield Token(TokenKind.OTHER, ch, loc)
            pos += 1

    yield Token(TokenKind.EOF, "", Location(file, line, pos - line_start + 1))


def _classify_word(word: str) -> TokenKind:
    if word in KEYWORDS:
        return TokenKind.KEYWORD
    if _CURRENCY.fullmatch(word):
        return TokenKind.CURRENCY
    return TokenKind.WORD


def _reject_number_tail(text: str, end: int, loc: Location, literal: str) -> None:
    """Numbers and dates must be followed by a delimiter, e.g. not ``1.2.3`` or ``1e5``."""
    if _NUMBER_TAIL.match(text, end):
        tail = text[end : end + 1]
        raise LexError(loc, f"malformed numeric literal {literal + tail!r}")


def _scan_string(text: str, start: int, loc: Location) -> tuple[str, int]:
    """Scan a double-quoted string starting at *start*; return (value, end)."""
    out: list[str] = []
    i = start + 1
    size = len(text)
    while i < size:
        ch = text[i]
        if ch == '"':
            return "".join(out), i + 1
        if ch == "\\" and i + 1 < size:
            nxt = text[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    raise LexError(loc, "unterminated string")
