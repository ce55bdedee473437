"""Lexing of the service definitions within protobuf text."""

from __future__ import annotations

from typing import Iterator, List, Tuple

from .scanner import Source, SvcScanner, _is_space, is_ident
from .tokens import Token, TokenGroup

_SINGLE_CHAR_TOKENS = {
    '"': Token.STRING_LITERAL,
    "(": Token.OPEN_PAREN,
    ")": Token.CLOSE_PAREN,
    "{": Token.OPEN_BRACE,
    "}": Token.CLOSE_BRACE,
}


def _is_comment(unit: str) -> bool:
    return len(unit) > 1 and unit[0] == "/"


def _merge_comments(scanner: SvcScanner, text: str) -> str:
    """Join consecutive comments, including ones separated by spaces on one line."""
    while True:
        mark = scanner.unit_pos
        try:
            one = scanner.read_unit()
            if _is_comment(one):
                text += one
                continue
            if _is_space(one[0]) and "\n" not in one:
                two = scanner.read_unit()
                if _is_comment(two):
                    text += one + two
                    continue
        except EOFError:
            pass
        scanner.unread_to_position(mark)
        return text


def new_token_group(scanner: SvcScanner) -> TokenGroup:
    """Read the next token from ``scanner``, skipping text outside services."""
    if scanner.brace_level == 0:
        try:
            scanner.fast_forward()
        except EOFError:
            return TokenGroup(Token.EOF, "", scanner.line_number)
    try:
        unit = scanner.read_unit()
    except EOFError:
        return TokenGroup(Token.EOF, "", scanner.line_number)

    if not unit:
        return TokenGroup(Token.ILLEGAL, "", scanner.line_number)
    first = unit[0]
    if _is_space(first):
        kind = Token.WHITESPACE
    elif is_ident(first):
        kind = Token.IDENT
    elif first in _SINGLE_CHAR_TOKENS:
        kind = _SINGLE_CHAR_TOKENS[first]
    elif _is_comment(unit):
        text = _merge_comments(scanner, unit)
        return TokenGroup(Token.COMMENT, text, scanner.line_number)
    elif len(unit) == 1:
        kind = Token.SYMBOL
    else:
        kind = Token.ILLEGAL
    return TokenGroup(kind, unit, scanner.line_number)


def _token_groups(scanner: SvcScanner) -> Iterator[TokenGroup]:
    while True:
        group = new_token_group(scanner)
        if group.token in (Token.ILLEGAL, Token.EOF):
            return
        yield group


class SvcLexer:
    """Buffered tokens of the service definitions in a protobuf source."""

    def __init__(self, source: Source) -> None:
        self.scanner = SvcScanner(source)
        self.buf: List[TokenGroup] = list(_token_groups(self.scanner))
        self._pos = 0
        self._line_no = 0

    @property
    def position(self) -> int:
        """Index of the next token to be read."""
        return self._pos

    @property
    def line_number(self) -> int:
        """Line number of the last token read."""
        return self._line_no

    def get_token(self) -> Tuple[Token, str]:
        """Return the next token and its text; EOF once tokens run out."""
        if self._pos >= len(self.buf):
            return Token.EOF, ""
        group = self.buf[self._pos]
        self._line_no = group.line
        self._pos += 1
        return group.token, group.value

    def unget_token(self) -> None:
        """Step back one token."""
        if self._pos == 0:
            raise ValueError("cannot unread when lexer is at start of input")
        self._pos -= 1
        self._line_no = self.buf[self._pos].line

    def unget_to_position(self, position: int) -> None:
        """Step back until the read position equals ``position``."""
        while self._pos != position:
            self.unget_token()

    def _get_token_ignoring(self, *ignored: Token) -> Tuple[Token, str]:
        while True:
            token, value = self.get_token()
            if token not in ignored:
                return token, value

    def get_token_ignore_comment_and_whitespace(self) -> Tuple[Token, str]:
        """Return the next token that is neither a comment nor whitespace."""
        return self._get_token_ignoring(Token.COMMENT, Token.WHITESPACE)

    def get_token_ignore_whitespace(self) -> Tuple[Token, str]:
        """Return the next token that is not whitespace."""
        return self._get_token_ignoring(Token.WHITESPACE)