"""Parsing of protobuf service definitions, keeping the HTTP annotations of
each rpc and the comments attached to them.

The input is expected to hold exactly one service definition.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .lexer import SvcLexer
from .tokens import Token


class ParserError(ValueError):
    """Raised when the service definition does not have the expected form."""

    def __init__(
        self,
        expected: str,
        line: int,
        found: str,
        message: Optional[str] = None,
    ) -> None:
        self.expected = expected
        self.line = line
        self.found = found
        super().__init__(
            message
            if message is not None
            else f"parser expected {expected} in line '{line}', instead found '{found}'"
        )

    @property
    def optional(self) -> bool:
        """Whether the failure may be tolerated by the caller."""
        return False


class OptionalParseError(ParserError):
    """An rpc lacks HTTP annotations; callers may choose to carry on."""

    @property
    def optional(self) -> bool:
        return True


@dataclass
class Field:
    """One ``kind: "value"`` entry of an HTTP binding."""

    name: str = ""
    description: str = ""
    kind: str = ""
    value: str = ""


@dataclass
class HTTPBinding:
    """One HTTP binding of an rpc, with an optional custom verb pattern."""

    description: str = ""
    fields: List[Field] = field(default_factory=list)
    custom_http_pattern: List[Field] = field(default_factory=list)


@dataclass
class Method:
    """An rpc of a service and its HTTP bindings."""

    name: str = ""
    description: str = ""
    request_type: str = ""
    response_type: str = ""
    http_bindings: List[HTTPBinding] = field(default_factory=list)


@dataclass
class Service:
    """A service definition and its methods."""

    name: str = ""
    methods: List[Method] = field(default_factory=list)


def _wrapped(context: str, err: Exception, line: int) -> ParserError:
    return ParserError("", line, "", message=f"{context}: {err}")


_ESCAPE = re.compile(
    r'\\(x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|[0-7]{3}|[abfnrtv\\"])'
    r'|\\.?|"',
    re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    "\\": b"\\",
    '"': b'"',
}


def _escape_bytes(code: str) -> bytes:
    head = code[0]
    if head in _SIMPLE_ESCAPES and len(code) == 1:
        return _SIMPLE_ESCAPES[head]
    if head == "x":
        return bytes([int(code[1:], 16)])
    if head in "uU":
        point = int(code[1:], 16)
        if point > 0x10FFFF or 0xD800 <= point <= 0xDFFF:
            raise ValueError("invalid syntax")
        return chr(point).encode("utf-8")
    value = int(code, 8)
    if value > 0xFF:
        raise ValueError("invalid syntax")
    return bytes([value])


def _unquote(literal: str) -> str:
    """Decode a double-quoted string literal with its escape sequences."""
    if len(literal) < 2 or literal[0] != '"' or literal[-1] != '"':
        raise ValueError("invalid syntax")
    body = literal[1:-1]
    if "\n" in body:
        raise ValueError("invalid syntax")
    out = bytearray()
    last = 0
    for match in _ESCAPE.finditer(body):
        out += body[last : match.start()].encode("utf-8")
        code = match.group(1)
        if code is None:
            raise ValueError("invalid syntax")
        out += _escape_bytes(code)
        last = match.end()
    out += body[last:].encode("utf-8")
    return out.decode("utf-8", errors="replace")


def _fast_forward_till(lex: SvcLexer, delim: str) -> None:
    """Advance until a token with text ``delim`` has been consumed."""
    while True:
        token, value = lex.get_token_ignore_whitespace()
        if token in (Token.EOF, Token.ILLEGAL):
            raise ParserError(
                f"'{delim}'",
                lex.line_number,
                value,
                message=(
                    f"in fastForwardTill found token of type '{token}' "
                    f"and val '{value}'"
                ),
            )
        if value == delim:
            return


def _expect(lex: SvcLexer, ok: bool, expected: str, found: str) -> None:
    if not ok:
        raise ParserError(expected, lex.line_number, found)


def parse_service(lex: SvcLexer) -> Service:
    """Parse the service definition read by ``lex``.

    Raises EOFError if there is no input at all.
    """
    token, value = lex.get_token_ignore_whitespace()
    if token == Token.EOF:
        raise EOFError("unexpected EOF")
    _expect(lex, token == Token.IDENT or value == "service", "'service' identifier", value)

    token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.IDENT, "a string identifier", value)
    service = Service(name=value)

    token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.OPEN_BRACE, "'{'", value)

    while (method := parse_method(lex)) is not None:
        service.methods.append(method)
    return service


def _parse_type(lex: SvcLexer, where: str) -> str:
    """Parse an rpc argument list, returning the last identifier of the type."""
    token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.OPEN_PAREN, "'('", value)

    token, value = lex.get_token_ignore_whitespace()
    if value == "stream":
        token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.IDENT, f"a string identifier in {where}", value)

    type_name = ""
    while token != Token.CLOSE_PAREN:
        if token == Token.IDENT:
            type_name = value
        elif token != Token.SYMBOL:
            raise ParserError("')' or '.'", lex.line_number, value)
        token, value = lex.get_token_ignore_whitespace()
    return type_name


def parse_method(lex: SvcLexer) -> Optional[Method]:
    """Parse one rpc; return None at the end of the service or when the rpc
    declares no HTTP options."""
    description = ""
    token, value = lex.get_token_ignore_whitespace()
    while token == Token.COMMENT:
        description = value
        token, value = lex.get_token_ignore_whitespace()

    if token == Token.CLOSE_BRACE:
        return None
    _expect(lex, token == Token.IDENT and value == "rpc", "identifier 'rpc'", value)

    token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.IDENT, "a string identifier", value)
    method = Method(name=value, description=description)

    method.request_type = _parse_type(lex, "first argument to method")

    token, value = lex.get_token_ignore_whitespace()
    _expect(lex, token == Token.IDENT and value == "returns", "'returns' keyword", value)

    method.response_type = _parse_type(lex, "return argument to method")

    token, value = lex.get_token_ignore_whitespace()
    if value == ";":
        return None
    _expect(
        lex,
        token == Token.OPEN_BRACE,
        "'{' after declaration of method signature",
        value,
    )

    bindings = parse_http_bindings(lex)
    if bindings is None:
        return None
    method.http_bindings = bindings

    token, value = lex.get_token_ignore_comment_and_whitespace()
    _expect(
        lex,
        token == Token.SYMBOL and value == ";",
        "';' after declaration of http options",
        value + str(token),
    )

    token, value = lex.get_token_ignore_comment_and_whitespace()
    _expect(
        lex,
        token == Token.CLOSE_BRACE,
        "'}' after declaration of http options marking end of rpc declarations",
        value + str(token),
    )
    return method


def parse_http_bindings(lex: SvcLexer) -> Optional[List[HTTPBinding]]:
    """Parse an ``option`` or ``additional_bindings`` block.

    Returns None when the rpc body closes without options. Additional
    bindings come before the binding that contains them.
    """
    bindings: List[HTTPBinding] = []
    binding = HTTPBinding()

    token, value = lex.get_token_ignore_whitespace()
    while True:
        if token == Token.COMMENT:
            binding.description = value
            token, value = lex.get_token_ignore_whitespace()
        elif token in (Token.EOF, Token.ILLEGAL):
            raise ParserError("non-illegal input", lex.line_number, str(token))
        else:
            break

    if value == "option":
        _fast_forward_till(lex, "{")
        binding.fields, binding.custom_http_pattern = parse_binding_fields(lex)
        good_position = lex.position

        token, value = lex.get_token_ignore_whitespace()
        while True:
            if token == Token.CLOSE_BRACE:
                bindings.append(binding)
                return bindings
            if token == Token.COMMENT:
                good_position = lex.position
            elif value == "additional_bindings":
                lex.unget_to_position(good_position)
                bindings.extend(parse_http_bindings(lex) or [])
                good_position = lex.position
            elif token in (Token.EOF, Token.ILLEGAL):
                raise ParserError(
                    "legal token while parsing HttpBindings",
                    lex.line_number,
                    f"({value}) of type {token}",
                )
            else:
                raise ParserError(
                    "close brace or comment while parsing http bindings",
                    lex.line_number,
                    str(token) + value,
                )
            token, value = lex.get_token_ignore_whitespace()

    if value == "additional_bindings":
        _fast_forward_till(lex, "{")
        binding.fields, binding.custom_http_pattern = parse_binding_fields(lex)
        _fast_forward_till(lex, "}")
        bindings.append(binding)
        return bindings

    if value == "}":
        return None

    raise OptionalParseError(
        "'}', 'option' or 'additional_bindings' while parsing options",
        lex.line_number,
        value,
    )


def parse_binding_fields(lex: SvcLexer) -> Tuple[List[Field], List[Field]]:
    """Parse the fields of a binding up to its closing brace or to
    ``additional_bindings``; return the fields and the custom verb fields."""
    fields: List[Field] = []
    custom: List[Field] = []
    current = Field()
    while True:
        token, value = lex.get_token_ignore_whitespace()
        while True:
            if token == Token.COMMENT:
                current.description = value
                token, value = lex.get_token_ignore_whitespace()
            elif token in (Token.EOF, Token.ILLEGAL):
                raise ParserError(
                    "legal token while parsing binding fields",
                    lex.line_number,
                    value,
                )
            else:
                break

        if (token == Token.CLOSE_BRACE and value == "}") or value == "additional_bindings":
            lex.unget_token()
            return fields, custom

        if value == "custom":
            try:
                _fast_forward_till(lex, "{")
            except ParserError as err:
                raise _wrapped("cannot fastforward till opening brace", err, lex.line_number) from err
            try:
                custom, _ = parse_binding_fields(lex)
            except ParserError as err:
                raise _wrapped("cannot parse custom binding fields", err, lex.line_number) from err
            try:
                _fast_forward_till(lex, "}")
            except ParserError as err:
                raise _wrapped("cannot fastforward to closing brace", err, lex.line_number) from err
            continue

        current.kind = value
        current.name = value

        token, value = lex.get_token_ignore_whitespace()
        _expect(lex, token == Token.SYMBOL and value == ":", "symbol ':'", value)

        token, value = lex.get_token_ignore_whitespace()
        _expect(lex, token == Token.STRING_LITERAL, "string literal", value)

        try:
            current.value = _unquote(value)
        except ValueError as err:
            raise ParserError(
                "string literal",
                lex.line_number,
                value,
                message=f"cannot unquote value {value!r}: {err}",
            ) from err

        fields.append(current)
        current = Field()