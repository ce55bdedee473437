"""A parser for the declarations of Go source files produced by protobuf
code generators: type declarations and function signatures.

Function bodies, constants, variables and imports are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import IO, List, Optional, Union


class GoSyntaxError(ValueError):
    """Raised when the Go source cannot be parsed."""

    def __init__(self, message: str, source: str, pos: int) -> None:
        self.pos = pos
        self.line = source.count("\n", 0, pos) + 1
        self.column = pos - (source.rfind("\n", 0, pos) + 1) + 1
        super().__init__(f"{self.line}:{self.column}: {message}")


@dataclass
class Ident:
    """A name."""

    name: str
    pos: int = field(default=0, compare=False)

    @property
    def is_exported(self) -> bool:
        """Whether the name starts with an upper case letter."""
        return bool(self.name) and self.name[0].isupper()


@dataclass
class StarExpr:
    """A pointer type ``*X``."""

    x: "Expr"
    pos: int = field(default=0, compare=False)


@dataclass
class SelectorExpr:
    """A qualified name ``pkg.Name``."""

    x: Ident
    sel: Ident
    pos: int = field(default=0, compare=False)


@dataclass
class ArrayType:
    """A slice (no length), array, or variadic parameter (length ``...``)."""

    elt: "Expr"
    length: Optional[str] = None
    pos: int = field(default=0, compare=False)


@dataclass
class MapType:
    """A map type."""

    key: "Expr"
    value: "Expr"
    pos: int = field(default=0, compare=False)


@dataclass
class AstField:
    """A struct field, parameter, result or interface method."""

    names: List[Ident]
    type: "Expr"
    tag: Optional[str] = None
    pos: int = field(default=0, compare=False)


@dataclass
class FuncType:
    """A function signature."""

    params: List[AstField] = field(default_factory=list)
    results: List[AstField] = field(default_factory=list)
    pos: int = field(default=0, compare=False)


@dataclass
class InterfaceType:
    """An interface type; embedded interfaces have no names."""

    methods: List[AstField] = field(default_factory=list)
    pos: int = field(default=0, compare=False)


@dataclass
class StructType:
    """A struct type; embedded fields have no names."""

    fields: List[AstField] = field(default_factory=list)
    pos: int = field(default=0, compare=False)


@dataclass
class _ChanType:
    value: "Expr"
    pos: int = field(default=0, compare=False)


Expr = Union[Ident, StarExpr, SelectorExpr, ArrayType, MapType, FuncType, InterfaceType, StructType, _ChanType]


@dataclass
class TypeSpec:
    """A type declaration."""

    name: Ident
    type: Expr
    pos: int = field(default=0, compare=False)


@dataclass
class FuncDecl:
    """A function or method declaration; ``recv`` is None for functions."""

    name: Ident
    recv: Optional[List[AstField]]
    type: FuncType
    pos: int = field(default=0, compare=False)


@dataclass
class GoFile:
    """The package name and the type and function declarations of a file."""

    package_name: str
    decls: List[Union[TypeSpec, FuncDecl]] = field(default_factory=list)

    @property
    def type_specs(self) -> List[TypeSpec]:
        return [d for d in self.decls if isinstance(d, TypeSpec)]

    @property
    def func_decls(self) -> List[FuncDecl]:
        return [d for d in self.decls if isinstance(d, FuncDecl)]


_KEYWORDS = frozenset(
    "break case chan const continue default defer else fallthrough for func go "
    "goto if import interface map package range return select struct switch "
    "type var".split()
)
_SEMI_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_TYPE_KEYWORDS = frozenset({"map", "func", "interface", "struct", "chan"})

_OPERATORS = [
    "<<=", ">>=", "&^=", "...", "&&", "||", "<-", "++", "--", "==", "!=", "<=",
    ">=", ":=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "&^",
    "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!", "~", "(", ")",
    "[", "]", "{", "}", ",", ";", ".", ":",
]

_NUMBER = (
    r"0[xX][0-9a-fA-F_]*(?:\.[0-9a-fA-F_]*)?(?:[pP][+-]?[0-9_]+)?i?"
    r"|0[bBoO][0-9_]+i?"
    r"|[0-9][0-9_]*(?:\.[0-9_]*)?(?:[eE][+-]?[0-9_]+)?i?"
    r"|\.[0-9][0-9_]*(?:[eE][+-]?[0-9_]+)?i?"
)

_TOKEN_RE = re.compile(
    "|".join(
        [
            r"(?P<ws>[ \t\r\f\v]+)",
            r"(?P<nl>\n)",
            r"(?P<line>//[^\n]*)",
            r"(?P<block>/\*.*?\*/)",
            r"(?P<badblock>/\*)",
            r"(?P<raw>`[^`]*`)",
            r'(?P<string>"(?:[^"\\\n]|\\.)*")',
            r"(?P<char>'(?:[^'\\\n]|\\.)*')",
            f"(?P<number>{_NUMBER})",
            r"(?P<ident>[^\W\d]\w*)",
            "(?P<op>" + "|".join(re.escape(op) for op in _OPERATORS) + ")",
        ]
    ),
    re.DOTALL,
)

_IDENT = "ident"
_OP = "op"
_STRING = "string"
_SEMI = "semi"
_EOF = "eof"


@dataclass(frozen=True)
class _Tok:
    kind: str
    value: str
    pos: int


def _ends_statement(tok: _Tok) -> bool:
    if tok.kind == _IDENT:
        return tok.value not in _KEYWORDS or tok.value in _SEMI_KEYWORDS
    if tok.kind in (_STRING, "number", "char"):
        return True
    return tok.kind == _OP and tok.value in (")", "]", "}", "++", "--")


def _tokenize(source: str) -> List[_Tok]:
    tokens: List[_Tok] = []

    def insert_semi(pos: int) -> None:
        if tokens and _ends_statement(tokens[-1]):
            tokens.append(_Tok(_SEMI, "\n", pos))

    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            raise GoSyntaxError(f"unexpected character {source[pos]!r}", source, pos)
        kind = match.lastgroup
        text = match.group()
        if kind == "badblock":
            raise GoSyntaxError("comment not terminated", source, pos)
        if kind == "nl":
            insert_semi(pos)
        elif kind == "block":
            if "\n" in text:
                insert_semi(pos)
        elif kind == "raw":
            tokens.append(_Tok(_STRING, text, pos))
        elif kind == "op" and text == ";":
            tokens.append(_Tok(_SEMI, ";", pos))
        elif kind not in ("ws", "line"):
            tokens.append(_Tok(kind, text, pos))
        pos = match.end()
    insert_semi(len(source))
    tokens.append(_Tok(_EOF, "", len(source)))
    return tokens


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = _tokenize(source)
        self.index = 0

    def _peek(self, ahead: int = 0) -> _Tok:
        return self.tokens[min(self.index + ahead, len(self.tokens) - 1)]

    def _advance(self) -> _Tok:
        tok = self.tokens[self.index]
        if tok.kind != _EOF:
            self.index += 1
        return tok

    def _error(self, message: str, tok: Optional[_Tok] = None) -> GoSyntaxError:
        return GoSyntaxError(message, self.source, (tok or self._peek()).pos)

    def _is_op(self, value: str, ahead: int = 0) -> bool:
        tok = self._peek(ahead)
        return tok.kind == _OP and tok.value == value

    def _is_kw(self, value: str) -> bool:
        tok = self._peek()
        return tok.kind == _IDENT and tok.value == value

    def _is_name(self, ahead: int = 0) -> bool:
        tok = self._peek(ahead)
        return tok.kind == _IDENT and tok.value not in _KEYWORDS

    def _expect_op(self, value: str) -> _Tok:
        if not self._is_op(value):
            raise self._error(f"expected {value!r}, found {self._peek().value!r}")
        return self._advance()

    def _expect_name(self) -> Ident:
        if not self._is_name():
            raise self._error(f"expected name, found {self._peek().value!r}")
        tok = self._advance()
        return Ident(tok.value, pos=tok.pos)

    def _skip_semis(self) -> None:
        while self._peek().kind == _SEMI:
            self._advance()

    def _expect_terminator(self, *closers: str) -> None:
        tok = self._peek()
        if tok.kind == _SEMI:
            self._advance()
        elif tok.kind != _EOF and not any(self._is_op(c) for c in closers):
            raise self._error(f"unexpected {tok.value!r} after declaration")

    def parse(self) -> GoFile:
        self._skip_semis()
        if not self._is_kw("package"):
            raise self._error("expected 'package' clause")
        self._advance()
        tok = self._peek()
        if tok.kind != _IDENT:
            raise self._error("expected package name")
        self._advance()
        self._expect_terminator()
        decls: List[Union[TypeSpec, FuncDecl]] = []
        while True:
            self._skip_semis()
            tok = self._peek()
            if tok.kind == _EOF:
                break
            if tok.kind == _IDENT and tok.value in ("import", "const", "var"):
                self._skip_decl()
            elif self._is_kw("type"):
                decls.extend(self._type_decl())
            elif self._is_kw("func"):
                decls.append(self._func_decl())
            else:
                raise self._error(f"unexpected {tok.value!r} at top level")
        return GoFile(package_name=tok_name(self.tokens), decls=decls)

    def _skip_decl(self) -> None:
        depth = 0
        while True:
            tok = self._peek()
            if tok.kind == _EOF:
                if depth:
                    raise self._error("unexpected end of file")
                return
            self._advance()
            if tok.kind == _OP and tok.value in ("(", "[", "{"):
                depth += 1
            elif tok.kind == _OP and tok.value in (")", "]", "}"):
                depth -= 1
                if depth < 0:
                    raise self._error(f"unbalanced {tok.value!r}", tok)
            elif tok.kind == _SEMI and depth == 0:
                return

    def _skip_block(self) -> None:
        depth = 0
        while True:
            tok = self._advance()
            if tok.kind == _EOF:
                raise self._error("unexpected end of file in function body", tok)
            if tok.kind == _OP and tok.value == "{":
                depth += 1
            elif tok.kind == _OP and tok.value == "}":
                depth -= 1
                if depth == 0:
                    return

    def _type_decl(self) -> List[TypeSpec]:
        self._advance()
        if self._is_op("("):
            self._advance()
            specs = []
            while True:
                self._skip_semis()
                if self._is_op(")"):
                    self._advance()
                    break
                specs.append(self._type_spec())
                self._expect_terminator(")")
            self._expect_terminator()
            return specs
        spec = self._type_spec()
        self._expect_terminator()
        return [spec]

    def _type_spec(self) -> TypeSpec:
        name = self._expect_name()
        if self._is_op("="):
            self._advance()
        return TypeSpec(name=name, type=self._parse_type(), pos=name.pos)

    def _func_decl(self) -> FuncDecl:
        start = self._advance()
        recv = self._params() if self._is_op("(") else None
        name = self._expect_name()
        ftype = self._signature(start.pos)
        if self._is_op("{"):
            self._skip_block()
        self._expect_terminator()
        return FuncDecl(name=name, recv=recv, type=ftype, pos=start.pos)

    def _signature(self, pos: int) -> FuncType:
        params = self._params()
        return FuncType(params=params, results=self._results(), pos=pos)

    def _results(self) -> List[AstField]:
        if self._is_op("("):
            return self._params()
        if self._starts_type():
            typ = self._parse_type()
            return [AstField(names=[], type=typ, pos=typ.pos)]
        return []

    def _starts_type(self) -> bool:
        tok = self._peek()
        if tok.kind == _OP:
            return tok.value in ("*", "[", "(", "<-")
        if tok.kind == _IDENT:
            return tok.value not in _KEYWORDS or tok.value in _TYPE_KEYWORDS
        return False

    def _param_type(self) -> Expr:
        if self._is_op("..."):
            tok = self._advance()
            return ArrayType(elt=self._parse_type(), length="...", pos=tok.pos)
        return self._parse_type()

    def _params(self) -> List[AstField]:
        self._expect_op("(")
        items = []
        while not self._is_op(")"):
            first = self._param_type()
            second = None
            if not (self._is_op(",") or self._is_op(")")):
                second = self._param_type()
            items.append((first, second))
            if self._is_op(","):
                self._advance()
            elif not self._is_op(")"):
                raise self._error(f"expected ',' or ')', found {self._peek().value!r}")
        self._advance()

        if not any(second is not None for _, second in items):
            return [AstField(names=[], type=first, pos=first.pos) for first, _ in items]
        fields: List[AstField] = []
        pending: List[Ident] = []
        for first, second in items:
            if not isinstance(first, Ident):
                raise GoSyntaxError("mixed named and unnamed parameters", self.source, first.pos)
            pending.append(first)
            if second is not None:
                fields.append(AstField(names=pending, type=second, pos=pending[0].pos))
                pending = []
        if pending:
            raise GoSyntaxError("mixed named and unnamed parameters", self.source, pending[0].pos)
        return fields

    def _parse_type(self) -> Expr:
        tok = self._peek()
        if tok.kind == _OP:
            if tok.value == "*":
                self._advance()
                return StarExpr(x=self._parse_type(), pos=tok.pos)
            if tok.value == "[":
                return self._array_type()
            if tok.value == "(":
                self._advance()
                inner = self._parse_type()
                self._expect_op(")")
                return inner
            if tok.value == "<-":
                self._advance()
                if not self._is_kw("chan"):
                    raise self._error("expected 'chan'")
                self._advance()
                return _ChanType(value=self._parse_type(), pos=tok.pos)
        elif tok.kind == _IDENT:
            if tok.value == "map":
                self._advance()
                self._expect_op("[")
                key = self._parse_type()
                self._expect_op("]")
                return MapType(key=key, value=self._parse_type(), pos=tok.pos)
            if tok.value == "func":
                self._advance()
                return self._signature(tok.pos)
            if tok.value == "interface":
                return self._interface_type()
            if tok.value == "struct":
                return self._struct_type()
            if tok.value == "chan":
                self._advance()
                if self._is_op("<-"):
                    self._advance()
                return _ChanType(value=self._parse_type(), pos=tok.pos)
            if tok.value not in _KEYWORDS:
                ident = self._expect_name()
                if self._is_op(".") and self._is_name(1):
                    self._advance()
                    return SelectorExpr(x=ident, sel=self._expect_name(), pos=ident.pos)
                return ident
        raise self._error(f"expected type, found {tok.value!r}")

    def _array_type(self) -> ArrayType:
        start = self._advance()
        if self._is_op("]"):
            self._advance()
            return ArrayType(elt=self._parse_type(), length=None, pos=start.pos)
        begin = self._peek().pos
        depth = 0
        while True:
            tok = self._peek()
            if tok.kind == _EOF:
                raise self._error("unexpected end of file in array length")
            if tok.kind == _OP and tok.value == "[":
                depth += 1
            elif tok.kind == _OP and tok.value == "]":
                if depth == 0:
                    break
                depth -= 1
            self._advance()
        length = self.source[begin : tok.pos].strip()
        self._advance()
        return ArrayType(elt=self._parse_type(), length=length, pos=start.pos)

    def _interface_type(self) -> InterfaceType:
        start = self._advance()
        self._expect_op("{")
        methods: List[AstField] = []
        while True:
            self._skip_semis()
            if self._is_op("}"):
                self._advance()
                break
            if self._is_name() and self._is_op("(", 1):
                name = self._expect_name()
                ftype = self._signature(name.pos)
                methods.append(AstField(names=[name], type=ftype, pos=name.pos))
            else:
                typ = self._parse_type()
                methods.append(AstField(names=[], type=typ, pos=typ.pos))
            self._expect_terminator("}")
        return InterfaceType(methods=methods, pos=start.pos)

    def _struct_type(self) -> StructType:
        start = self._advance()
        self._expect_op("{")
        fields: List[AstField] = []
        while True:
            self._skip_semis()
            if self._is_op("}"):
                self._advance()
                break
            fields.append(self._struct_field())
            self._expect_terminator("}")
        return StructType(fields=fields, pos=start.pos)

    def _struct_field(self) -> AstField:
        embedded = True
        if self._is_name():
            following = self._peek(1)
            embedded = (following.kind == _OP and following.value in (".", "}")) or following.kind in (
                _SEMI,
                _STRING,
                _EOF,
            )
        names: List[Ident] = []
        if not embedded:
            names.append(self._expect_name())
            while self._is_op(","):
                self._advance()
                names.append(self._expect_name())
        typ = self._parse_type()
        tag = self._advance().value if self._peek().kind == _STRING else None
        return AstField(names=names, type=typ, tag=tag, pos=names[0].pos if names else typ.pos)


def tok_name(tokens: List[_Tok]) -> str:
    for current, following in zip(tokens, tokens[1:]):
        if current.kind == _IDENT and current.value == "package":
            return following.value
    return ""


def parse_file(source: Union[str, bytes, IO[str], IO[bytes]]) -> GoFile:
    """Parse Go source text into its package name and type and function declarations.

    Raises GoSyntaxError when the text is not valid for this subset of Go.
    """
    if not isinstance(source, (str, bytes, bytearray)):
        source = source.read()
    if isinstance(source, (bytes, bytearray)):
        source = bytes(source).decode("utf-8", errors="replace")
    return _Parser(source).parse()