"""Scanning of protobuf text into units: words, whitespace, comments, strings
and single symbols, tracking whether each lies within a service definition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO, Callable, List, Union

Source = Union[str, bytes, bytearray, IO[str], IO[bytes]]

_LATIN1_SPACE = frozenset("\t\n\v\f\r \x85\xa0")


def _is_space(ch: str) -> bool:
    if ord(ch) <= 0xFF:
        return ch in _LATIN1_SPACE
    return ch.isspace()


def is_ident(ch: str) -> bool:
    """Return whether ``ch`` may appear in an identifier."""
    return ch.isalpha() or ch.isdecimal() or ch == "_"


def _read_source(source: Source) -> str:
    if isinstance(source, str):
        return source
    data = source if isinstance(source, (bytes, bytearray)) else source.read()
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", errors="replace")


class RuneReader:
    """Reads characters one at a time, counting lines."""

    def __init__(self, source: Source) -> None:
        self.contents = _read_source(source)
        self.pos = 0
        self.line_no = 1

    def read_rune(self) -> str:
        """Return the next character; raise EOFError at the end of input."""
        if self.pos >= len(self.contents):
            raise EOFError("end of input")
        ch = self.contents[self.pos]
        if ch == "\n":
            self.line_no += 1
        self.pos += 1
        return ch

    def unread_rune(self) -> None:
        """Step back one character."""
        if self.pos == 0:
            raise ValueError("cannot unread at start of input")
        self.pos -= 1
        if self.contents[self.pos] == "\n":
            self.line_no -= 1


@dataclass
class ScanState:
    """Where the scan stands relative to a service definition."""

    within_body: bool = False
    within_def: bool = False
    brace_level: int = 0


@dataclass(frozen=True)
class ScanUnit:
    """One unit of scanned text and the scan state just after it."""

    in_rpc_definition: bool
    in_rpc_body: bool
    brace_level: int
    line_no: int
    value: str

    def __str__(self) -> str:
        clean = self.value.replace("\n", "\\n").replace("\t", "\\t").replace('"', '\\"')
        return (
            f'{{"value": "{clean}", '
            f'"InRpcDefinition": {str(self.in_rpc_definition).lower()}, '
            f'"InRpcBody": {str(self.in_rpc_body).lower()}, '
            f'"BraceLevel": {self.brace_level}, "LineNo": {self.line_no}}},'
        )


def _scan_run(reader: RuneReader, buf: List[str], accept: Callable[[str], bool]) -> bool:
    """Collect characters while ``accept`` holds; True if stopped by a character."""
    while True:
        try:
            ch = reader.read_rune()
        except EOFError:
            return False
        if not accept(ch):
            reader.unread_rune()
            return True
        buf.append(ch)


def _scan_slash(reader: RuneReader, buf: List[str]) -> None:
    ch = reader.read_rune()
    if ch == "/":
        buf.append(ch)
        while True:
            ch = reader.read_rune()
            buf.append(ch)
            if ch == "\n":
                return
    elif ch == "*":
        buf.append(ch)
        while True:
            ch = reader.read_rune()
            if ch == "*":
                buf.append(ch)
                if reader.read_rune() == "/":
                    buf.append("/")
                    return
            else:
                buf.append(ch)
    else:
        reader.unread_rune()


def _scan_string(reader: RuneReader, buf: List[str]) -> None:
    while True:
        ch = reader.read_rune()
        buf.append(ch)
        if ch == "\\":
            buf.append(reader.read_rune())
        elif ch == '"':
            return


def build_scan_unit(reader: RuneReader, state: ScanState) -> ScanUnit:
    """Scan the next unit from ``reader``, updating ``state``.

    Raises EOFError if the input ends before a complete unit is found.
    """
    ch = reader.read_rune()
    buf = [ch]

    if ch == "/":
        _scan_slash(reader, buf)
    elif ch == '"':
        _scan_string(reader, buf)
    elif _is_space(ch):
        _scan_run(reader, buf, _is_space)
    elif is_ident(ch):
        if _scan_run(reader, buf, is_ident) and "".join(buf) == "service":
            state.within_def = True
    elif ch == "{":
        state.brace_level += 1
        if state.within_def:
            state.within_def = False
            state.within_body = True
    elif ch == "}":
        state.brace_level -= 1
        if state.within_body and state.brace_level == 0:
            state.within_body = False

    return ScanUnit(
        in_rpc_definition=state.within_def,
        in_rpc_body=state.within_body,
        brace_level=state.brace_level,
        line_no=reader.line_no,
        value="".join(buf),
    )


class SvcScanner:
    """Buffered sequence of scan units with a movable read position."""

    def __init__(self, source: Source) -> None:
        reader = RuneReader(source)
        state = ScanState()
        self.buf: List[ScanUnit] = []
        while True:
            try:
                self.buf.append(build_scan_unit(reader, state))
            except EOFError:
                break
        self.unit_pos = 0
        self._reset_state()

    def _reset_state(self) -> None:
        self.in_body = False
        self.in_definition = False
        self.brace_level = 0
        self._line_no = 0

    def _apply(self, unit: ScanUnit) -> None:
        self.in_body = unit.in_rpc_body
        self.in_definition = unit.in_rpc_definition
        self.brace_level = unit.brace_level
        self._line_no = unit.line_no

    @property
    def line_number(self) -> int:
        """Line number at the end of the last unit read."""
        return self._line_no

    def fast_forward(self) -> None:
        """Move to the next ``service`` keyword unless already inside a service.

        Raises EOFError if no further service definition exists.
        """
        if self.in_body or self.in_definition:
            return
        while self.read_unit() != "service":
            pass
        self.unit_pos -= 1

    def read_unit(self) -> str:
        """Return the next unit's text; raise EOFError at the end."""
        if self.unit_pos >= len(self.buf):
            raise EOFError("end of input")
        unit = self.buf[self.unit_pos]
        self._apply(unit)
        self.unit_pos += 1
        return unit.value

    def unread_unit(self) -> None:
        """Step back one unit, restoring the state that preceded it."""
        if self.unit_pos == 0:
            raise ValueError("cannot unread when scanner is at start of input")
        self.unit_pos -= 1
        if self.unit_pos == 0:
            self._reset_state()
        else:
            self._apply(self.buf[self.unit_pos - 1])

    def unread_to_position(self, position: int) -> None:
        """Step back until the read position equals ``position``."""
        while self.unit_pos != position:
            self.unread_unit()