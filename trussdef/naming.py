"""Conversion of protobuf names into the identifiers used by generated Go code."""

from __future__ import annotations


def _is_lower(ch: str) -> bool:
    return "a" <= ch <= "z"


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def camel_case(name: str) -> str:
    """Return ``name`` in the CamelCase form given to generated Go identifiers.

    Words are separated by underscores or upper case letters; an underscore
    before a lower case letter is dropped and that letter is capitalised.
    A leading underscore becomes ``X``. Digits are kept as they are.
    """
    if not name:
        return ""
    out = []
    i = 0
    if name[0] == "_":
        out.append("X")
        i = 1
    length = len(name)
    while i < length:
        ch = name[i]
        if ch == "_" and i + 1 < length and _is_lower(name[i + 1]):
            i += 1
            continue
        if _is_digit(ch):
            out.append(ch)
            i += 1
            continue
        out.append(ch.upper() if _is_lower(ch) else ch)
        while i + 1 < length and _is_lower(name[i + 1]):
            i += 1
            out.append(name[i])
        i += 1
    return "".join(out)