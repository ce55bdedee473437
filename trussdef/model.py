"""Data model of a service definition as seen from the generated Go code."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Enum:
    """A protobuf enum, known only by name."""

    name: str


@dataclass
class FieldType:
    """The type of one field: its name, whether it is a pointer or slice,
    and the message, enum, map or oneof it refers to.

    ``message`` is left out of comparisons and repr, since messages may
    refer to themselves.
    """

    name: str = ""
    enum: Optional[Enum] = None
    oneof: List["Field"] = field(default_factory=list)
    message: Optional["Message"] = field(default=None, compare=False, repr=False)
    map: Optional["Map"] = None
    star_expr: bool = False
    array_type: bool = False


@dataclass
class Map:
    """A map field; the key is always a base type."""

    key_type: FieldType = field(default_factory=FieldType)
    value_type: FieldType = field(default_factory=FieldType)


@dataclass
class Field:
    """A field of a message.

    ``name`` is the Go name; ``pb_field_name`` the name in the .proto file.
    """

    name: str
    pb_field_name: str = ""
    type: FieldType = field(default_factory=FieldType)


@dataclass
class Message:
    """A protobuf message, greatly simplified."""

    name: str
    fields: List[Field] = field(default_factory=list)


@dataclass
class HTTPParameter:
    """Where one request field is found for a binding: body, path or query."""

    field: Field
    location: str


@dataclass
class HTTPBinding:
    """One mapping of a service method onto an HTTP verb and path."""

    verb: str = ""
    path: str = ""
    params: List[HTTPParameter] = field(default_factory=list)


@dataclass
class ServiceMethod:
    """A method of the service with its request, response and bindings."""

    name: str
    request_type: Optional[FieldType] = None
    response_type: Optional[FieldType] = None
    bindings: List[HTTPBinding] = field(default_factory=list)


@dataclass
class Service:
    """The service of a definition and its methods."""

    name: str
    methods: List[ServiceMethod] = field(default_factory=list)


@dataclass
class Svcdef:
    """Top level of a service definition."""

    pkg_name: str = ""
    messages: List[Message] = field(default_factory=list)
    enums: List[Enum] = field(default_factory=list)
    service: Optional[Service] = None


@dataclass
class DebugInfo:
    """Context for error messages: the file path and its source text."""

    path: str = ""
    source: Optional[str] = None

    def position(self, pos: int) -> str:
        """Return ``line:column`` for an offset, or "" without source text."""
        if self.source is None:
            return ""
        line = self.source.count("\n", 0, pos) + 1
        column = pos - (self.source.rfind("\n", 0, pos) + 1) + 1
        return f"{line}:{column}"


class LocationError(Exception):
    """An error tied to a position within a file."""

    def __init__(self, err: str, path: str, position: str) -> None:
        self.err = err
        self.path = path
        self.position = position
        quoted = json.dumps(path, ensure_ascii=False)
        super().__init__(f"{err} in file {quoted} at line {position}")

    def location(self) -> str:
        """Return the position the error was found at."""
        return self.position