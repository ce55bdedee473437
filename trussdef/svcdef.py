"""Construction of a service definition from the Go code generated for a
protobuf definition and from the .proto files themselves."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import IO, Dict, List, Mapping, Optional, Set, Union

from . import goast
from .consolidate import consolidate_http
from .model import (
    DebugInfo,
    Enum,
    Field,
    FieldType,
    LocationError,
    Map,
    Message,
    Service,
    ServiceMethod,
    Svcdef,
)
from .svcparse.scanner import Source

logger = logging.getLogger(__name__)

GoSource = Union[str, bytes, bytearray, IO[str], IO[bytes]]
Oneofs = Dict[str, List[Field]]

_PROTOBUF_TAG = re.compile(r'(?:^|\s)protobuf:"((?:[^"\\]|\\.)*)"')


@dataclass
class TypeBox:
    """Either a message or an enum, found by its name."""

    message: Optional[Message] = None
    enum: Optional[Enum] = None


def _quoted(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _read_text(source: GoSource) -> str:
    data = source if isinstance(source, (str, bytes, bytearray)) else source.read()
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", errors="replace")


def _oneof_types(go_file: goast.GoFile, oneof_ifaces: Set[str]) -> Dict[str, str]:
    """Map each oneof member struct to the interface it implements."""
    types: Dict[str, str] = {}
    for decl in go_file.func_decls:
        if decl.name.name not in oneof_ifaces or not decl.recv:
            continue
        recv = decl.recv[0].type
        if isinstance(recv, goast.StarExpr) and isinstance(recv.x, goast.Ident):
            types[recv.x.name] = decl.name.name
    return types


def _collect_oneofs(
    specs: List[goast.TypeSpec], oneof_types: Dict[str, str], oneofs: Oneofs
) -> None:
    for spec in specs:
        if not isinstance(spec.type, goast.StructType) or not spec.name.is_exported:
            continue
        iface = oneof_types.get(spec.name.name)
        if iface is None:
            continue
        try:
            msg = new_message(spec, oneofs)
        except ValueError as err:
            raise ValueError(f"error parsing message {_quoted(spec.name.name)}: {err}") from err
        if not msg.fields:
            continue
        member = msg.fields[0]
        member.type.message = Message(name=msg.name)
        oneofs.setdefault(iface, []).append(member)


def new(
    go_files: Optional[Mapping[str, GoSource]],
    proto_files: Optional[Mapping[str, Source]],
) -> Svcdef:
    """Build a Svcdef from generated Go files and their .proto files."""
    sd = Svcdef()
    oneofs: Oneofs = {}

    for path, source in (go_files or {}).items():
        text = _read_text(source)
        try:
            go_file = goast.parse_file(text)
        except goast.GoSyntaxError as err:
            raise ValueError(f"cannot parse go file {_quoted(path)} to create Svcdef: {err}") from err
        info = DebugInfo(path=path, source=text)
        sd.pkg_name = go_file.package_name
        specs = go_file.type_specs

        oneof_ifaces: Set[str] = set()
        for spec in specs:
            if not isinstance(spec.type, goast.InterfaceType):
                continue
            name = spec.name.name
            if not name.endswith("Server"):
                if name.startswith("is"):
                    oneof_ifaces.add(name)
                elif not name.endswith("Client"):
                    logger.warning("Unexpected interface %s found; skipping", name)
                continue
            try:
                sd.service = new_service(spec, info)
            except (LocationError, ValueError) as err:
                raise ValueError(f"error parsing service {_quoted(name)}: {err}") from err

        oneof_types: Dict[str, str] = {}
        if not oneofs:
            oneof_types = _oneof_types(go_file, oneof_ifaces)
            _collect_oneofs(specs, oneof_types, oneofs)

        for spec in specs:
            if isinstance(spec.type, goast.Ident):
                if spec.type.name == "int32":
                    sd.enums.append(new_enum(spec))
            elif isinstance(spec.type, goast.StructType):
                if not spec.name.is_exported or spec.name.name in oneof_types:
                    continue
                try:
                    sd.messages.append(new_message(spec, oneofs))
                except ValueError as err:
                    raise ValueError(
                        f"error parsing message {_quoted(spec.name.name)}: {err}"
                    ) from err

    resolve_types(sd)
    try:
        consolidate_http(sd, proto_files)
    except ValueError as err:
        raise ValueError(f"failed to consolidate HTTP: {err}") from err
    return sd


def new_enum(spec: goast.TypeSpec) -> Enum:
    """Return the enum declared by ``spec``."""
    return Enum(name=spec.name.name)


def new_message(spec: goast.TypeSpec, oneofs: Optional[Oneofs] = None) -> Message:
    """Return the message declared by a struct type spec, skipping XXX_ fields."""
    if not isinstance(spec.type, goast.StructType):
        raise ValueError(f"type {_quoted(spec.name.name)} is not a struct")
    msg = Message(name=spec.name.name)
    for ast_field in spec.type.fields:
        if not ast_field.names:
            continue
        field_name = ast_field.names[0].name
        if field_name.startswith("XXX_"):
            continue
        try:
            msg.fields.append(new_field(ast_field, oneofs))
        except ValueError as err:
            raise ValueError(
                f"cannot create field {_quoted(field_name)} while creating message "
                f"{_quoted(msg.name)}: {err}"
            ) from err
    return msg


def new_map(expr: goast.MapType) -> Map:
    """Return the map described by a map type whose key is a plain name and
    whose value is a name, possibly behind pointers."""
    if not isinstance(expr, goast.MapType):
        raise ValueError("expression is not a map type")
    if not isinstance(expr.key, goast.Ident):
        raise ValueError("map key is not a plain type name")
    result = Map(key_type=FieldType(name=expr.key.name))
    value = expr.value
    while isinstance(value, goast.StarExpr):
        result.value_type.star_expr = True
        value = value.x
    if isinstance(value, goast.Ident):
        result.value_type.name = value.name
    return result


def new_service(spec: goast.TypeSpec, info: Optional[DebugInfo]) -> Service:
    """Return the service described by an ``{NAME}Server`` interface."""
    if not isinstance(spec.type, goast.InterfaceType):
        raise ValueError(f"type {_quoted(spec.name.name)} is not an interface")
    service = Service(name=spec.name.name.removesuffix("Server"))
    for method in spec.type.methods:
        if not method.names:
            continue
        try:
            service.methods.append(new_service_method(method, info))
        except (LocationError, ValueError) as err:
            raise ValueError(
                f"cannot create service method {_quoted(method.names[0].name)} of service "
                f"{_quoted(service.name)}: {err}"
            ) from err
    return service


def _location_error(message: str, info: Optional[DebugInfo], pos: int) -> LocationError:
    if info is None:
        return LocationError(message, "", "")
    return LocationError(message, info.path, info.position(pos))


def _make_field_type(node: goast.AstField, info: Optional[DebugInfo]) -> FieldType:
    if not isinstance(node.type, goast.StarExpr):
        raise _location_error("cannot create FieldType, type is not a pointer", info, node.pos)
    target = node.type.x
    if isinstance(target, goast.SelectorExpr):
        name = target.sel.name
    elif isinstance(target, goast.Ident):
        name = target.name
    else:
        raise _location_error(
            "cannot create FieldType, pointer target is not a name or a qualified name",
            info,
            node.type.pos,
        )
    return FieldType(name=name, star_expr=True)


def new_service_method(field: goast.AstField, info: Optional[DebugInfo]) -> ServiceMethod:
    """Return a service method from an interface method
    ``Name(context.Context, *Request) (*Response, error)``."""
    method = ServiceMethod(name=field.names[0].name)
    signature = field.type
    if not isinstance(signature, goast.FuncType):
        raise _location_error(
            "provided field type is not a function type; cannot proceed", info, field.pos
        )
    if len(signature.params) < 2 or not signature.results:
        raise _location_error(
            "method signature lacks a request parameter or a result", info, field.pos
        )
    try:
        method.request_type = _make_field_type(signature.params[1], info)
    except LocationError as err:
        raise ValueError(
            f"requestType creation of service method {_quoted(method.name)} failed: {err}"
        ) from err
    try:
        method.response_type = _make_field_type(signature.results[0], info)
    except LocationError as err:
        raise ValueError(
            f"responseType creation of service method {_quoted(method.name)} failed: {err}"
        ) from err
    return method


def _pb_field_name(tag: Optional[str]) -> str:
    if tag is None:
        return ""
    match = _PROTOBUF_TAG.search(tag[1:-1])
    if match is None:
        return ""
    parts = match.group(1).split(",")
    if len(parts) < 4:
        return ""
    for part in parts[3:5]:
        idx = part.find("=")
        if idx != -1:
            return part[idx + 1 :]
    return ""


def new_field(field: goast.AstField, oneofs: Optional[Oneofs] = None) -> Field:
    """Return a message field from a struct field of generated code."""
    if not field.names:
        raise ValueError("struct field has no name")
    oneofs = oneofs or {}
    result = Field(name=field.names[0].name, pb_field_name=_pb_field_name(field.tag))
    ftype = result.type
    expr = field.type
    while True:
        if isinstance(expr, goast.Ident):
            ftype.name += expr.name
            if expr.name in oneofs:
                ftype.oneof = oneofs[expr.name]
            break
        if isinstance(expr, goast.StarExpr):
            ftype.star_expr = True
            expr = expr.x
        elif isinstance(expr, goast.ArrayType):
            if ftype.array_type:
                ftype.name = "[]" + ftype.name
            ftype.array_type = True
            expr = expr.elt
        elif isinstance(expr, goast.MapType):
            try:
                ftype.map = new_map(expr)
            except ValueError as err:
                raise ValueError(
                    f"failed to create map for field {_quoted(result.name)}: {err}"
                ) from err
            break
        else:
            break
    return result


def new_type_map(sd: Svcdef) -> Dict[str, TypeBox]:
    """Map the names of messages and enums to their definitions."""
    tmap = {m.name: TypeBox(message=m) for m in sd.messages}
    tmap.update({e.name: TypeBox(enum=e) for e in sd.enums})
    return tmap


def _set_type(ftype: Optional[FieldType], tmap: Dict[str, TypeBox]) -> None:
    if ftype is None:
        return
    if ftype.map is not None and ftype.map.value_type.star_expr:
        ftype = ftype.map.value_type
    entry = tmap.get(ftype.name)
    if entry is None:
        return
    if entry.enum is not None:
        ftype.enum = entry.enum
    elif entry.message is not None:
        ftype.message = entry.message


def resolve_types(sd: Svcdef) -> None:
    """Link field, request and response types to the messages and enums they name."""
    tmap = new_type_map(sd)
    for msg in sd.messages:
        for fld in msg.fields:
            _set_type(fld.type, tmap)
    if sd.service is not None:
        for method in sd.service.methods:
            _set_type(method.request_type, tmap)
            _set_type(method.response_type, tmap)