"""Association of HTTP annotations with the methods of a service definition."""

from __future__ import annotations

import json
import logging
import re
from typing import List, Mapping, Optional, Tuple

from .model import Field, HTTPBinding, HTTPParameter, Service, ServiceMethod, Svcdef
from .naming import camel_case
from .svcparse import parser as httpparse
from .svcparse.lexer import SvcLexer
from .svcparse.scanner import Source

logger = logging.getLogger(__name__)

_STANDARD_VERBS = ("get", "put", "post", "delete", "patch")
_PATH_PARAM = re.compile(r"\{(.*?)\}")


def _quoted(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def consolidate_http(sd: Svcdef, proto_files: Optional[Mapping[str, Source]]) -> None:
    """Add HTTP bindings and their parameters to the methods of ``sd``.

    Each proto file is parsed for its service definition; files without one
    are skipped. An rpc lacking HTTP annotations stops the process with a
    warning, leaving HTTP bindings out.
    """
    for source in (proto_files or {}).values():
        lex = SvcLexer(source)
        try:
            parsed = httpparse.parse_service(lex)
        except EOFError:
            continue
        except httpparse.ParserError as err:
            if err.optional:
                logger.warning(
                    "Parser found rpc method which lacks HTTP annotations; this "
                    "is allowed, but will result in HTTP transport not being "
                    "generated."
                )
                return
            raise ValueError(
                f"error while parsing http options for the service definition: {err}"
            ) from err
        try:
            assemble_http_params(sd.service, parsed)
        except ValueError as err:
            raise ValueError(f"while assembling HTTP parameters: {err}") from err


def _create_binding(method: ServiceMethod, parsed: httpparse.HTTPBinding) -> HTTPBinding:
    message = method.request_type.message if method.request_type is not None else None
    if message is None:
        raise ValueError(
            f"request type of service method {_quoted(method.name)} is not a known message"
        )
    verb, path = get_verb(parsed)
    params = [
        HTTPParameter(field=field, location=param_location(field, parsed))
        for field in message.fields
    ]
    return HTTPBinding(verb=verb, path=path, params=params)


def assemble_http_params(svc: Optional[Service], httpsvc: httpparse.Service) -> None:
    """Attach one binding per parsed HTTP binding to the matching service method."""
    methods = svc.methods if svc is not None else []
    for parsed_method in httpsvc.methods:
        wanted = camel_case(parsed_method.name)
        method = next((m for m in methods if m.name == wanted), None)
        if method is None:
            raise ValueError(
                f"cannot find service method named {_quoted(parsed_method.name)}"
            )
        for parsed in parsed_method.http_bindings:
            method.bindings.append(_create_binding(method, parsed))


def get_verb(binding: httpparse.HTTPBinding) -> Tuple[str, str]:
    """Return the verb and path of a binding, or two empty strings if it has none.

    A custom pattern takes precedence over the standard verb fields.
    """
    if binding.custom_http_pattern:
        verb = path = ""
        for field in binding.custom_http_pattern:
            if field.kind == "kind":
                verb = field.value
            elif field.kind == "path":
                path = field.value
        return verb, path
    for field in binding.fields:
        if field.kind in _STANDARD_VERBS:
            return field.kind, field.value
    return "", ""


def get_path_params(binding: httpparse.HTTPBinding) -> List[str]:
    """Return the names of the parameters within the binding's path."""
    _, path = get_verb(binding)
    return [match.split("=")[0] for match in _PATH_PARAM.findall(path)]


def param_location(field: Field, binding: httpparse.HTTPBinding) -> str:
    """Return where ``field`` is found for ``binding``: path, body or query."""
    for param in get_path_params(binding):
        if camel_case(param.split(".")[0]) == field.name:
            return "path"
    for opt in binding.fields:
        if opt.kind != "body":
            continue
        if opt.value == "*" or opt.value == field.name:
            return "body"
        if camel_case(opt.value.split(".")[0]) == field.name:
            return "body"
    return "query"