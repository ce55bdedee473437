"""Writing a starter protobuf file to begin a new service with."""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .naming import camel_case

logger = logging.getLogger(__name__)

_FALLBACK_NAME = "get_started"

STARTER_PROTO = """
syntax = "proto3";

package ${package_name};

import "google/api/annotations.proto";

service ${service_name} {
  rpc Status(StatusRequest) returns (StatusResponse) {
    option (google.api.http) = {
      get: "/status"
    };
  }
}

enum ServiceStatus {
  FAIL = 0;
  OK = 1;
}

message StatusRequest {
  bool full = 1;
}

message StatusResponse {
  ServiceStatus status = 1;
}
"""

NEXT_STEP_MSG = """A "starter" protobuf file named '${file_name}' has been created in the
current directory. You can generate a service based on this new protobuf file
at any time using the following command:

    truss ${file_name}

If you want to generate a protofile with a different name, use the
'--getstarted' option with the name of your choice after '--getstarted'. For
example, to generate a 'foo.proto', use the following command:

    truss --getstarted foo
"""

EXISTING_FILE_MSG = """There's already a "starter" protobuf file named '${file_name}' in the current
directory. If you'd like to generate a service based on this existing protobuf
file, you should instead run the command:

    truss ${file_name}"""

DOT_PROTO_IN_NAME = """The name you provided has a suffix of '.proto' when it should not. Instead of
'${got}', you should provide '${want}'. Here's an example of the correct
command to enter next time:

\ttruss --getstarted ${want}

For now this program is continuing as though you used '${want}'.
"""


@dataclass(frozen=True)
class ProtoInfo:
    """Names derived from the alias a user chose for a new service."""

    alias: str

    @property
    def package_name(self) -> str:
        """The alias lower cased, without dashes or spaces."""
        return self.alias.replace("-", "").replace(" ", "").lower()

    @property
    def file_name(self) -> str:
        """The name of the starter .proto file."""
        return self.package_name + ".proto"

    @property
    def service_name(self) -> str:
        """The alias CamelCased, dashes and spaces treated as word breaks."""
        return camel_case(self.alias.replace("-", "_").replace(" ", "_"))


class _Attributes:
    def __init__(self, obj: Any) -> None:
        self._obj = obj

    def __getitem__(self, key: str) -> Any:
        try:
            return getattr(self._obj, key)
        except AttributeError:
            raise KeyError(key) from None


def render_template(template: str, info: Any) -> str:
    """Fill the ``${name}`` placeholders of ``template`` from a mapping or
    from the attributes of an object."""
    values = info if isinstance(info, Mapping) else _Attributes(info)
    try:
        return string.Template(template).substitute(values)
    except (KeyError, ValueError) as err:
        raise ValueError(f"attempting to execute template: {err}") from err


def remove_dot_proto_suffix(pkg: str) -> str:
    """Strip ``.proto`` from ``pkg``, warning if it was given as a suffix."""
    want = pkg.replace(".proto", "")
    if pkg.endswith(".proto"):
        logger.warning(render_template(DOT_PROTO_IN_NAME, {"got": pkg, "want": want}))
    return want


def do(pkg: str = "") -> int:
    """Write a starter .proto file named after ``pkg`` to the current directory.

    Returns an exit status: 0 on success, 1 if the file exists or cannot be
    written.
    """
    info = ProtoInfo(alias=remove_dot_proto_suffix(pkg or _FALLBACK_NAME))
    target = Path(info.file_name)
    if target.exists():
        logger.error(render_template(EXISTING_FILE_MSG, info))
        return 1
    code = render_template(STARTER_PROTO, info)
    try:
        with target.open("x", encoding="utf-8") as handle:
            handle.write(code)
    except FileExistsError:
        logger.error(render_template(EXISTING_FILE_MSG, info))
        return 1
    except OSError as err:
        logger.error("cannot write default contents to %r: %s", info.file_name, err)
        return 1
    logger.info(render_template(NEXT_STEP_MSG, info))
    return 0