"""Building a service definition straight from the text of a .proto file."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Iterable

from . import svcdef
from .execprotoc import ProtocError, generate_pb_go
from .model import Svcdef

_DEF_FILE_NAME = "definition.proto"
_GO_FILE_NAME = "definition.pb.go"


def new_from_string(definition: str, gopath: Iterable[str]) -> Svcdef:
    """Create a Svcdef from the text of a valid protobuf file.

    protoc is run on the text to produce the Go code it is read from.
    """
    with tempfile.TemporaryDirectory(prefix="trusssvcdef") as proto_dir:
        def_path = Path(proto_dir, _DEF_FILE_NAME)
        def_path.write_text(definition, encoding="utf-8")

        try:
            generate_pb_go([str(def_path)], list(gopath), proto_dir)
        except ProtocError as err:
            raise ProtocError(f"cannot create a pb.go file: {err}", err.output) from err

        go_path = Path(proto_dir, _GO_FILE_NAME)
        try:
            pbgo = go_path.read_text(encoding="utf-8")
        except OSError as err:
            raise ProtocError(f"cannot read pb.go file {str(go_path)!r}: {err}") from err

    try:
        return svcdef.new(
            {"/tmp/doesntexist.pb.go": pbgo},
            {"/tmp/doesntexist.proto": definition},
        )
    except ValueError as err:
        raise ValueError(
            f"cannot create new svcdef from pb.go and definition: {err}"
        ) from err