"""Finding the name of the service defined by protobuf files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import IO, Dict, Iterable, Sequence, Union

from . import svcdef
from .execprotoc import ProtocError, generate_pb_go

PathLike = Union[str, "os.PathLike[str]"]


def _read_all(paths: Iterable[Path]) -> Dict[str, str]:
    return {str(p): p.read_text(encoding="utf-8") for p in paths}


def from_paths(gopath: Iterable[str], proto_def_paths: Sequence[PathLike]) -> str:
    """Return the CamelCased name of the service in the given .proto files."""
    proto_paths = [Path(p) for p in proto_def_paths]
    with tempfile.TemporaryDirectory(prefix="parsesvcname") as out_dir:
        try:
            generate_pb_go([str(p) for p in proto_paths], list(gopath), out_dir)
        except ProtocError as err:
            raise ProtocError(
                "failed to generate .pb.go files from proto definition files: "
                f"{err}",
                err.output,
            ) from err
        pbgo_paths = [Path(out_dir, p.stem + ".pb.go") for p in proto_paths]
        pbgo_files = _read_all(pbgo_paths)
    proto_files = _read_all(proto_paths)

    try:
        sd = svcdef.new(pbgo_files, proto_files)
    except ValueError as err:
        raise ValueError(
            "failed to create service definition; did you pass ALL the protobuf "
            f"files to truss?: {err}"
        ) from err
    if sd.service is None:
        raise ValueError("no service defined")
    return sd.service.name


def from_readers(gopath: Iterable[str], readers: Iterable[IO]) -> str:
    """Return the service name of protobuf definitions read from ``readers``."""
    with tempfile.TemporaryDirectory(prefix="parsesvcname-fromreaders") as proto_dir:
        paths = []
        for reader in readers:
            data = reader.read()
            if isinstance(data, str):
                data = data.encode("utf-8")
            fd, path = tempfile.mkstemp(prefix="parsesvcname-fromreader", dir=proto_dir)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            paths.append(path)
        return from_paths(gopath, paths)