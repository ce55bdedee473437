"""Running protoc on .proto files given by their paths on disk."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

PathLike = Union[str, "os.PathLike[str]"]

_GOGO_TYPES = "github.com/gogo/protobuf/types"
_WELL_KNOWN = ("any", "duration", "struct", "timestamp", "wrappers")


class ProtocError(RuntimeError):
    """Raised when protoc or one of its plugins cannot be run or fails."""

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)


def _go_out_flag(out_dir: PathLike) -> str:
    mappings = ",".join(
        f"Mgoogle/protobuf/{name}.proto={_GOGO_TYPES}" for name in _WELL_KNOWN
    )
    return (
        f"--gogofaster_out={mappings},"
        f"paths=source_relative,plugins=grpc:{os.fspath(out_dir)}"
    )


def generate_pb_go(
    proto_paths: Sequence[PathLike], gopath: Iterable[str], out_dir: PathLike
) -> None:
    """Create .pb.go files for ``proto_paths`` in ``out_dir``."""
    if shutil.which("protoc-gen-gogo") is None:
        raise ProtocError("cannot find protoc-gen-gogo in PATH")
    try:
        run_protoc(proto_paths, gopath, _go_out_flag(out_dir))
    except ProtocError as err:
        raise ProtocError(
            f"cannot exec protoc with protoc-gen-gogo: {err}", err.output
        ) from err


def _protoc_output(proto_paths: Sequence[PathLike], gopath: Iterable[str]) -> bytes:
    if shutil.which("protoc-gen-truss-protocast") is None:
        raise ProtocError("protoc-gen-truss-protocast does not exist in $PATH")
    with tempfile.TemporaryDirectory(prefix="truss-") as out_dir:
        try:
            run_protoc(proto_paths, gopath, f"--truss-protocast_out={out_dir}")
        except ProtocError as err:
            raise ProtocError(f"protoc failed: {err}", err.output) from err
        for entry in sorted(Path(out_dir).iterdir()):
            if entry.is_dir():
                continue
            try:
                return entry.read_bytes()
            except OSError as err:
                raise ProtocError(f"cannot read file: {entry}: {err}") from err
        raise ProtocError(f"no protoc output file found in: {out_dir}")


def code_generator_request(
    proto_paths: Sequence[PathLike], gopath: Iterable[str]
) -> plugin_pb2.CodeGeneratorRequest:
    """Return the CodeGeneratorRequest protoc builds for ``proto_paths``."""
    data = _protoc_output(proto_paths, gopath)
    request = plugin_pb2.CodeGeneratorRequest()
    try:
        request.ParseFromString(data)
    except DecodeError as err:
        raise ProtocError(
            f"cannot unmarshal protoc output to code generator request: {err}"
        ) from err
    return request


def run_protoc(
    proto_paths: Sequence[PathLike], gopath: Iterable[str], plugin: str
) -> None:
    """Run protoc with ``plugin`` on ``proto_paths``.

    The directory of the first path is the proto path; each gopath entry
    contributes its ``src`` directory as an include path.
    """
    paths: List[str] = [os.fspath(p) for p in proto_paths]
    if not paths:
        raise ValueError("no proto files given to protoc")
    args = [f"--proto_path={os.path.dirname(paths[0]) or '.'}"]
    args.extend(f"-I{os.path.join(gp, 'src')}" for gp in gopath)
    args.append(plugin)
    args.extend(paths)
    command = ["protoc", *args]

    try:
        result = subprocess.run(
            command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
        )
    except OSError as err:
        raise ProtocError(f"protoc exec failed: {err}") from err
    if result.returncode != 0:
        output = (result.stdout or b"").decode("utf-8", errors="replace")
        raise ProtocError(
            "protoc exec failed.\nprotoc output:\n\n"
            f"{output}\nprotoc arguments:\n\n{command}\n\n",
            output,
        )