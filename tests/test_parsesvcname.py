import io
import shutil
import subprocess
from pathlib import Path

import pytest

from trussdef.execprotoc import ProtocError
from trussdef.parsesvcname import from_paths, from_readers

GO_TEMPLATE = """
package echo

type EchoRequest struct {
\tIn string `protobuf:"bytes,1,opt,name=In,proto3" json:"In,omitempty"`
}

type EchoResponse struct {
\tOut string `protobuf:"bytes,1,opt,name=Out,proto3" json:"Out,omitempty"`
}

type SERVICEClient interface {
\tEcho(ctx context.Context, in *EchoRequest, opts ...grpc.CallOption) (*EchoResponse, error)
}

type SERVICEServer interface {
\tEcho(context.Context, *EchoRequest) (*EchoResponse, error)
}
"""

NO_SERVICE_GO = """
package echo

type EchoRequest struct {
\tIn string `protobuf:"bytes,1,opt,name=In,proto3" json:"In,omitempty"`
}
"""

ANNOTATED = """
\tsyntax = "proto3";
\tpackage echo;

\timport "google/api/annotations.proto";

\tservice BounceEcho {
\t  rpc Echo (EchoRequest) returns (EchoResponse) {
\t\toption (google.api.http) = {
\t\t\tget: "/echo"
\t\t  };
\t  }
\t}
\tmessage EchoRequest {
\t  string In = 1;
\t}
\tmessage EchoResponse {
\t  string Out = 1;
\t}
\t"""


def _plain(service):
    return f"""
\tsyntax = "proto3";
\tpackage echo;

\tservice {service} {{
\t  rpc Echo (EchoRequest) returns (EchoResponse) {{}}
\t}}
\tmessage EchoRequest {{
\t  string In = 1;
\t}}
\tmessage EchoResponse {{
\t  string Out = 1;
\t}}
\t"""


def _install_protoc(monkeypatch, go_source):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/" + name)

    def fake_run(cmd, **kwargs):
        flag = next(a for a in cmd if a.startswith("--gogofaster_out="))
        out_dir = flag.split("plugins=grpc:", 1)[1]
        for proto in (a for a in cmd[1:] if not a.startswith("-")):
            Path(out_dir, Path(proto).stem + ".pb.go").write_text(go_source)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"")

    monkeypatch.setattr(subprocess, "run", fake_run)


def test_from_paths(monkeypatch, tmp_path):
    _install_protoc(monkeypatch, GO_TEMPLATE.replace("SERVICE", "BounceEcho"))
    path = tmp_path / "trusstest"
    path.write_text(ANNOTATED)
    assert from_paths(["/gopath"], [str(path)]) == "BounceEcho"


def test_from_reader(monkeypatch):
    _install_protoc(monkeypatch, GO_TEMPLATE.replace("SERVICE", "BounceEcho"))
    assert from_readers(["/gopath"], [io.StringIO(ANNOTATED)]) == "BounceEcho"


def test_from_reader_bytes(monkeypatch):
    _install_protoc(monkeypatch, GO_TEMPLATE.replace("SERVICE", "BounceEcho"))
    reader = io.BytesIO(ANNOTATED.encode("utf-8"))
    assert from_readers(["/gopath"], [reader]) == "BounceEcho"


@pytest.mark.parametrize(
    "proto_name, go_name",
    [
        ("BounceEcho", "BounceEcho"),
        ("foo_bar_test", "FooBarTest"),
        ("_Foo_Bar", "XFoo_Bar"),
    ],
)
def test_unannotated_services(monkeypatch, proto_name, go_name):
    _install_protoc(monkeypatch, GO_TEMPLATE.replace("SERVICE", go_name))
    assert from_readers(["/gopath"], [io.StringIO(_plain(proto_name))]) == go_name


def test_no_service_defined(monkeypatch):
    _install_protoc(monkeypatch, NO_SERVICE_GO)
    text = 'syntax = "proto3";\npackage echo;\n'
    with pytest.raises(ValueError, match="no service defined"):
        from_readers([], [io.StringIO(text)])


def test_protoc_failure(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, stdout=b"bad"),
    )
    with pytest.raises(ProtocError, match="failed to generate .pb.go files"):
        from_readers([], [io.StringIO(ANNOTATED)])