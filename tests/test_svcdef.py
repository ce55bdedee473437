import io

import pytest

from trussdef import goast
from trussdef.model import DebugInfo, Enum, Field, FieldType, LocationError, Message, Svcdef
from trussdef.svcdef import (
    TypeBox,
    new,
    new_enum,
    new_field,
    new_map,
    new_message,
    new_service,
    new_service_method,
    new_type_map,
    resolve_types,
)


def _specs(source):
    return {spec.name.name: spec for spec in goast.parse_file(source).type_specs}


TYPE_RESOLUTION_GO = """
package TEST
type EnumType int32

type NestedMessageA struct {
	A *NestedMessageC
}
type NestedMessageB struct {
	A []*NestedMessageC
}
type NestedMessageC struct {
	A int64
}

type NestedTypeRequest struct {
	A *NestedMessageA
	B []*NestedMessageB
	C EnumType
}"""


@pytest.mark.parametrize(
    "name, fieldname, typename",
    [
        ("NestedMessageA", "A", "NestedMessageC"),
        ("NestedMessageB", "A", "NestedMessageC"),
        ("NestedTypeRequest", "A", "NestedMessageA"),
        ("NestedTypeRequest", "B", "NestedMessageB"),
        ("NestedTypeRequest", "C", "EnumType"),
    ],
)
def test_type_resolution(name, fieldname, typename):
    sd = new({"/tmp/notreal": TYPE_RESOLUTION_GO}, None)
    tmap = new_type_map(sd)
    msg = tmap[name].message
    assert msg.name == name
    selected = next(f for f in msg.fields if f.name == fieldname)
    assert selected.type.name == typename
    box = tmap[selected.type.name]
    if box.enum is not None:
        assert selected.type.enum is box.enum
    else:
        assert selected.type.message is box.message


def test_new_map_type_resolution():
    code = """
package TEST

type NestedMessageC struct {
	A int64
}
type MsgWithMap struct {
	Beta map[int64]*NestedMessageC
}
"""
    sd = new({"/tmp/notreal": io.StringIO(code)}, None)
    msgs = {m.name: m for m in sd.messages}
    beta = msgs["MsgWithMap"].fields[0].type.map
    assert beta.key_type.name == "int64"
    assert beta.value_type.star_expr is True
    assert beta.value_type.message is msgs["NestedMessageC"]


def test_pb_field_names_and_messages():
    code = """
package general

type SumRequest struct {
	A int64 `protobuf:"varint,1,opt,name=a,proto3" json:"a,omitempty"`
	B int64 `protobuf:"varint,2,opt,name=b,proto3" json:"b,omitempty"`
	XXX_unrecognized []byte `json:"-"`
}
type SumReply struct {
	V   int64  `protobuf:"varint,1,opt,name=v,proto3" json:"v,omitempty"`
	Err string `protobuf:"bytes,2,opt,name=err,proto3" json:"err,omitempty"`
}
type helper struct {
	X int
}
"""
    sd = new({"sum.pb.go": code.encode()}, None)
    assert sd.pkg_name == "general"
    assert sd.messages == [
        Message(
            name="SumRequest",
            fields=[
                Field(name="A", pb_field_name="a", type=FieldType(name="int64")),
                Field(name="B", pb_field_name="b", type=FieldType(name="int64")),
            ],
        ),
        Message(
            name="SumReply",
            fields=[
                Field(name="V", pb_field_name="v", type=FieldType(name="int64")),
                Field(name="Err", pb_field_name="err", type=FieldType(name="string")),
            ],
        ),
    ]


def test_enums_are_int32_types_only():
    code = "package p\n\ntype Color int32\ntype Size int64\n"
    sd = new({"p.go": code}, None)
    assert sd.enums == [Enum(name="Color")]
    assert sd.messages == []


def test_service_and_client_interfaces():
    code = """
package p

type SumSvcServer interface {
	Sum(context.Context, *SumRequest) (*SumReply, error)
}
type SumSvcClient interface {
	Sum(ctx context.Context, in *SumRequest, opts ...grpc.CallOption) (*SumReply, error)
}
type SumRequest struct {
	A int64
}
type SumReply struct {
	V int64
}
"""
    sd = new({"p.go": code}, None)
    assert sd.service.name == "SumSvc"
    method = sd.service.methods[0]
    assert method.name == "Sum"
    assert method.request_type.name == "SumRequest"
    assert method.request_type.star_expr is True
    assert method.request_type.message is sd.messages[0]
    assert method.response_type.message is sd.messages[1]


def test_oneof_members():
    code = """
package p

type isMsg_Choice interface {
	isMsg_Choice()
}
type Msg struct {
	Choice isMsg_Choice `protobuf_oneof:"choice"`
	Name   string       `protobuf:"bytes,3,opt,name=name,proto3" json:"name,omitempty"`
}
type Msg_A struct {
	A int64 `protobuf:"varint,1,opt,name=a,proto3,oneof"`
}
func (*Msg_A) isMsg_Choice() {}
"""
    sd = new({"p.go": code}, None)
    assert [m.name for m in sd.messages] == ["Msg"]
    choice, name = sd.messages[0].fields
    assert choice.pb_field_name == ""
    assert choice.type.name == "isMsg_Choice"
    assert [f.name for f in choice.type.oneof] == ["A"]
    assert choice.type.oneof[0].pb_field_name == "a"
    assert choice.type.oneof[0].type.message.name == "Msg_A"
    assert name.pb_field_name == "name"


def test_new_rejects_invalid_go():
    with pytest.raises(ValueError, match="cannot parse go file"):
        new({"bad.go": "this is not go"}, None)


def test_new_field_nested_slices_and_packed_tag():
    spec = _specs(
        "package p\ntype M struct {\n"
        '\tData [][]byte `protobuf:"bytes,1,rep,name=data,proto3"`\n'
        '\tIds []int64 `protobuf:"varint,2,rep,packed,name=ids,proto3"`\n'
        "}\n"
    )["M"]
    data = new_field(spec.type.fields[0])
    assert data.type.name == "[]byte"
    assert data.type.array_type is True
    assert data.pb_field_name == "data"
    ids = new_field(spec.type.fields[1])
    assert ids.type.name == "int64"
    assert ids.pb_field_name == "ids"


def test_new_message_and_enum_from_specs():
    specs = _specs("package p\ntype E int32\ntype M struct {\n\tA *Other\n}\n")
    assert new_enum(specs["E"]) == Enum(name="E")
    msg = new_message(specs["M"])
    assert msg.name == "M"
    assert msg.fields[0].type == FieldType(name="Other", star_expr=True)


def test_new_map():
    spec = _specs("package p\ntype M struct {\n\tF map[string]*Val\n\tG map[int32]string\n}\n")["M"]
    first = new_map(spec.type.fields[0].type)
    assert first.key_type.name == "string"
    assert first.value_type == FieldType(name="Val", star_expr=True)
    second = new_map(spec.type.fields[1].type)
    assert second.value_type == FieldType(name="string")


def test_new_map_rejects_non_map():
    with pytest.raises(ValueError):
        new_map(goast.Ident("int"))


def test_new_service_method_non_pointer_request():
    src = "package p\n\ntype FooServer interface {\n\tBad(context.Context, Req) (*Resp, error)\n}\n"
    spec = _specs(src)["FooServer"]
    info = DebugInfo(path="svc.go", source=src)
    with pytest.raises(ValueError, match="requestType creation") as excinfo:
        new_service_method(spec.type.methods[0], info)
    cause = excinfo.value.__cause__
    assert isinstance(cause, LocationError)
    assert cause.path == "svc.go"
    assert cause.location() == "4:23"


def test_new_service_method_requires_function_type():
    field = goast.AstField(names=[goast.Ident("X")], type=goast.Ident("int"))
    with pytest.raises(LocationError) as excinfo:
        new_service_method(field, None)
    assert excinfo.value.location() == ""


def test_new_service_wraps_method_errors():
    src = "package p\ntype FooServer interface {\n\tBad(context.Context, Req) (*Resp, error)\n}\n"
    spec = _specs(src)["FooServer"]
    with pytest.raises(ValueError, match='cannot create service method "Bad" of service "Foo"'):
        new_service(spec, None)


def test_resolve_types_and_type_map():
    enum = Enum(name="Kind")
    target = Message(name="Target")
    holder = Message(
        name="Holder",
        fields=[
            Field(name="K", type=FieldType(name="Kind")),
            Field(name="T", type=FieldType(name="Target", star_expr=True)),
        ],
    )
    sd = Svcdef(messages=[target, holder], enums=[enum])
    tmap = new_type_map(sd)
    assert tmap["Kind"] == TypeBox(enum=enum)
    assert tmap["Target"].message is target
    resolve_types(sd)
    assert holder.fields[0].type.enum is enum
    assert holder.fields[1].type.message is target