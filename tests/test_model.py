import pytest

from trussdef.model import (
    DebugInfo,
    Enum,
    Field,
    FieldType,
    HTTPBinding,
    HTTPParameter,
    LocationError,
    Map,
    Message,
    Service,
    ServiceMethod,
    Svcdef,
)


def test_debug_info_position_on_second_line():
    source = "package p\ntype T int\n"
    info = DebugInfo(path="t.go", source=source)
    assert info.position(source.index("type")) == "2:1"


def test_debug_info_position_counts_columns_within_line():
    source = "package p\ntype T int\n"
    info = DebugInfo(path="t.go", source=source)
    start = info.position(source.index("type"))
    later = info.position(source.index("T int"))
    assert start.split(":")[0] == later.split(":")[0]
    assert int(later.split(":")[1]) - int(start.split(":")[1]) == len("type ")


def test_debug_info_without_source_is_empty():
    assert DebugInfo().position(10) == ""


def test_location_error_message_and_location():
    err = LocationError("boom", "/tmp/a.go", "3:4")
    assert str(err) == 'boom in file "/tmp/a.go" at line 3:4'
    assert err.location() == "3:4"


def test_location_error_is_raisable():
    err = LocationError("bad type", "x.go", "1:2")
    assert err.err == "bad type"
    assert err.path == "x.go"
    with pytest.raises(LocationError, match="bad type"):
        raise err


def test_fields_compare_by_value():
    one = Field(name="A", pb_field_name="a", type=FieldType(name="int64"))
    two = Field(name="A", pb_field_name="a", type=FieldType(name="int64"))
    other = Field(name="A", pb_field_name="b", type=FieldType(name="int64"))
    assert one == two
    assert (one == other) is False


def test_self_referential_message_is_safe():
    node = Message(name="Node")
    child = Field(name="Child", type=FieldType(name="Node", star_expr=True))
    child.type.message = node
    node.fields.append(child)
    assert "Node" in repr(node)
    assert node == Message(name="Node", fields=[Field(name="Child", type=FieldType(name="Node", star_expr=True))])
    assert node.fields[0].type.message is node


def test_defaults_are_independent():
    first = Svcdef()
    second = Svcdef()
    first.messages.append(Message(name="M"))
    first.enums.append(Enum(name="E"))
    assert second.messages == []
    assert second.enums == []
    assert second.service is None


def test_map_and_binding_structure():
    value = FieldType(name="MsgA", star_expr=True)
    mp = Map(key_type=FieldType(name="string"), value_type=value)
    fld = Field(name="MapField", type=FieldType(map=mp))
    binding = HTTPBinding(verb="get", path="/1", params=[HTTPParameter(field=fld, location="query")])
    method = ServiceMethod(name="GetThing", bindings=[binding])
    svc = Service(name="Map", methods=[method])
    assert svc.methods[0].bindings[0].params[0].field.type.map.value_type is value
    assert svc.methods[0].bindings[0].params[0].location == "query"
    assert method.request_type is None