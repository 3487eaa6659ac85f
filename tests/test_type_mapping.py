import logging

import pytest

from beef_binding_generator.models import (
    EnumRef,
    FunctionPointer,
    Parameter,
    Pointer,
    Primitive,
    Qualified,
    StructRef,
    TypedefRef,
    UnknownType,
    Unsupported,
)
from beef_binding_generator.naming import NamingConfig
from beef_binding_generator.type_mapping import TypeMapper, parameter_name


@pytest.mark.parametrize(
    "t, expected",
    [
        (Primitive("int"), "c_int"),
        (Primitive("bool"), "c_bool"),
        (Primitive("char"), "c_char"),
        (Primitive("float"), "float"),
        (Primitive("void"), "void"),
        (Pointer(Qualified(Primitive("char"))), "c_char*"),
        (Pointer(Pointer(Primitive("void"))), "void**"),
        (TypedefRef("uint32_t"), "uint32"),
        (TypedefRef("int64_t"), "int64"),
        (TypedefRef("size_t"), "c_size"),
        (TypedefRef("WGPUBuffer"), "Buffer"),
        (TypedefRef("WGPUTextureUsageFlags"), "TextureUsage"),
        (StructRef("WGPUColor"), "Color"),
        (EnumRef("WGPUTextureFormat"), "TextureFormat"),
        (Pointer(Qualified(StructRef("WGPUBufferDescriptor"))), "BufferDescriptor*"),
    ],
)
def test_map(mapper, t, expected):
    assert mapper.map(t) == expected


def test_bare_flags_typedef_maps_through_its_alias(mapper):
    flags = TypedefRef("WGPUFlags", aliased=TypedefRef("uint32_t"))
    assert mapper.map(flags) == "uint32"
    assert mapper.map(Pointer(flags)) == "uint32*"


def test_bare_flags_typedef_without_alias_is_unrepresentable(mapper):
    assert mapper.map(TypedefRef("WGPUFlags")) is None


def test_names_without_prefix_pass_through(mapper):
    assert mapper.map(StructRef("Color")) == "Color"
    assert mapper.map(TypedefRef("HANDLE")) == "HANDLE"


def test_inline_function_pointer(mapper):
    fp = FunctionPointer(Primitive("void"), (Parameter("a", Primitive("int")), Parameter("", Pointer(Primitive("void")))))
    assert mapper.map(fp) == "function void(c_int a, void* arg2)"


def test_unsupported_is_silent(mapper, caplog):
    with caplog.at_level(logging.DEBUG, logger="beef_binding_generator.type_mapping"):
        assert mapper.map(Unsupported("union", "union Foo")) is None
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_unknown_kind_warns(mapper, caplog):
    with caplog.at_level(logging.WARNING, logger="beef_binding_generator.type_mapping"):
        assert mapper.map(UnknownType("CONSTANTARRAY", "float[4]")) is None
    assert "Unknown type: CONSTANTARRAY" in caplog.text


def test_unmappable_inner_propagates(mapper):
    assert mapper.map(Pointer(Unsupported("union"))) is None
    assert mapper.map(Qualified(UnknownType("VECTOR"))) is None


def test_map_parameters_all_or_nothing(mapper):
    params = (Parameter("a", Primitive("int")), Parameter("b", Unsupported("union")))
    assert mapper.map_parameters(params) is None
    assert mapper.map_parameters(params[:1]) == [("c_int", "a")]


def test_map_parameters_from_offset(mapper):
    params = (Parameter("self", Unsupported("union")), Parameter("count", TypedefRef("uint32_t")))
    assert mapper.map_parameters(params, start=1) == [("uint32", "count")]


def test_map_signature(mapper):
    sig = mapper.map_signature(TypedefRef("uint32_t"), (Parameter("x", Primitive("float")),))
    assert sig == ("uint32", [("float", "x")])
    assert mapper.map_signature(UnknownType("VECTOR"), ()) is None


def test_anonymous_parameters_are_numbered():
    assert parameter_name(Parameter("", Primitive("int")), 3) == "arg3"
    assert parameter_name(Parameter("x", Primitive("int")), 3) == "x"


def test_mapping_is_deterministic(mapper):
    t = Pointer(Qualified(TypedefRef("WGPUTextureUsageFlags")))
    assert mapper.map(t) == mapper.map(t) == "TextureUsage*"


def test_custom_rename_tables():
    naming = NamingConfig(type_prefix="SDL_", typedef_renames={"Uint32": "uint32"}, primitive_renames={})
    mapper = TypeMapper(naming)
    assert mapper.map(TypedefRef("Uint32")) == "uint32"
    assert mapper.map(Primitive("int")) == "int"
    assert mapper.map(StructRef("SDL_Rect")) == "Rect"
