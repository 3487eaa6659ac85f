from pathlib import Path

import pytest

from beef_binding_generator.models import (
    DeclarationSet,
    Enum,
    EnumItem,
    EnumRef,
    Field,
    Function,
    FunctionPointer,
    GenerationContext,
    Parameter,
    Pointer,
    Primitive,
    Qualified,
    Struct,
    StructRef,
    Typedef,
    TypedefRef,
    Unsupported,
)
from beef_binding_generator.naming import NamingConfig
from beef_binding_generator.type_mapping import TypeMapper
from beef_binding_generator.utils import TemplateRenderer

TIMESTAMP = "2024-01-01 00:00:00"


def handle_typedef(name):
    """TypedefRef for `typedef struct <name>Impl* <name>;`"""
    return TypedefRef(name, aliased=Pointer(StructRef(name + "Impl")))


def uint32():
    return TypedefRef("uint32_t", aliased=Primitive("unsigned int"))


def size_t():
    return TypedefRef("size_t", aliased=Primitive("unsigned long"))


BUFFER = handle_typedef("WGPUBuffer")
DEVICE = handle_typedef("WGPUDevice")
DEVICE_QUEUE = handle_typedef("WGPUDeviceQueue")

MAP_CALLBACK = FunctionPointer(
    Primitive("void"),
    (
        Parameter("status", EnumRef("WGPUBufferMapAsyncStatus")),
        Parameter("userdata", Pointer(Primitive("void"))),
    ),
)


@pytest.fixture
def naming():
    return NamingConfig()


@pytest.fixture
def mapper(naming):
    return TypeMapper(naming)


@pytest.fixture
def renderer():
    return TemplateRenderer()


@pytest.fixture
def ctx(tmp_path: Path):
    return GenerationContext(
        output_path=tmp_path / "Wgpu.bf",
        templates_dir=None,
        generated_at=TIMESTAMP,
    )


@pytest.fixture
def wgpu_decls():
    """
    A trimmed-down wgpu.h: three handles (one of them prefixing another),
    flags typedefs, a callback typedef and a value struct with a union field.
    """
    enums = (
        Enum("WGPUBufferMapAsyncStatus", (
            EnumItem("WGPUBufferMapAsyncStatus_Success", 0),
            EnumItem("WGPUBufferMapAsyncStatus_Error", 1),
            EnumItem("WGPUBufferMapAsyncStatus_Force32", 0x7FFFFFFF),
        )),
        Enum("WGPUTextureDimension", (
            EnumItem("WGPUTextureDimension_1D", 0),
            EnumItem("WGPUTextureDimension_2D", 1),
            EnumItem("WGPUTextureDimension_Force32", 0x7FFFFFFF),
        )),
        Enum("WGPUBufferUsage", (
            EnumItem("WGPUBufferUsage_MapRead", 1),
            EnumItem("WGPUBufferUsage_MapWrite", 2),
            EnumItem("WGPUBufferUsage_Force32", 0x7FFFFFFF),
        )),
    )
    structs = (
        Struct("WGPUBufferImpl"),
        Struct("WGPUDeviceImpl"),
        Struct("WGPUDeviceQueueImpl"),
        Struct("WGPUBufferDescriptor", (
            Field("label", Pointer(Qualified(Primitive("char")))),
            Field("usage", TypedefRef("WGPUBufferUsageFlags")),
            Field("size", TypedefRef("uint64_t")),
            Field("mappedAtCreation", Primitive("bool")),
            Field("extras", Unsupported("union", "union WGPUExtras")),
        )),
    )
    typedefs = (
        Typedef("WGPUFlags", uint32()),
        Typedef("WGPUBuffer", Pointer(StructRef("WGPUBufferImpl"))),
        Typedef("WGPUDevice", Pointer(StructRef("WGPUDeviceImpl"))),
        Typedef("WGPUDeviceQueue", Pointer(StructRef("WGPUDeviceQueueImpl"))),
        Typedef("WGPUBufferUsageFlags", TypedefRef("WGPUFlags")),
        Typedef("WGPUBufferMapCallback", MAP_CALLBACK),
    )
    functions = (
        Function("wgpuBufferMapAsync", Primitive("void"), (
            Parameter("buffer", BUFFER),
            Parameter("mode", TypedefRef("WGPUMapModeFlags")),
            Parameter("offset", size_t()),
            Parameter("size", size_t()),
            Parameter("callback", TypedefRef("WGPUBufferMapCallback")),
            Parameter("userdata", Pointer(Primitive("void"))),
        )),
        Function("wgpuBufferDestroy", Primitive("void"), (Parameter("buffer", BUFFER),)),
        Function("wgpuDeviceCreateBuffer", BUFFER, (
            Parameter("device", DEVICE),
            Parameter("descriptor", Pointer(Qualified(StructRef("WGPUBufferDescriptor")))),
        )),
        Function("wgpuDeviceQueueSubmit", Primitive("void"), (
            Parameter("queue", DEVICE_QUEUE),
            Parameter("commandCount", uint32()),
        )),
        # Name says Buffer, first parameter is a Device: stays free
        Function("wgpuBufferFromDevice", BUFFER, (Parameter("device", DEVICE),)),
        Function("wgpuGetVersion", uint32(), ()),
    )
    return DeclarationSet(enums=enums, structs=structs, typedefs=typedefs, functions=functions)
