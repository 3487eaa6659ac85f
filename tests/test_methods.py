import logging

from beef_binding_generator.classifier import build_handle_registry
from beef_binding_generator.methods import (
    associate_methods,
    candidate_handles,
    method_name,
    resolve_method_owner,
    self_struct_name,
)
from beef_binding_generator.models import (
    Function,
    Parameter,
    Pointer,
    Primitive,
    Qualified,
    StructRef,
    TypedefRef,
)


def _names(fns):
    return [f.name for f in fns]


def test_candidates_are_ordered_longest_first():
    assert candidate_handles("DeviceQueueSubmit", {"Device", "DeviceQueue", "Buffer"}) == ["DeviceQueue", "Device"]


def test_no_candidates_for_free_function():
    assert candidate_handles("GetVersion", {"Device", "Buffer"}) == []


def test_self_struct_name_through_typedef():
    t = TypedefRef("WGPUBuffer", aliased=Pointer(StructRef("WGPUBufferImpl")))
    assert self_struct_name(t, {}) == "WGPUBufferImpl"


def test_self_struct_name_uses_typedef_table_when_alias_is_unknown():
    table = {"WGPUBuffer": Pointer(StructRef("WGPUBufferImpl"))}
    assert self_struct_name(TypedefRef("WGPUBuffer"), table) == "WGPUBufferImpl"


def test_self_struct_name_requires_one_typedef_layer():
    assert self_struct_name(Pointer(StructRef("WGPUBufferImpl")), {}) is None
    assert self_struct_name(Qualified(TypedefRef("WGPUBuffer", aliased=Pointer(StructRef("WGPUBufferImpl")))), {}) is None


def test_bare_struct_pointer_self_parameter_stays_free(naming):
    fn = Function("wgpuBufferUnmap", Primitive("void"), (Parameter("buffer", Pointer(StructRef("WGPUBufferImpl"))),))
    assert resolve_method_owner(fn, frozenset({"Buffer"}), naming, {}) is None


def test_self_struct_name_rejects_non_pointers():
    assert self_struct_name(Primitive("int"), {}) is None
    assert self_struct_name(StructRef("WGPUBufferImpl"), {}) is None
    assert self_struct_name(Qualified(Primitive("int")), {}) is None


def test_longest_prefix_wins(wgpu_decls, naming):
    handles = build_handle_registry(wgpu_decls.structs, naming)
    methods = associate_methods(wgpu_decls.functions, handles, naming)
    assert _names(methods["DeviceQueue"]) == ["wgpuDeviceQueueSubmit"]
    assert _names(methods["Device"]) == ["wgpuDeviceCreateBuffer"]


def test_methods_keep_declaration_order(wgpu_decls, naming):
    handles = build_handle_registry(wgpu_decls.structs, naming)
    methods = associate_methods(wgpu_decls.functions, handles, naming)
    assert _names(methods["Buffer"]) == ["wgpuBufferMapAsync", "wgpuBufferDestroy"]


def test_mismatched_self_parameter_stays_free(wgpu_decls, naming):
    handles = build_handle_registry(wgpu_decls.structs, naming)
    methods = associate_methods(wgpu_decls.functions, handles, naming)
    associated = {f.name for fns in methods.values() for f in fns}
    assert "wgpuBufferFromDevice" not in associated
    assert "wgpuGetVersion" not in associated


def test_every_function_belongs_to_at_most_one_handle(wgpu_decls, naming):
    handles = build_handle_registry(wgpu_decls.structs, naming)
    methods = associate_methods(wgpu_decls.functions, handles, naming)
    names = [f.name for fns in methods.values() for f in fns]
    assert len(names) == len(set(names))
    assert set(methods) <= handles


def test_no_fallback_to_shorter_candidate(naming):
    # DeviceQueue is the longest match but the first parameter is a Device
    fn = Function(
        "wgpuDeviceQueueCreate",
        Primitive("void"),
        (Parameter("device", TypedefRef("WGPUDevice", aliased=Pointer(StructRef("WGPUDeviceImpl")))),),
    )
    assert resolve_method_owner(fn, frozenset({"Device", "DeviceQueue"}), naming, {}) is None


def test_function_without_parameters_is_free(naming):
    fn = Function("wgpuBufferCount", Primitive("int"), ())
    assert resolve_method_owner(fn, frozenset({"Buffer"}), naming, {}) is None


def test_rejection_is_logged_at_debug(naming, caplog):
    fn = Function("wgpuBufferFromInt", Primitive("void"), (Parameter("value", Primitive("int")),))
    with caplog.at_level(logging.DEBUG, logger="beef_binding_generator.methods"):
        assert resolve_method_owner(fn, frozenset({"Buffer"}), naming, {}) is None
    assert "wgpuBufferFromInt" in caplog.text


def test_typedef_table_resolves_bare_references(naming):
    fn = Function("wgpuBufferUnmap", Primitive("void"), (Parameter("buffer", TypedefRef("WGPUBuffer")),))
    table = {"WGPUBuffer": Pointer(StructRef("WGPUBufferImpl"))}
    methods = associate_methods([fn], frozenset({"Buffer"}), naming, table)
    assert _names(methods["Buffer"]) == ["wgpuBufferUnmap"]


def test_method_name_strips_owner(naming):
    fn = Function("wgpuBufferMapAsync", Primitive("void"))
    assert method_name(fn, "Buffer", naming) == "MapAsync"


def test_empty_method_name_falls_back(naming):
    fn = Function("wgpuBuffer", Primitive("void"))
    assert method_name(fn, "Buffer", naming) == "Invoke"
