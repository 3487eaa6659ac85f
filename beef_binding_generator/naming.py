#!/usr/bin/env python3
"""
Naming conventions and fixed rename tables.

Everything that is specific to one C library (its prefixes, its "Impl" handle
marker, its bitflag typedef suffix, its enum width sentinel) lives here as
data so the classifier, associator, mapper and emitter stay reusable for a
differently-prefixed C API. Overrides can be loaded from JSON:

    {
      "type_prefix": "SDL_",
      "function_prefix": "SDL_",
      "namespace": "SDL",
      "class_name": "SDL",
      "typedef_renames": {"Uint32": "uint32"}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)


DEFAULT_PRIMITIVE_RENAMES: Dict[str, str] = {
    "bool": "c_bool",
    "int": "c_int",
    "char": "c_char",
}

DEFAULT_TYPEDEF_RENAMES: Dict[str, str] = {
    "uint8_t": "uint8",
    "uint16_t": "uint16",
    "uint32_t": "uint32",
    "uint64_t": "uint64",

    "int8_t": "int8",
    "int16_t": "int16",
    "int32_t": "int32",
    "int64_t": "int64",

    "size_t": "c_size",
}


def _strip_prefix(name: str, prefix: str) -> str:
    if prefix and name.startswith(prefix):
        return name[len(prefix):]
    return name


def _strip_suffix(name: str, suffix: str) -> str:
    if suffix and name.endswith(suffix):
        return name[: len(name) - len(suffix)]
    return name


@dataclass(frozen=True)
class NamingConfig:
    """
    Library naming conventions plus the fixed type rename tables.

    Prefixes are only stripped when present, so names coming from other
    headers (e.g. `uint32_t`) pass through untouched.
    """
    # Prefix of struct/enum/typedef names, e.g. WGPUBufferImpl
    type_prefix: str = "WGPU"
    # Prefix of function names, e.g. wgpuBufferMapAsync
    function_prefix: str = "wgpu"
    # Marker on opaque handle structs, e.g. WGPUBufferImpl
    handle_suffix: str = "Impl"
    # Marker on bitflag typedefs, e.g. WGPUTextureUsageFlags
    flags_suffix: str = "Flags"
    # Enum member reserved to force a 32-bit enum width
    enum_sentinel: str = "Force32"
    # Beef backing type of emitted enums
    enum_backing_type: str = "c_uint"
    # Namespace and static class of the generated file
    namespace: str = "Wgpu"
    class_name: str = "Wgpu"
    # Fallback name for a method whose name is fully consumed by its handle
    empty_method_name: str = "Invoke"
    primitive_renames: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PRIMITIVE_RENAMES))
    typedef_renames: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_TYPEDEF_RENAMES))

    # ---- Name derivation ----

    def bare_type_name(self, name: str) -> str:
        return _strip_prefix(name, self.type_prefix)

    def bare_function_name(self, name: str) -> str:
        return _strip_prefix(name, self.function_prefix)

    def canonical_struct_name(self, name: str) -> str:
        """
        Struct name with the library prefix and any trailing handle marker removed.
        """
        return _strip_suffix(self.bare_type_name(name), self.handle_suffix)

    def is_handle_struct_name(self, name: str) -> bool:
        bare = self.bare_type_name(name)
        return bool(self.handle_suffix) and bare.endswith(self.handle_suffix)

    def typedef_reference_name(self, name: str) -> str:
        """
        Target name for a typedef reference: prefix and flags marker stripped,
        then the fixed typedef rename table applied.
        """
        bare = _strip_suffix(self.bare_type_name(name), self.flags_suffix)
        return self.typedef_renames.get(bare, bare)

    def enum_member_name(self, item_name: str) -> str:
        """
        Member name for an enum item: everything after the first underscore,
        prefixed with `_` when it would start with a digit.
        """
        name = item_name[item_name.find("_") + 1:]
        if name and name[0].isdigit():
            name = "_" + name
        return name

    def is_enum_sentinel(self, item_name: str) -> bool:
        return item_name[item_name.find("_") + 1:] == self.enum_sentinel

    # ---- Construction ----

    def with_overrides(self, **overrides: Any) -> "NamingConfig":
        """
        Return a copy with the given fields replaced; `None` values are ignored.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown naming option(s): {', '.join(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        for table in ("primitive_renames", "typedef_renames"):
            if table in changes:
                if not isinstance(changes[table], Mapping):
                    raise ValueError(f"Naming option '{table}' must be an object")
                changes[table] = dict(changes[table])
        return replace(self, **changes)

    @staticmethod
    def from_json(path: Union[str, Path], base: Optional["NamingConfig"] = None) -> "NamingConfig":
        """
        Load overrides from a JSON object file on top of `base` (defaults if omitted).
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Naming config {path} must contain a JSON object")
        logger.debug("Loaded naming overrides from %s: %s", path, ", ".join(sorted(data)))
        return (base or NamingConfig()).with_overrides(**data)

    def to_dict(self) -> Dict:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["primitive_renames"] = dict(self.primitive_renames)
        out["typedef_renames"] = dict(self.typedef_renames)
        return out


__all__ = [
    "DEFAULT_PRIMITIVE_RENAMES",
    "DEFAULT_TYPEDEF_RENAMES",
    "NamingConfig",
]
