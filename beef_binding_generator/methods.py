#!/usr/bin/env python3
"""
Method association: reconstruct `object.method` relationships of a C API.

C APIs of this shape encode methods purely by convention: the function name
starts with the handle name (wgpuBufferMapAsync -> Buffer) and the first
parameter is a pointer to the handle struct (WGPUBuffer buffer). This module
recovers that grouping without any extra metadata.

Rules, per function:
- candidates are the handle names that prefix the function's bare name
- the longest candidate wins (Device vs DeviceQueue -> DeviceQueue)
- the first parameter must resolve, through exactly one typedef/qualifier
  layer, to a pointer to that handle's struct; otherwise the function stays
  a free function only
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    Function,
    HandleRegistry,
    MethodMap,
    Pointer,
    Qualified,
    StructRef,
    TypeExpr,
    TypedefRef,
)
from .naming import NamingConfig

logger = logging.getLogger(__name__)


def candidate_handles(bare_name: str, handles: Iterable[str]) -> List[str]:
    """
    Handle names that are a string prefix of `bare_name`, longest first.

    Two distinct names of equal length cannot both prefix the same string, so
    the first element is always the unique longest match; the name is only a
    secondary key to keep the order fully deterministic.
    """
    found = [h for h in handles if bare_name.startswith(h)]
    found.sort(key=lambda h: (-len(h), h))
    return found


def _unwrap_one_layer(t: TypeExpr, typedefs: Mapping[str, TypeExpr]) -> Optional[TypeExpr]:
    if isinstance(t, Qualified):
        return t.inner
    if isinstance(t, TypedefRef):
        return t.aliased if t.aliased is not None else typedefs.get(t.name)
    return None


def self_struct_name(t: TypeExpr, typedefs: Mapping[str, TypeExpr]) -> Optional[str]:
    """
    Declared struct name a self-parameter points to, or None if the type is
    not, after exactly one typedef/qualifier layer, a pointer to a struct.
    A bare `struct X*` parameter has no such layer and is rejected.
    """
    resolved = _unwrap_one_layer(t, typedefs)
    if isinstance(resolved, Pointer) and isinstance(resolved.inner, StructRef):
        return resolved.inner.name
    return None


def resolve_method_owner(
    fn: Function,
    handles: HandleRegistry,
    naming: NamingConfig,
    typedefs: Mapping[str, TypeExpr],
) -> Optional[str]:
    """
    Canonical handle name `fn` is a method of, or None for free functions.
    """
    bare = naming.bare_function_name(fn.name)
    candidates = candidate_handles(bare, handles)
    if not candidates:
        return None
    owner = candidates[0]

    if not fn.parameters:
        logger.debug("%s: no self parameter for handle %s", fn.name, owner)
        return None
    struct_name = self_struct_name(fn.parameters[0].type, typedefs)
    if struct_name is None or naming.canonical_struct_name(struct_name) != owner:
        logger.debug(
            "%s: first parameter '%s' is not a %s handle; leaving unassociated",
            fn.name, fn.parameters[0].type, owner,
        )
        return None
    return owner


def associate_methods(
    functions: Sequence[Function],
    handles: HandleRegistry,
    naming: NamingConfig,
    typedefs: Optional[Mapping[str, TypeExpr]] = None,
) -> MethodMap:
    """
    Group functions by the handle they operate on, preserving declaration order.

    `typedefs` resolves TypedefRef self-parameters whose aliased type the parser
    did not attach.
    """
    table = typedefs or {}
    grouped: Dict[str, List[Function]] = {}
    for fn in functions:
        owner = resolve_method_owner(fn, handles, naming, table)
        if owner is not None:
            grouped.setdefault(owner, []).append(fn)

    methods: Dict[str, Tuple[Function, ...]] = {h: tuple(fns) for h, fns in grouped.items()}
    logger.info(
        "Associated %d of %d function(s) with %d handle(s)",
        sum(len(v) for v in methods.values()), len(functions), len(methods),
    )
    return methods


def method_name(fn: Function, owner: str, naming: NamingConfig) -> str:
    """
    Exposed method name: the bare function name with the owner's name removed.
    """
    name = naming.bare_function_name(fn.name)[len(owner):]
    return name or naming.empty_method_name


__all__ = [
    "associate_methods",
    "candidate_handles",
    "method_name",
    "resolve_method_owner",
    "self_struct_name",
]
