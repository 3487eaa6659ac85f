#!/usr/bin/env python3
"""
Type mapping from C type expressions to Beef type spellings.

Rules, applied recursively:
- Primitive:       fixed primitive rename table, otherwise unchanged
- Pointer:         mapped inner type + "*"
- Qualified:       transparent (const/volatile are dropped)
- TypedefRef:      prefix and flags marker stripped, typedef rename table applied;
                   the bare marker itself (WGPUFlags) maps through its aliased type
- StructRef/EnumRef: prefix stripped (must match the emitted declaration names)
- FunctionPointer: inline `function Ret(T a, ...)` signature
- anything else:   not representable

A result of None means "no representable Beef type". It is never fatal: callers
drop the narrowest enclosing declaration (field, parameter, method, typedef or
function). Unknown kinds are additionally reported as warnings so that new
constructs in the input header are noticed.

Typical usage:

    mapper = TypeMapper(NamingConfig())
    mapper.map(Pointer(Qualified(Primitive("char"))))   # -> "c_char*"
    mapper.map_parameters(fn.parameters)                # -> [("Buffer", "buffer"), ...] or None

The mapper holds no mutable state; the same input always yields the same output.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .models import (
    EnumRef,
    FunctionPointer,
    Parameter,
    Pointer,
    Primitive,
    Qualified,
    StructRef,
    TypedefRef,
    TypeExpr,
    UnknownType,
    Unsupported,
)
from .naming import NamingConfig

logger = logging.getLogger(__name__)


def parameter_name(p: Parameter, position: int) -> str:
    """
    Name to emit for a parameter; anonymous ones become arg1, arg2, ...
    """
    return p.name or f"arg{position}"


def format_parameter_list(params: Sequence[Tuple[str, str]]) -> str:
    return ", ".join(f"{t} {n}" for t, n in params)


class TypeMapper:
    """
    Maps TypeExpr values to Beef type spellings under a NamingConfig.
    """

    def __init__(self, naming: Optional[NamingConfig] = None) -> None:
        self.naming = naming or NamingConfig()

    # ---- Public API ----

    def map(self, t: TypeExpr) -> Optional[str]:
        if isinstance(t, Primitive):
            return self.naming.primitive_renames.get(t.token, t.token)

        if isinstance(t, Pointer):
            inner = self.map(t.inner)
            return None if inner is None else inner + "*"

        if isinstance(t, Qualified):
            return self.map(t.inner)

        if isinstance(t, TypedefRef):
            name = self.naming.typedef_reference_name(t.name)
            if name:
                return name
            # The bare flags marker (WGPUFlags) stands for its integer type
            if t.aliased is None:
                logger.debug("Typedef %s has no name after stripping and no known alias", t.name)
                return None
            return self.map(t.aliased)

        if isinstance(t, (StructRef, EnumRef)):
            return self.naming.bare_type_name(t.name)

        if isinstance(t, FunctionPointer):
            signature = self.map_signature(t.return_type, t.parameters)
            if signature is None:
                return None
            ret, params = signature
            return f"function {ret}({format_parameter_list(params)})"

        if isinstance(t, Unsupported):
            logger.debug("Unsupported type '%s' (%s)", t, t.reason)
            return None

        kind = t.kind if isinstance(t, UnknownType) else type(t).__name__
        logger.warning("Unknown type: %s", kind)
        return None

    def map_parameters(self, params: Sequence[Parameter], start: int = 0) -> Optional[List[Tuple[str, str]]]:
        """
        Map parameters from index `start` onward to (type, name) pairs.
        Returns None as soon as one parameter type is not representable.
        """
        out: List[Tuple[str, str]] = []
        for i in range(start, len(params)):
            p = params[i]
            mapped = self.map(p.type)
            if mapped is None:
                logger.debug("Parameter '%s' of type '%s' is not representable", p.name, p.type)
                return None
            out.append((mapped, parameter_name(p, i + 1)))
        return out

    def map_signature(
        self,
        return_type: TypeExpr,
        params: Sequence[Parameter],
        start: int = 0,
    ) -> Optional[Tuple[str, List[Tuple[str, str]]]]:
        """
        Map a return type plus parameter list; None if any part is not representable.
        """
        ret = self.map(return_type)
        if ret is None:
            return None
        mapped = self.map_parameters(params, start=start)
        if mapped is None:
            return None
        return ret, mapped


__all__ = [
    "TypeMapper",
    "format_parameter_list",
    "parameter_name",
]
