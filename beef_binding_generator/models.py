#!/usr/bin/env python3
"""
Data models for the Beef binding generator.

This module provides immutable, serializable data structures to describe:
- C type expressions (primitives, pointers, qualifiers, named references,
  function pointers) as a small tagged-variant hierarchy
- Declarations yielded by the header parser (enums, structs, typedefs, functions)
- The derived, read-only translation state (handle registry, method map)
- Generation context (paths, flags, timestamp)

The models are consumed by:
- The parsing layer (to populate instances)
- The classifier/associator (to derive handles and methods)
- The type mapper and emitter (to render Beef source)
- The manifest writer (translation and context via to_dict)

Every value here is built once per run and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Union


# --------------------------
# C type expressions
# --------------------------

@dataclass(frozen=True)
class Primitive:
    """
    Builtin C type such as `int`, `float`, `void` or `unsigned long`.
    """
    token: str

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True)
class Pointer:
    inner: "TypeExpr"

    def __str__(self) -> str:
        return f"{self.inner}*"


@dataclass(frozen=True)
class Qualified:
    """
    const/volatile wrapper. Transparent for mapping purposes.
    """
    inner: "TypeExpr"
    qualifiers: Tuple[str, ...] = ("const",)

    def __str__(self) -> str:
        return f"{' '.join(self.qualifiers)} {self.inner}"


@dataclass(frozen=True)
class TypedefRef:
    """
    Reference to a typedef by name.

    `aliased` carries the typedef's underlying type when the parser knows it.
    It is only consulted to resolve self-parameters during method association
    and is excluded from equality so references compare by name alone.
    """
    name: str
    aliased: Optional["TypeExpr"] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class StructRef:
    name: str

    def __str__(self) -> str:
        return f"struct {self.name}"


@dataclass(frozen=True)
class EnumRef:
    name: str

    def __str__(self) -> str:
        return f"enum {self.name}"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: "TypeExpr"

    def __str__(self) -> str:
        return f"{self.type} {self.name}" if self.name else str(self.type)


@dataclass(frozen=True)
class FunctionPointer:
    return_type: "TypeExpr"
    parameters: Tuple[Parameter, ...] = ()

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"{self.return_type} (*)({params})"


@dataclass(frozen=True)
class Unsupported:
    """
    A construct the generator deliberately does not bind (unions, anonymous
    aggregates). Mapping it fails silently.
    """
    reason: str
    spelling: str = ""

    def __str__(self) -> str:
        return self.spelling or f"<{self.reason}>"


@dataclass(frozen=True)
class UnknownType:
    """
    A type kind the parser could not classify (arrays, bare function types, ...).
    Mapping it fails with a warning so header-schema drift is visible.
    """
    kind: str
    spelling: str = ""

    def __str__(self) -> str:
        return self.spelling or f"<{self.kind}>"


TypeExpr = Union[
    Primitive,
    Pointer,
    Qualified,
    TypedefRef,
    StructRef,
    EnumRef,
    FunctionPointer,
    Unsupported,
    UnknownType,
]


# --------------------------
# Declarations
# --------------------------

@dataclass(frozen=True)
class EnumItem:
    name: str
    value: Union[int, str]


@dataclass(frozen=True)
class Enum:
    name: str
    items: Tuple[EnumItem, ...] = ()


@dataclass(frozen=True)
class Field:
    name: str
    type: TypeExpr


@dataclass(frozen=True)
class Struct:
    name: str
    fields: Tuple[Field, ...] = ()


@dataclass(frozen=True)
class Typedef:
    name: str
    aliased: TypeExpr


@dataclass(frozen=True)
class Function:
    name: str
    return_type: TypeExpr
    parameters: Tuple[Parameter, ...] = ()


@dataclass(frozen=True)
class DeclarationSet:
    """
    Ordered declaration lists for one header, in top-to-bottom order.
    """
    enums: Tuple[Enum, ...] = ()
    structs: Tuple[Struct, ...] = ()
    typedefs: Tuple[Typedef, ...] = ()
    functions: Tuple[Function, ...] = ()

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "enums": len(self.enums),
            "structs": len(self.structs),
            "typedefs": len(self.typedefs),
            "functions": len(self.functions),
        }

    def typedef_table(self) -> Dict[str, TypeExpr]:
        """
        Map typedef name -> aliased type, first declaration wins.
        """
        table: Dict[str, TypeExpr] = {}
        for td in self.typedefs:
            table.setdefault(td.name, td.aliased)
        return table


# --------------------------
# Derived translation state
# --------------------------

HandleRegistry = FrozenSet[str]  # canonical handle names
MethodMap = Mapping[str, Tuple[Function, ...]]


@dataclass(frozen=True)
class Translation:
    """
    Everything derived from a DeclarationSet before emission.
    """
    declarations: DeclarationSet
    handles: HandleRegistry
    methods: MethodMap

    def to_dict(self) -> Dict:
        return {
            "handles": sorted(self.handles),
            "methods": {h: [f.name for f in fns] for h, fns in sorted(self.methods.items())},
        }


# --------------------------
# Generation context
# --------------------------

@dataclass
class GenerationContext:
    """
    Parameters for a single generation run.

    Paths are absolute. Emitters should rely on these rather than guessing.
    """
    output_path: Path
    templates_dir: Optional[Path]
    generated_at: str
    dry_run: bool = False
    headers: List[Path] = field(default_factory=list)

    @property
    def manifest_path(self) -> Path:
        return self.output_path.with_name(self.output_path.name + ".manifest.json")

    def to_dict(self) -> Dict:
        return {
            "output_path": str(self.output_path),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "generated_at": self.generated_at,
            "dry_run": self.dry_run,
            "headers": [str(h) for h in self.headers],
        }


__all__ = [
    "Primitive",
    "Pointer",
    "Qualified",
    "TypedefRef",
    "StructRef",
    "EnumRef",
    "Parameter",
    "FunctionPointer",
    "Unsupported",
    "UnknownType",
    "TypeExpr",
    "EnumItem",
    "Enum",
    "Field",
    "Struct",
    "Typedef",
    "Function",
    "DeclarationSet",
    "HandleRegistry",
    "MethodMap",
    "Translation",
    "GenerationContext",
]
