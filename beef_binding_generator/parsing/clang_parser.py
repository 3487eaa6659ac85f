#!/usr/bin/env python3
"""
Clang-based parsing for collecting C declarations.

This module traverses C headers using libclang and produces the immutable
declaration model consumed by the translation core:

- enums (with item values), structs (with fields), typedefs and functions,
  in header order and de-duplicated by name across headers
- C types converted to TypeExpr values (Primitive, Pointer, Qualified,
  TypedefRef, StructRef, EnumRef, FunctionPointer)
- system headers skipped, optional include path filters

Forward declarations of structs are kept: opaque handle structs
(`typedef struct WGPUBufferImpl* WGPUBuffer;`) are never defined in the header
but must still reach the handle classifier.

Requirements:
- Python clang bindings with a loadable libclang (pip install libclang)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

try:
    from clang import cindex  # type: ignore
except ImportError:  # pragma: no cover
    cindex = None  # Lazy error on use

from ..models import (
    DeclarationSet,
    Enum,
    EnumItem,
    EnumRef,
    Field,
    Function,
    FunctionPointer,
    Parameter,
    Pointer,
    Primitive,
    Qualified,
    Struct,
    StructRef,
    Typedef,
    TypedefRef,
    TypeExpr,
    UnknownType,
    Unsupported,
)


# --------------------------
# libclang setup
# --------------------------

def ensure_libclang_loaded() -> None:
    """
    Ensure clang.cindex is importable and the native library can be loaded.
    """
    if cindex is None:
        raise RuntimeError(
            "libclang (clang.cindex) is not available. Install the clang Python bindings "
            "(e.g., pip install libclang) and ensure libclang is discoverable."
        )


def _create_index():
    ensure_libclang_loaded()
    try:
        return cindex.Index.create()
    except cindex.LibclangError as e:
        raise RuntimeError(f"libclang shared library could not be loaded: {e}") from e


def parse_translation_unit(header: Path, clang_args: List[str]):
    """
    Parse a single header into a TranslationUnit with options suitable for
    declaration-only traversal.
    """
    idx = _create_index()
    args = list(clang_args)
    # Headers are parsed as C unless the caller says otherwise
    if not any(a.startswith("-x") for a in args):
        args.extend(["-x", "c"])
    if not any(a.startswith("-W") for a in args):
        args.append("-Wno-everything")
    return idx.parse(
        str(header),
        args=args,
        options=(
            cindex.TranslationUnit.PARSE_SKIP_FUNCTION_BODIES
            | cindex.TranslationUnit.PARSE_INCOMPLETE
        ),
    )


# --------------------------
# Helpers
# --------------------------

_SYSTEM_DIR_PREFIXES: Tuple[str, ...] = ("/usr/include", "/usr/local/include", "/usr/lib")


def _is_system_location(loc: Any) -> bool:
    f = getattr(loc, "file", None)
    if f is None:
        return True
    return any(str(f.name).startswith(sd) for sd in _SYSTEM_DIR_PREFIXES)


def _should_consider_location(node: Any, include_filters: Optional[List[str]]) -> bool:
    """
    If filters are provided, only accept nodes whose file path starts with any
    filter. Otherwise, exclude system header locations.
    """
    loc = node.location
    if loc is None or loc.file is None:
        return False
    if include_filters:
        fpath = str(Path(str(loc.file.name)).resolve())
        return any(fpath.startswith(f) for f in include_filters)
    return not _is_system_location(loc)


def _strip_cv(spelling: str) -> str:
    tokens = [tok for tok in spelling.split() if tok not in ("const", "volatile", "restrict")]
    return " ".join(tokens)


def _is_anonymous(decl: Any) -> bool:
    if not decl.spelling:
        return True
    try:
        return bool(decl.is_anonymous())
    except AttributeError:
        return "(unnamed" in decl.spelling or "(anonymous" in decl.spelling


def _param_names(cursor: Optional[Any]) -> List[str]:
    """
    Parameter names of a function-pointer declarator (PARM_DECL children).
    """
    if cursor is None:
        return []
    return [c.spelling for c in cursor.get_children() if c.kind == cindex.CursorKind.PARM_DECL]


# --------------------------
# Type conversion
# --------------------------

class TypeConverter:
    """
    Converts clang Type objects into TypeExpr values.

    Typedef references are cached by name; named struct/enum references are
    never expanded, so conversion always terminates.
    """

    def __init__(self) -> None:
        self._typedefs: Dict[str, TypedefRef] = {}

    def convert(self, tp: Any, declarator: Optional[Any] = None, qualify: bool = True) -> TypeExpr:
        """
        `declarator` is the cursor declaring this type (field, parameter,
        typedef); it supplies parameter names for function pointers.
        """
        TK = cindex.TypeKind
        kind = tp.kind

        if qualify:
            quals = []
            if tp.is_const_qualified():
                quals.append("const")
            if tp.is_volatile_qualified():
                quals.append("volatile")
            if quals:
                return Qualified(self.convert(tp, declarator, qualify=False), tuple(quals))

        # `struct X` / `enum X` spellings wrap the named type
        if kind == TK.ELABORATED:
            return self.convert(tp.get_named_type(), declarator, qualify=False)

        if kind == TK.POINTER:
            pointee = tp.get_pointee()
            if pointee.kind == TK.ELABORATED:
                pointee = pointee.get_named_type()
            if pointee.kind in (TK.FUNCTIONPROTO, TK.FUNCTIONNOPROTO):
                return self._function_pointer(pointee, declarator)
            return Pointer(self.convert(tp.get_pointee()))

        if kind == TK.TYPEDEF:
            decl = tp.get_declaration()
            name = decl.spelling or _strip_cv(tp.spelling)
            ref = self._typedefs.get(name)
            if ref is None:
                ref = TypedefRef(name, aliased=self.convert(decl.underlying_typedef_type, decl))
                self._typedefs[name] = ref
            return ref

        if kind == TK.RECORD:
            decl = tp.get_declaration()
            if decl.kind == cindex.CursorKind.UNION_DECL:
                return Unsupported("union", _strip_cv(tp.spelling))
            if _is_anonymous(decl):
                return Unsupported("anonymous record", _strip_cv(tp.spelling))
            return StructRef(decl.spelling)

        if kind == TK.ENUM:
            decl = tp.get_declaration()
            if _is_anonymous(decl):
                return Unsupported("anonymous enum", _strip_cv(tp.spelling))
            return EnumRef(decl.spelling)

        if kind in _builtin_kinds():
            return Primitive(_strip_cv(tp.spelling))

        return UnknownType(kind.name, _strip_cv(tp.spelling))

    def _function_pointer(self, fn_type: Any, declarator: Optional[Any]) -> FunctionPointer:
        names = _param_names(declarator)
        arg_types = list(fn_type.argument_types()) if fn_type.kind == cindex.TypeKind.FUNCTIONPROTO else []
        if len(names) != len(arg_types):
            names = [""] * len(arg_types)
        params = tuple(Parameter(n, self.convert(t)) for n, t in zip(names, arg_types))
        return FunctionPointer(self.convert(fn_type.get_result()), params)


def _builtin_kinds() -> frozenset:
    TK = cindex.TypeKind
    return frozenset({
        TK.VOID, TK.BOOL,
        TK.CHAR_U, TK.UCHAR, TK.CHAR16, TK.CHAR32, TK.USHORT, TK.UINT, TK.ULONG, TK.ULONGLONG, TK.UINT128,
        TK.CHAR_S, TK.SCHAR, TK.WCHAR, TK.SHORT, TK.INT, TK.LONG, TK.LONGLONG, TK.INT128,
        TK.FLOAT, TK.DOUBLE, TK.LONGDOUBLE,
    })


# --------------------------
# Declaration collection
# --------------------------

class DeclarationCollector:
    """
    Accumulates declarations across translation units, first occurrence wins
    (except that a struct definition fills in a forward declaration's fields).
    """

    def __init__(self, include_filters: Optional[List[str]] = None) -> None:
        self.include_filters = include_filters
        self.types = TypeConverter()
        self.enums: Dict[str, Enum] = {}
        self.structs: Dict[str, Struct] = {}
        self.typedefs: Dict[str, Typedef] = {}
        self.functions: Dict[str, Function] = {}

    def visit_translation_unit(self, tu: Any) -> None:
        for node in tu.cursor.get_children():
            if not _should_consider_location(node, self.include_filters):
                continue
            kind = node.kind
            CK = cindex.CursorKind
            if kind == CK.ENUM_DECL:
                self._visit_enum(node)
            elif kind == CK.STRUCT_DECL:
                self._visit_struct(node)
            elif kind == CK.TYPEDEF_DECL:
                self._visit_typedef(node)
            elif kind == CK.FUNCTION_DECL:
                self._visit_function(node)

    def _visit_enum(self, node: Any) -> None:
        if not node.is_definition() or _is_anonymous(node) or node.spelling in self.enums:
            return
        items = tuple(
            EnumItem(c.spelling, c.enum_value)
            for c in node.get_children()
            if c.kind == cindex.CursorKind.ENUM_CONSTANT_DECL
        )
        self.enums[node.spelling] = Enum(node.spelling, items)

    def _visit_struct(self, node: Any) -> None:
        if _is_anonymous(node):
            logger.debug("Skipping anonymous struct declaration")
            return
        name = node.spelling
        if not node.is_definition():
            self.structs.setdefault(name, Struct(name))
            return
        fields = tuple(
            Field(c.spelling, self.types.convert(c.type, c))
            for c in node.get_children()
            if c.kind == cindex.CursorKind.FIELD_DECL
        )
        existing = self.structs.get(name)
        if existing is None or not existing.fields:
            # Dict keeps the first-seen position when a definition follows a forward declaration
            self.structs[name] = Struct(name, fields)

    def _visit_typedef(self, node: Any) -> None:
        name = node.spelling
        if not name or name in self.typedefs:
            return
        self.typedefs[name] = Typedef(name, self.types.convert(node.underlying_typedef_type, node))

    def _visit_function(self, node: Any) -> None:
        name = node.spelling
        if not name or name in self.functions:
            return
        params = tuple(
            Parameter(a.spelling, self.types.convert(a.type, a))
            for a in node.get_arguments()
        )
        self.functions[name] = Function(name, self.types.convert(node.result_type), params)

    def result(self) -> DeclarationSet:
        return DeclarationSet(
            enums=tuple(self.enums.values()),
            structs=tuple(self.structs.values()),
            typedefs=tuple(self.typedefs.values()),
            functions=tuple(self.functions.values()),
        )


# --------------------------
# Public API
# --------------------------

def collect_declarations_from_headers(
    headers: Iterable[Path],
    clang_args: Sequence[str] = (),
    include_filters: Optional[List[str]] = None,
    emit_diagnostics: bool = True,
) -> DeclarationSet:
    """
    Parse headers and return their declarations in header order.

    Parameters:
    - headers: header files to parse (directories must be expanded by the caller).
    - clang_args: command line arguments for clang (include paths, defines, ...).
    - include_filters: if provided, only declarations whose file starts with one of these prefixes.
    - emit_diagnostics: whether to log clang diagnostics as warnings.
    """
    ensure_libclang_loaded()

    filters = [str(Path(f).resolve()) for f in (include_filters or [])]
    collector = DeclarationCollector(filters or None)

    for header in headers:
        tu = parse_translation_unit(Path(header), list(clang_args))
        if emit_diagnostics:
            for diag in tu.diagnostics:
                logger.warning("[clang] %s", diag)
        collector.visit_translation_unit(tu)

    decls = collector.result()
    logger.info(
        "Parsed %d enum(s), %d struct(s), %d typedef(s), %d function(s)",
        len(decls.enums), len(decls.structs), len(decls.typedefs), len(decls.functions),
    )
    return decls


__all__ = [
    "DeclarationCollector",
    "TypeConverter",
    "collect_declarations_from_headers",
    "ensure_libclang_loaded",
    "parse_translation_unit",
]
