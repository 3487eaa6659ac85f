#!/usr/bin/env python3
"""
Emitter module for generating Beef FFI bindings.

This module walks a Translation (declarations + handle registry + method map)
and renders one Beef source file through a Jinja2 template:

- header banner (timestamp and declaration counts) and preamble (template)
- enums
- structs, in declaration order; opaque handles are followed by their methods
- typedefs (aliases and function-pointer types)
- free functions bound to their original symbol names

Anything whose type cannot be mapped is dropped at the narrowest scope (one
field, one method, one typedef or one function) and recorded in the
EmissionReport; the rest of the file is still produced. Formatting is fixed so
the generated file diffs cleanly across runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..methods import method_name
from ..models import (
    Enum,
    Function,
    FunctionPointer,
    GenerationContext,
    Pointer,
    StructRef,
    Struct,
    Translation,
    Typedef,
)
from ..naming import NamingConfig
from ..type_mapping import TypeMapper, format_parameter_list
from ..utils import TemplateRenderer, write_text

logger = logging.getLogger(__name__)

INDENT = "\t"


# --------------------------
# Configuration
# --------------------------

@dataclass(frozen=True)
class EmitterConfig:
    """
    Configuration for the Beef emitter.

    The template receives: generated_at, counts, namespace, class_name, lines.
    """
    bindings_template: str = "bindings.bf.j2"


@dataclass
class EmissionReport:
    """
    What was emitted and what was dropped (with the reason), for the manifest.
    """
    emitted: Dict[str, int] = field(default_factory=lambda: {"enums": 0, "structs": 0, "methods": 0, "typedefs": 0, "functions": 0})
    skipped: List[str] = field(default_factory=list)

    def skip(self, kind: str, name: str, reason: str) -> None:
        logger.debug("Skipping %s %s: %s", kind, name, reason)
        self.skipped.append(f"{kind} {name}: {reason}")

    def to_dict(self) -> Dict:
        return {"emitted": dict(self.emitted), "skipped": list(self.skipped)}


# --------------------------
# Emitter
# --------------------------

class BeefEmitter:
    """
    Emit Beef bindings from a Translation.

    Usage:
        emitter = BeefEmitter(ctx, renderer, mapper)
        report = emitter.emit(translation)
    """

    def __init__(
        self,
        ctx: GenerationContext,
        renderer: TemplateRenderer,
        mapper: TypeMapper,
        config: Optional[EmitterConfig] = None,
    ) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.mapper = mapper
        self.config = config or EmitterConfig()

    @property
    def naming(self) -> NamingConfig:
        return self.mapper.naming

    # ---- Public API ----

    def emit(self, translation: Translation) -> EmissionReport:
        """
        Render and write the bindings file.
        """
        content, report = self.render(translation)
        write_text(self.ctx.output_path, content, dry_run=self.ctx.dry_run)
        logger.info(
            "Emitted %d enum(s), %d struct(s), %d method(s), %d typedef(s), %d function(s); skipped %d",
            report.emitted["enums"], report.emitted["structs"], report.emitted["methods"],
            report.emitted["typedefs"], report.emitted["functions"], len(report.skipped),
        )
        return report

    def render(self, translation: Translation) -> Tuple[str, EmissionReport]:
        """
        Produce the complete file text; identical input yields identical text.
        """
        report = EmissionReport()
        lines = self.body_lines(translation, report)
        decls = translation.declarations
        context = {
            "generated_at": self.ctx.generated_at,
            "counts": decls.counts,
            "namespace": self.naming.namespace,
            "class_name": self.naming.class_name,
            "lines": lines,
        }
        return self.renderer.render(self.config.bindings_template, context), report

    def body_lines(self, translation: Translation, report: EmissionReport) -> List[str]:
        decls = translation.declarations
        lines: List[str] = []

        for i, e in enumerate(decls.enums):
            if i > 0:
                lines.append("")
            lines.extend(self._enum_lines(e))
            report.emitted["enums"] += 1

        for s in decls.structs:
            lines.append("")
            lines.extend(self._struct_lines(s, translation, report))
            report.emitted["structs"] += 1

        lines.append("")
        for td in decls.typedefs:
            line = self._typedef_line(td, report)
            if line is not None:
                lines.append(line)
                report.emitted["typedefs"] += 1

        for fn in decls.functions:
            fn_lines = self._function_lines(fn, report)
            if fn_lines:
                lines.append("")
                lines.extend(fn_lines)
                report.emitted["functions"] += 1

        return lines

    # ---- Enums ----

    def _enum_lines(self, e: Enum) -> List[str]:
        ind = INDENT * 2
        lines = [f"{ind}public enum {self.naming.bare_type_name(e.name)} : {self.naming.enum_backing_type} {{"]
        for item in e.items:
            if self.naming.is_enum_sentinel(item.name):
                continue
            lines.append(f"{ind}{INDENT}{self.naming.enum_member_name(item.name)} = {item.value},")
        lines.append(f"{ind}}}")
        return lines

    # ---- Structs ----

    def _struct_lines(self, s: Struct, translation: Translation, report: EmissionReport) -> List[str]:
        if self.naming.is_handle_struct_name(s.name):
            name = self.naming.canonical_struct_name(s.name)
            return self._handle_lines(name, translation.methods.get(name, ()), report)
        return self._value_struct_lines(s, report)

    def _handle_lines(self, name: str, methods: Sequence[Function], report: EmissionReport) -> List[str]:
        ind = INDENT * 2
        body = ind + INDENT
        lines = [
            f"{ind}[CRepr]",
            f"{ind}public struct {name} : this(void* Handle) {{",
            f"{body}public static Self Null => .(null);",
        ]

        method_lines: List[str] = []
        for fn in methods:
            line = self._method_line(name, fn, report)
            if line is not None:
                method_lines.append(line)
                report.emitted["methods"] += 1
        if method_lines:
            lines.append("")
            lines.extend(method_lines)

        lines.append(f"{ind}}}")
        return lines

    def _method_line(self, owner: str, fn: Function, report: EmissionReport) -> Optional[str]:
        signature = self.mapper.map_signature(fn.return_type, fn.parameters, start=1)
        if signature is None:
            report.skip("method", f"{owner}.{fn.name}", "return or parameter type not representable")
            return None
        ret, params = signature
        bare = self.naming.bare_function_name(fn.name)
        args = "".join(f", {n}" for _, n in params)
        return (
            f"{INDENT * 3}public {ret} {method_name(fn, owner, self.naming)}({format_parameter_list(params)})"
            f" => {self.naming.class_name}.{bare}(this{args});"
        )

    def _value_struct_lines(self, s: Struct, report: EmissionReport) -> List[str]:
        ind = INDENT * 2
        body = ind + INDENT
        name = self.naming.bare_type_name(s.name)

        fields: List[Tuple[str, str]] = []
        for f in s.fields:
            mapped = self.mapper.map(f.type)
            if mapped is None:
                report.skip("field", f"{name}.{f.name}", f"type '{f.type}' not representable")
                continue
            fields.append((mapped, f.name))

        lines = [f"{ind}[CRepr]", f"{ind}public struct {name} {{"]
        for t, n in fields:
            lines.append(f"{body}public {t} {n};")
        if fields:
            lines.append("")
        lines.append(f"{body}public this() {{")
        lines.append(f"{body}{INDENT}this = default;")
        lines.append(f"{body}}}")
        # Without fields the field-order constructor would repeat this()
        if fields:
            lines.append("")
            lines.append(f"{body}public this({format_parameter_list(fields)}) {{")
            for _, n in fields:
                lines.append(f"{body}{INDENT}this.{n} = {n};")
            lines.append(f"{body}}}")
        lines.append(f"{ind}}}")
        return lines

    # ---- Typedefs ----

    def _typedef_line(self, td: Typedef, report: EmissionReport) -> Optional[str]:
        ind = INDENT * 2
        aliased = td.aliased
        name = self.naming.bare_type_name(td.name)

        # Superseded by the opaque wrapper struct
        if isinstance(aliased, Pointer) and isinstance(aliased.inner, StructRef):
            if self.naming.is_handle_struct_name(aliased.inner.name):
                logger.debug("Typedef %s is an opaque handle pointer; wrapper struct supersedes it", td.name)
                return None

        if isinstance(aliased, FunctionPointer):
            signature = self.mapper.map_signature(aliased.return_type, aliased.parameters)
            if signature is None:
                report.skip("typedef", td.name, "function pointer signature not representable")
                return None
            ret, params = signature
            return f"{ind}public function {ret} {name}({format_parameter_list(params)});"

        # References to Flags typedefs collapse to the stripped name, so the
        # alias itself (and the bare "Flags" width marker) is never emitted.
        if self.naming.flags_suffix and name.endswith(self.naming.flags_suffix):
            logger.debug("Typedef %s is a bitflag alias; suppressed", td.name)
            return None

        mapped = self.mapper.map(aliased)
        if mapped is None:
            report.skip("typedef", td.name, f"aliased type '{aliased}' not representable")
            return None
        if mapped == name:
            logger.debug("Typedef %s aliases a declaration of the same name; suppressed", td.name)
            return None
        return f"{ind}public typealias {name} = {mapped};"

    # ---- Functions ----

    def _function_lines(self, fn: Function, report: EmissionReport) -> List[str]:
        signature = self.mapper.map_signature(fn.return_type, fn.parameters)
        if signature is None:
            report.skip("function", fn.name, "return or parameter type not representable")
            return []
        ret, params = signature
        ind = INDENT * 2
        return [
            f'{ind}[LinkName("{fn.name}")]',
            f"{ind}public static extern {ret} {self.naming.bare_function_name(fn.name)}({format_parameter_list(params)});",
        ]


__all__ = [
    "BeefEmitter",
    "EmissionReport",
    "EmitterConfig",
]
