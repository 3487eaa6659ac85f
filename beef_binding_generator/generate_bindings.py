#!/usr/bin/env python3
"""
Beef FFI binding generator for C libraries (wgpu-native by default).

This entrypoint wires together:
- Retrieval (optional) of prebuilt native library archives and their headers
- Parsing (libclang-based) of the C header into enums/structs/typedefs/functions
- Translation: opaque handle classification and method association
- Emitting (Jinja2-based) of a single Beef source file

Outputs:
- <output>                  the generated bindings (e.g. src/Wgpu.bf)
- <output>.manifest.json    (optional) handles, methods and skipped declarations

Usage (example):
  python -m beef_binding_generator.generate_bindings \
    --header wgpu.h \
    --output ../src/Wgpu.bf

  # download the v0.12.0.1 archives first, then generate from the extracted headers
  python -m beef_binding_generator.generate_bindings \
    --fetch-version 0.12.0.1 --dist-dir ../dist --output ../src/Wgpu.bf

Notes:
- You need libclang and Jinja2 installed in your Python environment.
- Set SOURCE_DATE_EPOCH (or --timestamp) for byte-reproducible output.
"""

from __future__ import annotations

import argparse
import os
import shlex
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

from .classifier import build_handle_registry
from .emitters.beef_emitter import BeefEmitter, EmitterConfig
from .fetch import ArchiveConfig, fetch_native_libraries
from .manifest import emit_manifest
from .methods import associate_methods
from .models import DeclarationSet, GenerationContext, Translation
from .naming import NamingConfig
from .parsing.clang_parser import collect_declarations_from_headers
from .type_mapping import TypeMapper
from .utils import TemplateRenderer, configure_logging, resolve_log_level

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


# --------------------------
# Helpers
# --------------------------

def discover_header_files(paths: List[str]) -> List[Path]:
    """
    Expand files and directories into a unique list of header files, keeping
    the given order (directories are expanded in sorted order).
    """
    results: List[Path] = []
    for p in paths:
        pp = Path(p)
        if pp.is_file() and pp.suffix.lower() == ".h":
            results.append(pp.resolve())
        elif pp.is_dir():
            results.extend(sorted(f.resolve() for f in pp.rglob("*.h")))
        else:
            logger.warning("Skipping non-existent path: %s", p)

    seen: set[str] = set()
    unique: List[Path] = []
    for f in results:
        s = str(f)
        if s in seen:
            continue
        seen.add(s)
        unique.append(f)
    return unique


def resolve_timestamp(explicit: Optional[str] = None) -> str:
    """
    Banner timestamp: explicit value, else SOURCE_DATE_EPOCH (UTC), else local now.
    """
    if explicit:
        return explicit
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    if epoch:
        return datetime.fromtimestamp(int(epoch), tz=timezone.utc).strftime(TIMESTAMP_FORMAT)
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def build_translation(decls: DeclarationSet, naming: NamingConfig) -> Translation:
    """
    Derive the handle registry and method map in one pass over the declarations.
    """
    handles = build_handle_registry(decls.structs, naming)
    methods = associate_methods(decls.functions, handles, naming, decls.typedef_table())
    return Translation(declarations=decls, handles=handles, methods=methods)


def split_clang_args(raw: str) -> List[str]:
    """
    Shell-style split of --clang-args; unbalanced quotes fall back to whitespace.
    """
    try:
        return shlex.split(raw)
    except ValueError as ex:
        logger.warning("Falling back to naive clang args split due to parsing error: %s", ex)
        return raw.split()


def load_naming(ns: argparse.Namespace) -> NamingConfig:
    naming = NamingConfig.from_json(ns.naming_config) if ns.naming_config else NamingConfig()
    return naming.with_overrides(
        type_prefix=ns.type_prefix,
        function_prefix=ns.function_prefix,
        namespace=ns.namespace,
        class_name=ns.class_name,
    )


# --------------------------
# CLI
# --------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate Beef FFI bindings from a C header")

    p.add_argument(
        "--header",
        action="append",
        default=[],
        help="Header file or directory to parse (repeatable). Directories are searched for .h files.",
    )
    p.add_argument(
        "--clang-args",
        default="",
        help="Additional clang arguments (e.g., -I/path/include -DDEFINE=1)",
    )
    p.add_argument(
        "--include-filter",
        action="append",
        default=[],
        help="Only include declarations whose file path starts with any of these prefixes. Repeatable.",
    )
    p.add_argument(
        "--output",
        default="Wgpu.bf",
        help="Path of the generated Beef file.",
    )
    p.add_argument(
        "--templates-dir",
        default=None,
        help="Optional templates directory overriding the package templates.",
    )
    p.add_argument(
        "--naming-config",
        default=None,
        help="JSON file overriding prefixes, suffixes, rename tables and output names.",
    )
    p.add_argument("--type-prefix", default=None, help="Prefix of C type names (default: WGPU).")
    p.add_argument("--function-prefix", default=None, help="Prefix of C function names (default: wgpu).")
    p.add_argument("--namespace", default=None, help="Namespace of the generated file (default: Wgpu).")
    p.add_argument("--class-name", default=None, help="Static class holding the bindings (default: Wgpu).")
    p.add_argument(
        "--timestamp",
        default=None,
        help="Timestamp written to the banner (default: SOURCE_DATE_EPOCH or now).",
    )
    p.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not emit the JSON manifest alongside the bindings.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and translate, report what would be generated, write nothing.",
    )
    p.add_argument(
        "--fetch-version",
        default=None,
        help="Download the prebuilt native libraries of this release before generating.",
    )
    p.add_argument(
        "--dist-dir",
        default="dist",
        help="Where fetched native libraries are unpacked (<dist>/<build>/<platform>/).",
    )
    p.add_argument(
        "--headers-dir",
        default=".",
        help="Where fetched headers are unpacked; used as --header when none is given.",
    )
    p.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallel downloads when fetching (default: one per archive).",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG)."
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (-q for WARNING, -qq for ERROR)."
    )
    p.add_argument(
        "--log-level",
        choices=["CRITICAL","ERROR","WARNING","INFO","DEBUG","NOTSET","critical","error","warning","info","debug","notset"],
        default=None,
        help="Explicit log level (overrides -v/-q)."
    )
    p.add_argument(
        "--log-format",
        default="%(levelname)s: %(message)s",
        help="Logging format string."
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional file to write logs to."
    )

    return p.parse_args(argv)


# --------------------------
# Main
# --------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ns = parse_args(argv)

    configure_logging(
        level=resolve_log_level(ns.verbose, ns.quiet, ns.log_level),
        to_file=ns.log_file,
        fmt=ns.log_format,
    )

    try:
        naming = load_naming(ns)
        generated_at = resolve_timestamp(ns.timestamp)
    except (OSError, ValueError):
        logger.exception("Invalid configuration")
        return 1

    # Optional: fetch native libraries and headers
    header_args = list(ns.header)
    if ns.fetch_version:
        archives = ArchiveConfig()
        try:
            results = fetch_native_libraries(
                ns.fetch_version,
                dist_dir=Path(ns.dist_dir).resolve(),
                headers_dir=Path(ns.headers_dir).resolve(),
                config=archives,
                jobs=ns.jobs,
            )
        except Exception:
            logger.exception("Failed to fetch native libraries")
            return 6
        logger.info("Fetched %d archive(s) for version %s", len(results), ns.fetch_version)
        if not header_args:
            header_args = [str(Path(ns.headers_dir) / archives.header_members[0])]

    headers = discover_header_files(header_args)
    if not headers:
        logger.error("No headers found to parse. Provide --header.")
        return 2

    ctx = GenerationContext(
        output_path=Path(ns.output).resolve(),
        templates_dir=Path(ns.templates_dir).resolve() if ns.templates_dir else None,
        generated_at=generated_at,
        dry_run=ns.dry_run,
        headers=headers,
    )

    # Initialize renderer (layered: user dir -> package templates)
    try:
        renderer = TemplateRenderer(ctx.templates_dir)
    except Exception:
        logger.exception("Failed to initialize templating")
        return 1

    try:
        decls = collect_declarations_from_headers(
            headers=headers,
            clang_args=split_clang_args(ns.clang_args),
            include_filters=ns.include_filter or None,
            emit_diagnostics=True,
        )
    except Exception:
        logger.exception("Failed to parse headers")
        return 3

    translation = build_translation(decls, naming)
    logger.info("Discovered %d handle(s)", len(translation.handles))
    for handle, fns in sorted(translation.methods.items()):
        logger.debug("Handle %s methods: %s", handle, ", ".join(f.name for f in fns))

    emitter = BeefEmitter(ctx=ctx, renderer=renderer, mapper=TypeMapper(naming), config=EmitterConfig())
    try:
        report = emitter.emit(translation)
    except Exception:
        logger.exception("Failed to generate bindings")
        return 4

    if ctx.dry_run:
        logger.info("Dry-run complete (no files written).")
        return 0

    if not ns.no_manifest:
        try:
            emit_manifest(ctx, translation, naming, report)
        except Exception:
            logger.exception("Failed to emit generation manifest")
            return 5

    return 0


if __name__ == "__main__":
    sys.exit(main())
