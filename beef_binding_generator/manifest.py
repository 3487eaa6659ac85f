import sys
import shlex
from importlib import metadata as importlib_metadata

import json
from typing import Optional
from .models import GenerationContext, Translation
from .naming import NamingConfig
from .emitters.beef_emitter import EmissionReport
from .utils import write_text

import logging
logger = logging.getLogger(__name__)

DIST_NAME = "beef-binding-generator"


def generator_version() -> str:
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        from . import __version__
        return __version__


def build_manifest(
    ctx: GenerationContext,
    translation: Translation,
    naming: NamingConfig,
    report: Optional[EmissionReport] = None,
) -> dict:
    """
    Snapshot of one generation run: inputs, derived handles/methods and what
    was emitted or skipped. Useful for reviewing binding changes upstream.
    """
    argv = list(getattr(sys, "argv", []) or [])
    return {
        "generator": {
            "name": DIST_NAME,
            "version": generator_version(),
        },
        "invocation": {
            "argv": argv,
            "command_line": " ".join(shlex.quote(a) for a in argv) if argv else "",
        },
        "context": ctx.to_dict(),
        "naming": naming.to_dict(),
        "counts": translation.declarations.counts,
        **translation.to_dict(),
        "emission": report.to_dict() if report else None,
    }


def emit_manifest(
    ctx: GenerationContext,
    translation: Translation,
    naming: NamingConfig,
    report: Optional[EmissionReport] = None,
) -> None:
    """
    Write the JSON manifest next to the generated bindings.
    """
    content = json.dumps(build_manifest(ctx, translation, naming, report), indent=2) + "\n"
    write_text(ctx.manifest_path, content, dry_run=ctx.dry_run)
