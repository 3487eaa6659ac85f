#!/usr/bin/env python3
"""
Utilities for templating (Jinja2), logging and file I/O for the Beef binding generator.

This module provides:
- Layered Jinja2 environment creation: user templates first, package templates as fallback.
- Project-wide logging configuration driven by -v/-q style verbosity.
- Atomic, idempotent file writing (newline normalization, temp file + replace).

The goal is to keep the rest of the codebase focused on translation logic.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union
import logging

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
)

logger = logging.getLogger(__name__)

PACKAGE_NAME = "beef_binding_generator"
DEFAULT_LOG_FORMAT = "%(levelname)s: %(message)s"


# ----------------------------------------
# Logging
# ----------------------------------------

def resolve_log_level(verbose: int = 0, quiet: int = 0, explicit: Optional[str] = None) -> int:
    """
    Map CLI verbosity to a logging level.

    An explicit level name wins; otherwise -v selects DEBUG, -q WARNING and
    -qq ERROR, starting from INFO.
    """
    if explicit:
        return getattr(logging, explicit.upper(), logging.INFO)
    if verbose:
        return logging.DEBUG
    if quiet >= 2:
        return logging.ERROR
    if quiet == 1:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    to_file: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
    propagate_package_loggers: bool = True,
) -> None:
    """
    Install fresh root handlers: one on `stream` (stderr by default) and,
    with `to_file`, one truncating that log file. `level` accepts an int or
    a level name; anything unresolvable falls back to INFO.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    resolved = logging.INFO if level is None else int(level)
    formatter = logging.Formatter(fmt or DEFAULT_LOG_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if to_file:
        handlers.append(logging.FileHandler(str(to_file), mode="w"))

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(resolved)
    for h in handlers:
        h.setLevel(resolved)
        h.setFormatter(formatter)
        root.addHandler(h)

    pkg_logger = logging.getLogger(PACKAGE_NAME)
    pkg_logger.setLevel(resolved)
    pkg_logger.propagate = propagate_package_loggers


# ----------------------------------------
# Jinja environment helpers
# ----------------------------------------

class TemplateRenderer:
    """
    A thin wrapper over a Jinja2 Environment with layered loaders.
    - templates_dir: user-provided templates directory (highest precedence)
    - package templates: beef_binding_generator/templates

    Rendering is whitespace-exact: block tags own their lines and the
    trailing newline of a template is kept.
    """

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        loaders: List[Any] = []

        if templates_dir:
            p = Path(templates_dir)
            if p.is_dir():
                loaders.append(FileSystemLoader(str(p)))
            else:
                logger.warning("Templates directory %s does not exist; using package templates", p)

        try:
            loaders.append(PackageLoader(PACKAGE_NAME, "templates"))
        except ValueError:
            # Not importable as a package (e.g. run from a source checkout)
            loaders.append(FileSystemLoader(str(Path(__file__).parent / "templates")))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as e:
            raise RuntimeError(f"Template not found: {template_name}") from e
        return template.render(**context)


# ----------------------------------------
# File I/O helpers
# ----------------------------------------

def ensure_dir(p: Path) -> None:
    Path(p).mkdir(parents=True, exist_ok=True)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _has_content(path: Path, content: str, encoding: str) -> bool:
    """
    True if `path` exists and already holds `content` (modulo newline style).
    """
    try:
        with open(path, "r", encoding=encoding, newline="") as f:
            return normalize_newlines(f.read()) == content
    except FileNotFoundError:
        return False


def atomic_write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    mode: Optional[int] = 0o644,
    only_if_changed: bool = True,
) -> bool:
    """
    Replace `path` with `content` in one step.

    The text goes to a temporary file next to the destination which is then
    moved over it with os.replace, so readers see either the old or the new
    file. On any failure the temporary file is removed and the exception
    propagates. Returns False when the file already had this content.
    """
    path = Path(path)
    content = normalize_newlines(content)
    ensure_dir(path.parent)

    if only_if_changed and _has_content(path, content, encoding):
        logger.debug("[skip] %s (unchanged)", path)
        return False

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    committed = False
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
        committed = True
    finally:
        if not committed:
            try:
                os.remove(tmp_name)
            except OSError as ex:
                logger.warning("Could not remove temporary file %s: %s", tmp_name, ex)
    logger.info("[write] %s", path)
    return True


def write_text(path: Path, content: str, encoding: str = "utf-8", dry_run: bool = False) -> None:
    """
    atomic_write_text, or only a log line when `dry_run` is set.
    """
    if dry_run:
        logger.info("[dry-run] write %s", path)
        return
    atomic_write_text(path, content, encoding=encoding)


__all__ = [
    "TemplateRenderer",
    "atomic_write_text",
    "configure_logging",
    "ensure_dir",
    "normalize_newlines",
    "resolve_log_level",
    "write_text",
]
