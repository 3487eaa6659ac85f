#!/usr/bin/env python3
"""
Opaque handle classification.

A struct whose bare name carries the handle marker (WGPUBufferImpl) is only
ever used behind a pointer typedef (WGPUBuffer), so it is exposed as an
opaque single-pointer wrapper named after its canonical name (Buffer).
Every other struct is a plain value type.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .models import HandleRegistry, Struct
from .naming import NamingConfig

logger = logging.getLogger(__name__)


def build_handle_registry(structs: Iterable[Struct], naming: NamingConfig) -> HandleRegistry:
    """
    Return the canonical names of all structs that denote opaque handles.
    """
    handles = set()
    for s in structs:
        if naming.is_handle_struct_name(s.name):
            handles.add(naming.canonical_struct_name(s.name))
    logger.debug("Handle registry: %s", ", ".join(sorted(handles)) or "<empty>")
    return frozenset(handles)


__all__ = ["build_handle_registry"]
