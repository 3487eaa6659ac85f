#!/usr/bin/env python3
"""
Retrieval of prebuilt native library archives.

Downloads the release archive for every (platform, build) pair, extracts the
shared library into `<dist>/<build>/<platform>/`, and extracts the C headers
from one designated archive. Archives are fetched in parallel; none of this
feeds the translation except the extracted header text.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 16

Opener = Callable[[str], Any]


@dataclass(frozen=True)
class ArchiveConfig:
    """
    Layout of the upstream release archives.
    """
    url_template: str = (
        "https://github.com/gfx-rs/wgpu-native/releases/download/"
        "v{version}/wgpu-{platform}-x86_64-{build}.zip"
    )
    # (platform, shared library extension)
    platforms: Tuple[Tuple[str, str], ...] = (
        ("windows", "dll"),
        ("linux", "so"),
        ("macos", "dylib"),
    )
    builds: Tuple[str, ...] = ("release", "debug")
    library_member: str = "libwgpu.{ext}"
    library_name: str = "libwgpu.{ext}"
    windows_library_name: str = "wgpu_native.{ext}"
    windows_extra_members: Tuple[str, ...] = ("libwgpu.lib",)
    header_members: Tuple[str, ...] = ("wgpu.h", "webgpu.h")
    # (platform, build) whose archive supplies the headers
    header_source: Tuple[str, str] = ("windows", "release")

    def url(self, version: str, platform: str, build: str) -> str:
        return self.url_template.format(version=version, platform=platform, build=build)

    def output_library_name(self, platform: str, ext: str) -> str:
        template = self.windows_library_name if platform == "windows" else self.library_name
        return template.format(ext=ext)


@dataclass
class FetchResult:
    platform: str
    build: str
    files: List[Path] = field(default_factory=list)


def download_archive(url: str, opener: Optional[Opener] = None) -> Path:
    """
    Download `url` into a temporary file and return its path.
    The caller owns (and must delete) the file.
    """
    open_url = opener or urllib.request.urlopen
    fd, tmp = tempfile.mkstemp(suffix=".zip")
    try:
        with os.fdopen(fd, "wb") as out, open_url(url) as response:
            shutil.copyfileobj(response, out, CHUNK_SIZE)
    except BaseException:
        os.remove(tmp)
        raise
    return Path(tmp)


def extract_member(archive: zipfile.ZipFile, member: str, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    with archive.open(member) as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst, CHUNK_SIZE)
    return target


def fetch_one(
    version: str,
    platform: str,
    ext: str,
    build: str,
    dist_dir: Path,
    headers_dir: Path,
    config: ArchiveConfig,
    opener: Optional[Opener] = None,
) -> FetchResult:
    """
    Fetch and unpack the archive for a single (platform, build) pair.
    """
    url = config.url(version, platform, build)
    logger.info("Downloading %s", url)
    archive_path = download_archive(url, opener=opener)
    result = FetchResult(platform=platform, build=build)
    try:
        out_dir = Path(dist_dir) / build / platform
        with zipfile.ZipFile(archive_path) as archive:
            member = config.library_member.format(ext=ext)
            result.files.append(extract_member(archive, member, out_dir / config.output_library_name(platform, ext)))
            if platform == "windows":
                for extra in config.windows_extra_members:
                    result.files.append(extract_member(archive, extra, out_dir / extra))
            if (platform, build) == config.header_source:
                for header in config.header_members:
                    result.files.append(extract_member(archive, header, Path(headers_dir) / header))
    finally:
        archive_path.unlink()
    logger.debug("Unpacked %s/%s: %s", build, platform, ", ".join(f.name for f in result.files))
    return result


def fetch_native_libraries(
    version: str,
    dist_dir: Path,
    headers_dir: Path,
    config: Optional[ArchiveConfig] = None,
    jobs: Optional[int] = None,
    opener: Optional[Opener] = None,
) -> List[FetchResult]:
    """
    Fetch every (platform, build) archive in parallel.

    Raises RuntimeError after all downloads finished if any of them failed.
    Results are ordered like the configured platforms and builds.
    """
    cfg = config or ArchiveConfig()
    tasks = [(platform, ext, build) for platform, ext in cfg.platforms for build in cfg.builds]
    order = {(p, b): i for i, (p, _, b) in enumerate(tasks)}

    results: List[FetchResult] = []
    failed: List[str] = []
    with ThreadPoolExecutor(max_workers=jobs or len(tasks) or 1) as executor:
        futures = {
            executor.submit(fetch_one, version, p, ext, b, dist_dir, headers_dir, cfg, opener): f"{p}/{b}"
            for p, ext, b in tasks
        }
        for future in as_completed(futures):
            label = futures[future]
            try:
                results.append(future.result())
            except (OSError, KeyError, zipfile.BadZipFile, urllib.error.URLError) as ex:
                logger.error("Failed to fetch %s: %s", label, ex)
                failed.append(label)

    if failed:
        raise RuntimeError(f"Failed to fetch native libraries for: {', '.join(sorted(failed))}")
    results.sort(key=lambda r: order[(r.platform, r.build)])
    return results


__all__ = [
    "ArchiveConfig",
    "FetchResult",
    "download_archive",
    "extract_member",
    "fetch_native_libraries",
    "fetch_one",
]
