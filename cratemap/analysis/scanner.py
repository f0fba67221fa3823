"""Source file enumeration and crate alias discovery.

The enumerator is the only place that touches the file system during a
scan. Files over the size bound are reported with contents=None and are
never read.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from datetime import datetime, timezone
from fnmatch import fnmatch
from pathlib import Path

from cratemap.analysis.layout import ROOT_CRATE, module_type_for, normalize_crate_name
from cratemap.config import ScanningSettings
from cratemap.errors import ScanFailure
from cratemap.logging import get_logger
from cratemap.models import ModuleType

_LOG = get_logger("scanner")


@dataclass(frozen=True)
class SourceFile:
    path: str  # project-relative, forward slashes
    contents: bytes | None  # None: over the size bound or unreadable
    size: int
    modified: datetime | None = None


def _excluded(rel: str, patterns: list[str]) -> bool:
    return any(fnmatch(rel, p) for p in patterns)


def _included(rel: str, patterns: list[str]) -> bool:
    name = rel.rsplit("/", 1)[-1]
    return any(fnmatch(name, p) or fnmatch(rel, p) for p in patterns)


def _type_enabled(module_type: ModuleType, scanning: ScanningSettings) -> bool:
    if module_type is ModuleType.TEST:
        return scanning.include_tests
    if module_type is ModuleType.EXAMPLE:
        return scanning.include_examples
    if module_type is ModuleType.BENCH:
        return scanning.include_benches
    if module_type is ModuleType.DOC:
        return scanning.include_docs
    return True


def _check_root(root: Path) -> None:
    if not root.exists():
        raise ScanFailure(root, "path does not exist")
    if not root.is_dir():
        raise ScanFailure(root, "not a directory")
    try:
        os.listdir(root)
    except OSError as e:
        raise ScanFailure(root, e.strerror or str(e)) from e


def iter_project_files(root: Path, scanning: ScanningSettings, patterns: list[str] | None = None):
    """Yield (relative path, absolute path) pairs, honoring exclude patterns."""
    root = Path(root)
    include = patterns if patterns is not None else scanning.include_patterns
    for dirpath, dirnames, filenames in os.walk(root, followlinks=scanning.follow_symlinks):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir
        dirnames[:] = sorted(
            d for d in dirnames
            if not _excluded(f"{rel_dir}/{d}/".lstrip("/"), scanning.exclude_patterns)
        )
        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if _excluded(rel, scanning.exclude_patterns) or not _included(rel, include):
                continue
            yield rel, Path(dirpath) / name


def _read(abs_path: Path, max_size: int | None) -> tuple[bytes | None, int, datetime | None]:
    try:
        st = abs_path.stat()
    except OSError as e:
        _LOG.debug("skipped %s: %s", abs_path, e)
        return None, 0, None
    modified = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
    if max_size is not None and st.st_size > max_size:
        return None, st.st_size, modified
    try:
        return abs_path.read_bytes(), st.st_size, modified
    except OSError as e:
        _LOG.debug("skipped %s: %s", abs_path, e)
        return None, st.st_size, modified


def enumerate_sources(root: Path, scanning: ScanningSettings) -> list[SourceFile]:
    """Path-sorted source files under root. Raises ScanFailure if root is unusable."""
    root = Path(root)
    _check_root(root)
    files: list[SourceFile] = []
    for rel, abs_path in iter_project_files(root, scanning):
        if not _type_enabled(module_type_for(rel), scanning):
            continue
        contents, size, modified = _read(abs_path, scanning.max_file_size)
        files.append(SourceFile(path=rel, contents=contents, size=size, modified=modified))
    files.sort(key=lambda f: f.path)
    return files


def discover_crate_aliases(root: Path, scanning: ScanningSettings) -> dict[str, str]:
    """Map package names (as written in code) to crate id prefixes.

    The root Cargo.toml package maps to "crate"; a member package at
    crates/foo-core maps to "foo_core" (its directory name). Unreadable or
    package-less manifests are ignored.
    """
    root = Path(root)
    aliases: dict[str, str] = {}
    for rel, abs_path in iter_project_files(root, scanning, patterns=["Cargo.toml"]):
        if rel.rsplit("/", 1)[-1] != "Cargo.toml":
            continue
        try:
            data = tomllib.loads(abs_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            _LOG.debug("ignored manifest %s: %s", rel, e)
            continue
        package = data.get("package")
        if not isinstance(package, dict) or not isinstance(package.get("name"), str):
            continue
        crate_dir = rel.rsplit("/", 1)[0] if "/" in rel else ""
        prefix = normalize_crate_name(crate_dir.rsplit("/", 1)[-1]) if crate_dir else ROOT_CRATE
        lib = data.get("lib")
        names = {package["name"]}
        if isinstance(lib, dict) and isinstance(lib.get("name"), str):
            names.add(lib["name"])
        for name in names:
            aliases.setdefault(normalize_crate_name(name), prefix)
    return aliases
