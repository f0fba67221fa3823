"""Canonical module paths and module types from file paths.

Layout conventions (Cargo):

    src/lib.rs, src/main.rs   -> crate
    src/main.rs beside lib.rs -> crate::main  (binary root of a bin+lib package)
    src/a.rs, src/a/mod.rs    -> crate::a
    src/a/b.rs                -> crate::a::b
    tests/it.rs               -> crate::tests::it
    crates/core/src/x.rs      -> core::x   (workspace member "core")
    build.rs                  -> build     (outside the layout -> Other)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from cratemap.models import ModuleType

ROOT_CRATE = "crate"
TARGET_DIRS = ("src", "tests", "examples", "benches")
CRATE_ROOT_FILES = ("lib", "main")
BINARY_ROOT = "main"


@dataclass(frozen=True)
class ModulePath:
    """Where a file sits in the module hierarchy."""

    crate: str  # "crate" for the root package, else the member directory name
    segments: tuple[str, ...]  # module segments below the crate
    conforming: bool  # under src/, tests/, examples/ or benches/

    @property
    def id(self) -> str:
        if not self.conforming and self.crate == "":
            return "::".join(self.segments)
        return "::".join((self.crate, *self.segments))

    @property
    def parts(self) -> tuple[str, ...]:
        """Full path segments, crate first."""
        if not self.conforming and self.crate == "":
            return self.segments
        return (self.crate, *self.segments)


def normalize_crate_name(name: str) -> str:
    return name.replace("-", "_")


def _split(file_path: str) -> list[str]:
    parts = [p for p in PurePosixPath(file_path.replace("\\", "/")).parts if p not in ("", ".", "/")]
    if parts and parts[-1].endswith(".rs"):
        parts[-1] = parts[-1][:-3]
    return parts


def module_path_for(file_path: str) -> ModulePath:
    """Derive the canonical module path of a project-relative file path."""
    parts = _split(file_path)
    anchor = next((i for i, p in enumerate(parts) if p in TARGET_DIRS), None)
    if anchor is None or anchor == len(parts) - 1:
        segments = tuple(normalize_crate_name(p) for p in parts)
        if segments and segments[-1] == "mod" and len(segments) > 1:
            segments = segments[:-1]
        return ModulePath(crate="", segments=segments, conforming=False)
    crate = normalize_crate_name(parts[anchor - 1]) if anchor > 0 else ROOT_CRATE
    target = parts[anchor]
    rest = parts[anchor + 1:]
    if rest and rest[-1] == "mod":
        rest = rest[:-1]
    if target == "src":
        if len(rest) == 1 and rest[0] in CRATE_ROOT_FILES:
            rest = []
        return ModulePath(crate=crate, segments=tuple(rest), conforming=True)
    return ModulePath(crate=crate, segments=(target, *rest), conforming=True)


def module_type_for(file_path: str) -> ModuleType:
    """Classify by path segment, in fixed priority order."""
    parts = _split(file_path)[:-1]  # directories only
    if "tests" in parts:
        return ModuleType.TEST
    if "examples" in parts:
        return ModuleType.EXAMPLE
    if "benches" in parts:
        return ModuleType.BENCH
    if "docs" in parts or "doc" in parts:
        return ModuleType.DOC
    if "src" in parts:
        return ModuleType.CORE
    return ModuleType.OTHER


def display_name(module_path: ModulePath, file_path: str) -> str:
    """Short human name: last module segment, crate name for crate roots."""
    if module_path.segments:
        return module_path.segments[-1]
    if module_path.crate and module_path.crate != ROOT_CRATE:
        return module_path.crate
    return PurePosixPath(file_path).stem


def crate_root_kind(file_path: str) -> str | None:
    """"lib" or "main" for a package's src/lib.rs or src/main.rs, else None."""
    parts = _split(file_path)
    if len(parts) >= 2 and parts[-2] == "src" and parts[-1] in CRATE_ROOT_FILES:
        return parts[-1]
    return None
