"""Error taxonomy for scanning and analysis.

Only ScanFailure aborts a scan. Per-file problems never raise out of the
parser: they end up as a node status or a skipped-file count.
"""

from __future__ import annotations

from pathlib import Path


class CratemapError(Exception):
    """Base class for all cratemap errors."""


class ScanFailure(CratemapError):
    """Root enumeration failed (missing or unreadable project root)."""

    def __init__(self, root: Path | str, reason: str) -> None:
        super().__init__(f"cannot scan {root}: {reason}")
        self.root = Path(root)
        self.reason = reason


class SourceParseError(CratemapError):
    """A single source file is malformed. Contained to that file's node."""

    def __init__(self, reason: str, line: int | None = None) -> None:
        message = f"line {line}: {reason}" if line is not None else reason
        super().__init__(message)
        self.reason = reason
        self.line = line


class ConfigError(CratemapError):
    """Configuration file missing, unreadable or of an unsupported format."""


class GraphInvariantError(CratemapError):
    """dependencies / dependents are not exact transposes of each other."""
