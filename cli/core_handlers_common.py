"""Shared helpers for CLI handlers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from cratemap.config import ProjectConfig, load_config
from cratemap.errors import ConfigError
from cratemap.logging import get_logger


def _clog() -> Any:
    return get_logger("cli")


def _err(msg: str) -> None:
    """Log unified error message (via logger, respects --quiet)."""
    _clog().error("cratemap: %s", msg)


def _check_path(path: Path, must_be_dir: bool = True) -> int:
    """Return 0 if path is valid, 1 and log an error otherwise."""
    if not path.exists():
        _err(f"path does not exist: {path}")
        return 1
    if must_be_dir and (not path.is_dir()):
        _err(f"not a directory: {path}")
        return 1
    return 0


def _load_config(path: Path, args: Any) -> Optional[ProjectConfig]:
    """Project config with CLI flags applied on top; None (error logged) on ConfigError."""
    try:
        config = load_config(path, getattr(args, "config", None))
    except ConfigError as e:
        _err(str(e))
        return None
    scanning = config.scanning
    if getattr(args, "max_cycles", None) is not None:
        scanning.max_cycles = args.max_cycles
    if getattr(args, "workers", None) is not None:
        scanning.workers = args.workers
    if getattr(args, "module_edges", False):
        scanning.module_tree_edges = True
    if getattr(args, "interval", None) is not None:
        scanning.scan_interval = args.interval
    try:
        scanning.validate()
    except ConfigError as e:
        _err(str(e))
        return None
    return config


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _write_output(text: str, output: Optional[Path]) -> int:
    """Print text or write it to output. Returns an exit code."""
    if output is None:
        print(text)
        return 0
    try:
        output.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        _err(f"cannot write {output}: {e}")
        return 1
    _clog().info("cratemap: wrote %s", output)
    return 0
