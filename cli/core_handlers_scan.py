"""Scan, cycles and help handlers."""

from __future__ import annotations

from typing import Any

from cratemap.api.architecture import cycle_report, graph_view, snapshot_to_dict
from cratemap.core.pipeline import run_full_analysis
from cratemap.errors import CratemapError
from report.architecture_report import render_architecture_report

from .core_handlers_common import _check_path, _clog, _dump_json, _err, _load_config, _write_output

HELP_TEXT = """cratemap commands:
  scan [PATH]     scan once; JSON map to stdout (--format text|markdown for a summary)
  cycles [PATH]   scan once; print dependency cycles (--strict exits 2 on cycles)
  watch [PATH]    keep the map current: rescan on .rs / Cargo.toml changes and every --interval seconds
"""


def handle_help(parser: Any) -> int:
    print(HELP_TEXT)
    parser.print_usage()
    return 0


def _scan(args: Any):
    """Run one scan for args.path; None (error logged) on failure."""
    path = args.path.resolve()
    if _check_path(path) != 0:
        return None
    config = _load_config(path, args)
    if config is None:
        return None
    try:
        return run_full_analysis(path, config)
    except CratemapError as e:
        _err(str(e))
        return None


def handle_scan(args: Any) -> int:
    amap = _scan(args)
    if amap is None:
        return 1
    fmt = getattr(args, "format", "json")
    if fmt == "json":
        data = graph_view(amap) if getattr(args, "graph", False) else snapshot_to_dict(amap)
        text = _dump_json(data)
    else:
        text = render_architecture_report(amap, format=fmt)
    return _write_output(text, getattr(args, "output", None))


def handle_cycles(args: Any) -> int:
    amap = _scan(args)
    if amap is None:
        return 1
    report = cycle_report(amap)
    if getattr(args, "json", False):
        print(_dump_json(report))
    elif not report["cycles"]:
        print("no cycles")
    else:
        for cycle in report["cycles"]:
            print(" -> ".join([*cycle, cycle[0]]))
        if report["truncated"]:
            _clog().warning("cratemap: cycle list truncated at %d", len(report["cycles"]))
    if getattr(args, "strict", False) and report["cycles"]:
        return 2
    return 0
