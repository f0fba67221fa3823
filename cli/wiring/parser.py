"""Parser wiring extracted from the cratemap_cli entrypoint."""

from __future__ import annotations

import argparse
from pathlib import Path


def build_parser(*, version: str) -> argparse.ArgumentParser:
    """Configure top-level CLI parser and subcommands."""
    parser = argparse.ArgumentParser(
        prog="cratemap",
        description="cratemap: module, dependency and complexity map of a Rust source tree",
        epilog="Commands: scan | cycles | watch. Use cratemap help for an overview.",
    )
    parser.add_argument("--version", "-V", action="version", version=f"%(prog)s {version}")
    subparsers = parser.add_subparsers(dest="command")

    _add_scan_commands(subparsers)
    _add_watch_command(subparsers)

    subparsers.add_parser("help", help="Show cratemap command overview")

    return parser


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "path",
        nargs="?",
        default=".",
        type=Path,
        help="Project root (default: .)",
    )
    p.add_argument("--config", "-c", type=Path, default=None, help="Config file (toml, yaml or json)")
    p.add_argument("--max-cycles", type=int, default=None, metavar="N", help="Stop cycle detection after N cycles")
    p.add_argument("--workers", type=int, default=None, metavar="N", help="Parser threads (default: CPU count)")
    p.add_argument("--module-edges", action="store_true", help="Also turn `mod x;` declarations into edges")
    p.add_argument("--quiet", "-q", action="store_true", help="Only warnings and errors on stderr")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")


def _add_scan_commands(subparsers: argparse._SubParsersAction) -> None:
    scan_parser = subparsers.add_parser("scan", help="Scan once and print the architecture map")
    _add_common_arguments(scan_parser)
    scan_parser.add_argument(
        "--format", "-f",
        choices=["json", "text", "markdown"],
        default="json",
        help="Output format (default: json)",
    )
    scan_parser.add_argument("--output", "-o", type=Path, default=None, help="Write output to a file instead of stdout")
    scan_parser.add_argument("--graph", action="store_true", help="JSON: compact nodes/edges view only")

    cycles_parser = subparsers.add_parser("cycles", help="Scan once and print dependency cycles")
    _add_common_arguments(cycles_parser)
    cycles_parser.add_argument("--json", action="store_true", help="Print the cycle report as JSON")
    cycles_parser.add_argument("--strict", action="store_true", help="Exit 2 when any cycle is found")


def _add_watch_command(subparsers: argparse._SubParsersAction) -> None:
    watch_parser = subparsers.add_parser(
        "watch",
        help="Rescan on file changes or every --interval seconds (Ctrl+C to stop)",
    )
    _add_common_arguments(watch_parser)
    watch_parser.add_argument("--interval", type=int, default=None, metavar="SEC", help="Rescan interval (default: config, 30)")
    watch_parser.add_argument("--output", "-o", type=Path, default=None, help="Rewrite this JSON file after every scan")
    watch_parser.add_argument("--no-watch", action="store_true", help="Interval rescans only, no file-system events")
