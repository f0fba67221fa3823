"""CLI command dispatch wiring extracted from cratemap_cli."""

from __future__ import annotations

import argparse
from typing import Any, Callable

from cli import handlers
from cratemap.logging import configure_cli_logging


def dispatch_command(parser: argparse.ArgumentParser, args: Any) -> int:
    """Dispatch parsed CLI args to the matching command handler."""
    quiet = getattr(args, "quiet", False)
    verbose = getattr(args, "verbose", False)
    configure_cli_logging(quiet=quiet, verbose=verbose, timestamps=args.command == "watch")

    if args.command is None:
        return handlers.handle_help(parser)

    dispatch: dict[str, Callable[[], int]] = {
        "help": lambda: handlers.handle_help(parser),
        "scan": lambda: handlers.handle_scan(args),
        "cycles": lambda: handlers.handle_cycles(args),
        "watch": lambda: handlers.handle_watch(args),
    }
    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler()
