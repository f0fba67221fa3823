"""CLI handlers facade.

Thin wrapper that re-exports concrete handler implementations from:
- cli.core_handlers_scan   : scan, cycles, help
- cli.core_handlers_watch  : watch
"""
from __future__ import annotations

from .core_handlers_scan import handle_cycles, handle_help, handle_scan
from .core_handlers_watch import handle_watch

__all__ = ["handle_help", "handle_scan", "handle_cycles", "handle_watch"]
