"""cratemap package.

Static architecture map for Rust source trees:

- cratemap/analysis  : lexer, parser, enumeration, graph, cycles, metrics
- cratemap/core      : scan pipeline, snapshot service, rescan triggers
- cratemap/api       : JSON-ready views for presentation layers
- cratemap/config.py : project and scanning settings

The CLI entry point lives in cratemap_cli.py (argument parsing only) and the
handlers in cli/.
"""

__version__ = "0.4.0"
