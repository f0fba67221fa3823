"""argparse wiring for ``cratemap``: parser construction and command dispatch.

``parser`` declares the scan, cycles, watch and help subcommands;
``dispatch`` configures logging and routes to ``cli.handlers``.
"""

from .dispatch import dispatch_command
from .parser import build_parser

__all__ = ["build_parser", "dispatch_command"]
