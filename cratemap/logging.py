"""Logger helpers shared by the scanner, the scan service and the CLI.

All cratemap loggers hang off the ``cratemap`` root. ``CRATEMAP_LOG_LEVEL``
accepts a level name (``DEBUG``) or a number (``10``); CLI flags win over it.
"""

from __future__ import annotations

import logging
import os
import sys

ROOT_LOGGER = "cratemap"
LEVEL_ENV = "CRATEMAP_LOG_LEVEL"

PLAIN_FORMAT = "%(message)s"
WATCH_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_configured = False


def level_from_env(default: int = logging.INFO) -> int:
    raw = os.environ.get(LEVEL_ENV, "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def configure_cli_logging(*, quiet: bool = False, verbose: bool = False, timestamps: bool = False) -> None:
    """Route cratemap.* records to stderr at the level the CLI flags ask for.

    ``timestamps`` switches to the long form used by ``cratemap watch``, where
    rescans are spread over time. Calling again replaces the previous handler.
    """
    global _configured
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = level_from_env()

    root = logging.getLogger(ROOT_LOGGER)
    for old in list(root.handlers):
        root.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(WATCH_FORMAT if timestamps else PLAIN_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    # children created before configuration carry their own level; defer to the root
    prefix = ROOT_LOGGER + "."
    for name, child in list(logging.root.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(child, logging.Logger):
            child.setLevel(logging.NOTSET)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return the ``cratemap.<name>`` logger."""
    logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
    if not _configured:
        logger.setLevel(level_from_env())
    return logger
