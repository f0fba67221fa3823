"""File-change signal for the scan service.

A watchdog handler turns relevant file events (.rs sources, Cargo.toml)
into debounced rescan requests. A burst of events produces one request,
fired `debounce` seconds after the first event of the burst.
"""

from __future__ import annotations

import os
import threading
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from cratemap.logging import get_logger

_LOG = get_logger("watch")

DEFAULT_DEBOUNCE = 0.5  # seconds
WATCHED_SUFFIXES = (".rs",)
WATCHED_NAMES = ("Cargo.toml",)
IGNORED_EVENTS = frozenset({"opened", "closed", "closed_no_write"})


class RescanTrigger(FileSystemEventHandler):
    def __init__(
        self,
        request: Callable[[], None],
        *,
        root: Optional[Path] = None,
        exclude_patterns: Iterable[str] = (),
        debounce: float = DEFAULT_DEBOUNCE,
    ):
        super().__init__()
        self._request = request
        self.root = Path(root).resolve() if root is not None else None
        self.exclude_patterns = list(exclude_patterns)
        self.debounce = debounce
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def relevant(self, path: str) -> bool:
        p = Path(path)
        if p.name not in WATCHED_NAMES and p.suffix not in WATCHED_SUFFIXES:
            return False
        if self.root is not None and self.exclude_patterns:
            try:
                rel = p.resolve().relative_to(self.root).as_posix()
            except ValueError:
                return True
            if any(fnmatch(rel, pattern) for pattern in self.exclude_patterns):
                return False
        return True

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in IGNORED_EVENTS:
            return
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        if not any(self.relevant(p) for p in paths):
            return
        _LOG.debug("change detected: %s %s", event.event_type, paths[-1])
        self._schedule()

    def _schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                return
            if self.debounce <= 0:
                fire_now = True
            else:
                fire_now = False
                self._timer = threading.Timer(self.debounce, self._fire)
                self._timer.daemon = True
                self._timer.start()
        if fire_now:
            self._request()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._request()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def start_watching(root: Path, trigger: RescanTrigger) -> Observer:
    """Schedule trigger recursively under root and start the observer thread."""
    observer = Observer()
    observer.schedule(trigger, str(root), recursive=True)
    observer.daemon = True
    observer.start()
    _LOG.info("cratemap: watching %s", root)
    return observer
