"""Scan service: owns the current ArchitectureMap and swaps it atomically.

Readers call current() at any time and get a complete, immutable map.
Scans run one at a time (scan lock). Rescan requests arriving while a scan
is running collapse into a single pending rescan that starts right after.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from cratemap.config import ProjectConfig, load_config
from cratemap.core.pipeline import run_full_analysis
from cratemap.errors import CratemapError, ScanFailure
from cratemap.logging import get_logger
from cratemap.models import ArchitectureMap

_LOG = get_logger("service")

Scanner = Callable[[Path, ProjectConfig], ArchitectureMap]


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one scan attempt. snapshot is never None."""

    snapshot: ArchitectureMap
    error: Optional[CratemapError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScanService:
    def __init__(
        self,
        root: Path,
        config: Optional[ProjectConfig] = None,
        *,
        scanner: Scanner = run_full_analysis,
    ):
        self.root = Path(root)
        self.config = config or load_config(self.root)
        self._scanner = scanner
        self._snapshot = ArchitectureMap.empty(self.config.project.name)
        self._last_error: Optional[CratemapError] = None
        self._scan_lock = threading.Lock()
        self._cond = threading.Condition()
        self._pending = False
        self._stopping = False
        self._scans = 0
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[Callable[[RefreshResult], None]] = []

    # -- readers ------------------------------------------------------------

    def current(self) -> ArchitectureMap:
        """Latest published map; never blocks."""
        return self._snapshot

    @property
    def last_error(self) -> Optional[CratemapError]:
        return self._last_error

    @property
    def scan_count(self) -> int:
        with self._cond:
            return self._scans

    def subscribe(self, listener: Callable[[RefreshResult], None]) -> None:
        """Call listener after every scan attempt (from the scanning thread)."""
        self._listeners.append(listener)

    # -- scanning -----------------------------------------------------------

    def refresh(self) -> RefreshResult:
        """Run one full scan now. On failure the previous map stays published."""
        with self._scan_lock:
            try:
                snapshot = self._scanner(self.root, self.config)
            except CratemapError as e:
                _LOG.error("cratemap: scan failed: %s", e)
                self._last_error = e
                result = RefreshResult(self._snapshot, e)
            except Exception as e:
                _LOG.exception("cratemap: scan crashed")
                failure = ScanFailure(self.root, f"unexpected {type(e).__name__}: {e}")
                self._last_error = failure
                result = RefreshResult(self._snapshot, failure)
            else:
                self._snapshot = snapshot
                self._last_error = None
                result = RefreshResult(snapshot)
        with self._cond:
            self._scans += 1
            self._cond.notify_all()
        for listener in list(self._listeners):
            listener(result)
        return result

    def request_rescan(self) -> None:
        """Ask the background loop for a rescan; repeated requests coalesce."""
        with self._cond:
            self._pending = True
            self._cond.notify_all()

    def wait_for_scans(self, count: int, timeout: Optional[float] = None) -> bool:
        """Block until at least count scans have completed in total."""
        with self._cond:
            return self._cond.wait_for(lambda: self._scans >= count, timeout=timeout)

    # -- background loop ----------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background loop; the first scan runs immediately."""
        if self.running:
            return
        with self._cond:
            self._stopping = False
            self._pending = True
        self._thread = threading.Thread(target=self._run, name="cratemap-scan", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the loop. An in-flight scan finishes first."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        interval = self.config.scanning.scan_interval
        while True:
            with self._cond:
                if not self._pending and not self._stopping:
                    self._cond.wait(timeout=interval)
                if self._stopping:
                    return
                self._pending = False
            self.refresh()
