"""Tests for ScanService: snapshot publication, failures and rescan coalescing."""
import sys
import threading
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cratemap.config import ProjectConfig
from cratemap.core.pipeline import build_map
from cratemap.core.service import ScanService
from cratemap.errors import ScanFailure


def _config(interval=3600):
    config = ProjectConfig()
    config.project.name = "demo"
    config.scanning.scan_interval = interval
    return config


class FakeScanner:
    """Returns a fresh empty map per call; optionally blocks the first call."""

    def __init__(self, block_first=False):
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()
        if not block_first:
            self.release.set()
        self.fail = False

    def __call__(self, root, config):
        self.calls += 1
        self.started.set()
        if self.calls == 1:
            self.release.wait(5)
        if self.fail:
            raise ScanFailure(root, "gone")
        return build_map([], project_name=config.project.name)


def test_empty_map_before_first_scan(tmp_path):
    service = ScanService(tmp_path, _config(), scanner=FakeScanner())
    snapshot = service.current()
    assert snapshot.total_modules == 0
    assert snapshot.project_name == "demo"
    assert service.scan_count == 0


def test_refresh_publishes_new_snapshot(tmp_path):
    service = ScanService(tmp_path, _config(), scanner=FakeScanner())
    before = service.current()
    result = service.refresh()
    assert result.ok
    assert service.current() is result.snapshot
    assert service.current() is not before
    assert service.scan_count == 1


def test_failed_refresh_keeps_previous_snapshot(tmp_path):
    scanner = FakeScanner()
    service = ScanService(tmp_path, _config(), scanner=scanner)
    good = service.refresh().snapshot
    scanner.fail = True
    result = service.refresh()
    assert not result.ok
    assert isinstance(result.error, ScanFailure)
    assert result.snapshot is good
    assert service.current() is good
    assert service.last_error is result.error


def test_missing_root_with_real_scanner(tmp_path):
    service = ScanService(tmp_path / "missing", _config())
    result = service.refresh()
    assert isinstance(result.error, ScanFailure)
    assert result.snapshot.total_modules == 0


def test_listeners_see_every_attempt(tmp_path):
    scanner = FakeScanner()
    service = ScanService(tmp_path, _config(), scanner=scanner)
    seen = []
    service.subscribe(seen.append)
    service.refresh()
    scanner.fail = True
    service.refresh()
    assert [r.ok for r in seen] == [True, False]


def test_requests_during_a_scan_collapse_into_one_rescan(tmp_path):
    scanner = FakeScanner(block_first=True)
    service = ScanService(tmp_path, _config(), scanner=scanner)
    service.start()
    try:
        assert scanner.started.wait(5)
        for _ in range(5):
            service.request_rescan()
        scanner.release.set()
        assert service.wait_for_scans(2, timeout=5)
        time.sleep(0.2)
        assert service.scan_count == 2
        assert scanner.calls == 2
    finally:
        service.stop(timeout=5)
    assert not service.running


def test_readers_are_not_blocked_by_a_running_scan(tmp_path):
    scanner = FakeScanner(block_first=True)
    service = ScanService(tmp_path, _config(), scanner=scanner)
    service.start()
    try:
        assert scanner.started.wait(5)
        # the first scan is still blocked inside the scanner
        assert service.current().total_modules == 0
        assert service.scan_count == 0
    finally:
        scanner.release.set()
        service.stop(timeout=5)


def test_interval_triggers_rescans(tmp_path):
    scanner = FakeScanner()
    config = _config()
    config.scanning.scan_interval = 0.05
    service = ScanService(tmp_path, config, scanner=scanner)
    service.start()
    try:
        assert service.wait_for_scans(3, timeout=5)
    finally:
        service.stop(timeout=5)


def test_unexpected_scanner_error_keeps_snapshot_and_loop_alive(tmp_path):
    scanner = FakeScanner()
    service = ScanService(tmp_path, _config(), scanner=scanner)
    good = service.refresh().snapshot

    def crash(root, config):
        raise RuntimeError("boom")

    service._scanner = crash
    result = service.refresh()
    assert isinstance(result.error, ScanFailure)
    assert "RuntimeError" in str(result.error)
    assert service.current() is good

    service.start()
    try:
        assert service.wait_for_scans(3, timeout=5)
        assert service.running
        service._scanner = scanner
        service.request_rescan()
        assert service.wait_for_scans(4, timeout=5)
        assert service.last_error is None
    finally:
        service.stop(timeout=5)


def test_deeply_nested_file_does_not_abort_a_real_scan(make_project):
    depth = 1200
    root = make_project(
        {
            "src/lib.rs": "pub mod a;\npub mod deep;\n",
            "src/a.rs": "pub fn a() {}\n",
            "src/deep.rs": "mod m { " * depth + "fn f() {}" + " }" * depth,
        }
    )
    result = ScanService(root, _config()).refresh()
    assert result.ok
    assert set(result.snapshot.nodes) == {"crate", "crate::a", "crate::deep"}
