"""Watch handler: keep the map current until Ctrl+C."""

from __future__ import annotations

import time
from typing import Any

from cratemap.api.architecture import snapshot_to_dict
from cratemap.core.service import RefreshResult, ScanService
from cratemap.core.watch import RescanTrigger, start_watching

from .core_handlers_common import _check_path, _clog, _dump_json, _load_config, _write_output


def _on_scan(args: Any):
    output = getattr(args, "output", None)

    def listener(result: RefreshResult) -> None:
        amap = result.snapshot
        if not result.ok:
            _clog().warning("cratemap watch: scan failed, keeping previous map (%s)", result.error)
            return
        _clog().info(
            "cratemap watch: %d modules, %d edges, %d cycles, avg complexity %.2f",
            amap.total_modules,
            len(amap.edges),
            len(amap.cycles),
            amap.average_complexity,
        )
        if output is not None:
            _write_output(_dump_json(snapshot_to_dict(amap)), output)

    return listener


def handle_watch(args: Any) -> int:
    """Rescan on .rs / Cargo.toml changes and on a fixed interval."""
    path = args.path.resolve()
    if _check_path(path) != 0:
        return 1
    config = _load_config(path, args)
    if config is None:
        return 1
    service = ScanService(path, config)
    service.subscribe(_on_scan(args))
    observer = None
    trigger = None
    if not getattr(args, "no_watch", False):
        trigger = RescanTrigger(
            service.request_rescan,
            root=path,
            exclude_patterns=config.scanning.exclude_patterns,
        )
        observer = start_watching(path, trigger)
    _clog().info(
        "cratemap watch: monitoring %s (rescan every %ss, Ctrl+C to stop)",
        path,
        config.scanning.scan_interval,
    )
    service.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        _clog().info("cratemap watch: stopped (Ctrl+C)")
    finally:
        if trigger is not None:
            trigger.cancel()
        if observer is not None:
            observer.stop()
            observer.join()
        service.stop()
    return 0
