"""Scan pipeline, snapshot service and rescan triggers."""

from cratemap.core.pipeline import build_map, run_full_analysis
from cratemap.core.service import RefreshResult, ScanService

__all__ = ["RefreshResult", "ScanService", "build_map", "run_full_analysis"]
