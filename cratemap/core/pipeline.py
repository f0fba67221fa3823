"""Scan pipeline: enumerate -> parse (parallel) -> graph -> cycles + metrics -> map.

The map is built completely before it is returned; nothing here publishes
partial results. Only ScanFailure (bad project root) propagates.
"""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from cratemap.analysis.cycles import CycleReport, find_cycles
from cratemap.analysis.graph import ModuleGraph, build_module_graph
from cratemap.analysis.metrics import summarize_graph
from cratemap.analysis.parser import parse_source_unit
from cratemap.analysis.scanner import SourceFile, discover_crate_aliases, enumerate_sources
from cratemap.config import ProjectConfig, ScanningSettings, load_config
from cratemap.logging import get_logger
from cratemap.models import (
    ArchitectureMap,
    ArchitectureNode,
    DependencyEdge,
    NodeMetrics,
    ParseOutcome,
    SourceUnit,
)

_LOG = get_logger("pipeline")


def _worker_count(scanning: ScanningSettings) -> int:
    if scanning.workers and scanning.workers > 0:
        return scanning.workers
    return os.cpu_count() or 1


def parse_files(files: Sequence[SourceFile], scanning: ScanningSettings) -> List[SourceUnit]:
    """Parse every file on a bounded thread pool; result order follows input order."""

    def parse(f: SourceFile) -> SourceUnit:
        return parse_source_unit(
            f.path,
            f.contents,
            f.size,
            max_size=scanning.max_file_size,
            modified=f.modified,
        )

    if not files:
        return []
    with ThreadPoolExecutor(max_workers=min(_worker_count(scanning), len(files))) as pool:
        units = list(pool.map(parse, files))
    for unit in units:
        if unit.status.outcome is ParseOutcome.SKIPPED:
            _LOG.debug("skipped %s: %s", unit.file_path, unit.status.reason)
        elif unit.status.outcome is ParseOutcome.ERROR:
            _LOG.warning("parse error in %s: %s", unit.file_path, unit.status.reason)
    return units


def _build_nodes(graph: ModuleGraph, metrics: Mapping[str, NodeMetrics]) -> Dict[str, ArchitectureNode]:
    nodes: Dict[str, ArchitectureNode] = {}
    for node_id, node in graph.nodes.items():
        unit = node.unit
        nodes[node_id] = ArchitectureNode(
            id=node_id,
            name=node.name,
            module_type=node.module_type,
            file_path=unit.file_path,
            dependencies=frozenset(node.dependencies),
            dependents=frozenset(node.dependents),
            status=node.status,
            metrics=metrics[node_id],
            external_dependencies=node.external_dependencies,
            last_modified=unit.modified,
            functions=unit.functions,
            structs=unit.structs,
            enums=unit.enums,
            traits=unit.traits,
            declared_modules=unit.declared_modules,
        )
    return nodes


def _mark_circular(edges: Iterable[DependencyEdge], report: CycleReport) -> tuple[DependencyEdge, ...]:
    on_cycle = report.edges()
    return tuple(
        DependencyEdge(e.source, e.target, e.strength, e.kind, is_circular=(e.source, e.target) in on_cycle)
        for e in edges
    )


def build_map(
    units: Iterable[SourceUnit],
    scanning: Optional[ScanningSettings] = None,
    aliases: Optional[Mapping[str, str]] = None,
    *,
    project_name: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> ArchitectureMap:
    """Assemble one immutable ArchitectureMap from parsed units."""
    scanning = scanning or ScanningSettings()
    graph = build_module_graph(units, aliases, module_tree_edges=scanning.module_tree_edges)
    report = find_cycles(graph.adjacency(), scanning.max_cycles)
    per_node, aggregate = summarize_graph(graph)
    nodes = _build_nodes(graph, per_node)
    return ArchitectureMap(
        nodes=MappingProxyType(nodes),
        edges=_mark_circular(graph.edges, report),
        scan_timestamp=timestamp or datetime.now(timezone.utc),
        total_modules=len(nodes),
        total_lines=sum(m.lines_of_code for m in per_node.values()),
        average_complexity=aggregate.average_complexity,
        cycles=report.cycles,
        metrics=aggregate,
        cycles_truncated=report.truncated,
        skipped_files=graph.skipped,
        project_name=project_name,
    )


def run_full_analysis(path: Path, config: Optional[ProjectConfig] = None) -> ArchitectureMap:
    """Run one complete scan of a project root and return the new map.

    Raises ScanFailure when the root cannot be enumerated; every per-file
    problem ends up inside the map instead.
    """
    root = Path(path).resolve()
    config = config or load_config(root)
    scanning = config.scanning
    started = time.monotonic()
    _LOG.info("cratemap: scanning %s", root)
    files = enumerate_sources(root, scanning)
    aliases = discover_crate_aliases(root, scanning)
    units = parse_files(files, scanning)
    result = build_map(units, scanning, aliases, project_name=config.project.name)
    elapsed = time.monotonic() - started
    _LOG.info(
        "cratemap: %d modules, %d edges, %d cycles, %d skipped in %.2fs",
        result.total_modules,
        len(result.edges),
        len(result.cycles),
        result.skipped_files,
        elapsed,
    )
    return result
