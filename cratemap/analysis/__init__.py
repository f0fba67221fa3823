"""Parsing, graph building, cycle detection and metrics for Rust source trees."""

from cratemap.analysis.cycles import CycleReport, find_cycles
from cratemap.analysis.graph import ModuleGraph, build_module_graph
from cratemap.analysis.parser import parse_source_unit
from cratemap.analysis.scanner import SourceFile, discover_crate_aliases, enumerate_sources

__all__ = [
    "CycleReport",
    "ModuleGraph",
    "SourceFile",
    "build_module_graph",
    "discover_crate_aliases",
    "enumerate_sources",
    "find_cycles",
    "parse_source_unit",
]
