"""
Complexity and maintainability metrics.

All functions are pure: identical input gives identical output. Nodes
without functions have complexity None and are left out of complexity
aggregates instead of counting as zero.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Sequence

from cratemap.analysis.graph import GraphNode, ModuleGraph
from cratemap.models import (
    ArchitectureMap,
    ArchitectureMetrics,
    DependencyEdge,
    FunctionInfo,
    ModuleType,
    NodeMetrics,
)

MI_COMPLEXITY_WEIGHT = 0.45
MI_SIZE_WEIGHT = 0.35
MI_DOC_WEIGHT = 0.20
MI_COMPLEXITY_SCALE = 10.0
MI_SIZE_SCALE = 1000.0


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def weighted_complexity(functions: Sequence[FunctionInfo]) -> float | None:
    """Line-weighted mean of cyclomatic complexities; None without functions."""
    if not functions:
        return None
    total_lines = sum(f.lines for f in functions)
    return sum(f.cyclomatic_complexity * f.lines for f in functions) / total_lines


def doc_density(entities: Iterable[object]) -> float:
    items = list(entities)
    if not items:
        return 0.0
    documented = sum(1 for e in items if getattr(e, "has_doc", False))
    return documented / len(items)


def maintainability_index(complexity: float | None, lines_of_code: int, density: float) -> float:
    """
    Normalized maintainability in [0, 1].

      0.45 * 1 / (1 + max(c - 1, 0) / 10)
    + 0.35 * 1 / (1 + loc / 1000)
    + 0.20 * doc_density
    """
    c = 1.0 if complexity is None else complexity
    complexity_term = 1.0 / (1.0 + max(c - 1.0, 0.0) / MI_COMPLEXITY_SCALE)
    size_term = 1.0 / (1.0 + max(lines_of_code, 0) / MI_SIZE_SCALE)
    value = MI_COMPLEXITY_WEIGHT * complexity_term + MI_SIZE_WEIGHT * size_term + MI_DOC_WEIGHT * _clamp01(density)
    return _clamp01(value)


def node_metrics(node: GraphNode) -> NodeMetrics:
    unit = node.unit
    entities = (*unit.functions, *unit.structs, *unit.enums, *unit.traits)
    complexity = weighted_complexity(unit.functions)
    density = doc_density(entities)
    return NodeMetrics(
        lines_of_code=unit.lines_of_code,
        line_count=unit.line_count,
        function_count=len(unit.functions),
        struct_count=len(unit.structs),
        enum_count=len(unit.enums),
        trait_count=len(unit.traits),
        complexity=complexity,
        cognitive_complexity=sum(f.cognitive_complexity for f in unit.functions),
        doc_density=density,
        maintainability_index=maintainability_index(complexity, unit.lines_of_code, density),
        fan_in=len(node.dependents),
        fan_out=len(node.dependencies),
        external_dependencies=node.external_dependencies,
    )


def compute_node_metrics(graph: ModuleGraph) -> Dict[str, NodeMetrics]:
    return {node_id: node_metrics(node) for node_id, node in graph.nodes.items()}


def dependency_density(node_count: int, edge_count: int) -> float:
    if node_count <= 1:
        return 0.0
    return _clamp01(edge_count / (node_count * (node_count - 1)))


def average_dependencies(node_count: int, edge_count: int) -> float:
    return edge_count / node_count if node_count else 0.0


def most_connected_node(edges: Sequence[DependencyEdge]) -> str | None:
    """Node touching the most edges (as source or target); ties go to the smallest id."""
    touches: Dict[str, int] = {}
    for e in edges:
        touches[e.source] = touches.get(e.source, 0) + 1
        touches[e.target] = touches.get(e.target, 0) + 1
    if not touches:
        return None
    return min(touches, key=lambda node_id: (-touches[node_id], node_id))


def modularity_score(edges: Sequence[DependencyEdge], module_types: Mapping[str, ModuleType]) -> float:
    """1 - share of edges crossing module_type groups; 1 with no edges."""
    if not edges:
        return 1.0
    crossing = sum(1 for e in edges if module_types.get(e.source) != module_types.get(e.target))
    return _clamp01(1.0 - crossing / len(edges))


def aggregate_metrics(
    metrics: Mapping[str, NodeMetrics],
    module_types: Mapping[str, ModuleType],
    edges: Sequence[DependencyEdge],
) -> ArchitectureMetrics:
    complexities = [m.complexity for m in metrics.values() if m.complexity is not None]
    indices = [m.maintainability_index for m in metrics.values()]
    return ArchitectureMetrics(
        total_functions=sum(m.function_count for m in metrics.values()),
        total_structs=sum(m.struct_count for m in metrics.values()),
        total_enums=sum(m.enum_count for m in metrics.values()),
        total_traits=sum(m.trait_count for m in metrics.values()),
        max_complexity=max(complexities) if complexities else 0.0,
        min_complexity=min(complexities) if complexities else 0.0,
        average_complexity=sum(complexities) / len(complexities) if complexities else 0.0,
        dependency_density=dependency_density(len(metrics), len(edges)),
        average_dependencies=average_dependencies(len(metrics), len(edges)),
        most_connected_node=most_connected_node(edges),
        modularity_score=modularity_score(edges, module_types),
        maintainability_index=sum(indices) / len(indices) if indices else 1.0,
    )


def summarize_graph(graph: ModuleGraph) -> tuple[Dict[str, NodeMetrics], ArchitectureMetrics]:
    """Per-node metrics plus aggregates for a built graph."""
    per_node = compute_node_metrics(graph)
    module_types = {node_id: node.module_type for node_id, node in graph.nodes.items()}
    return per_node, aggregate_metrics(per_node, module_types, graph.edges)


def map_metrics(architecture_map: ArchitectureMap) -> ArchitectureMetrics:
    """Aggregates recomputed from a published map."""
    nodes = architecture_map.nodes
    return aggregate_metrics(
        {node_id: node.metrics for node_id, node in nodes.items()},
        {node_id: node.module_type for node_id, node in nodes.items()},
        architecture_map.edges,
    )
