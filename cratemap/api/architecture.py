"""JSON-ready views of an ArchitectureMap for presentation layers (renderers, web, CLI)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, assert_never

from cratemap.models import (
    ArchitectureMap,
    ArchitectureNode,
    DependencyEdge,
    FunctionInfo,
    NodeStatus,
    StatusKind,
)


def _status_to_dict(status: NodeStatus) -> Dict[str, Any]:
    kind = status.kind
    if kind is StatusKind.OK:
        return {"kind": kind.value}
    elif kind is StatusKind.WARNING:
        return {"kind": kind.value, "reasons": list(status.reasons)}
    elif kind is StatusKind.ERROR:
        return {"kind": kind.value, "reason": status.reason}
    else:
        assert_never(kind)


def _function_to_dict(fn: FunctionInfo) -> Dict[str, Any]:
    return {
        "name": fn.name,
        "owner": fn.owner,
        "line_span": list(fn.line_span),
        "parameter_count": fn.parameter_count,
        "cyclomatic_complexity": fn.cyclomatic_complexity,
        "cognitive_complexity": fn.cognitive_complexity,
        "visibility": fn.visibility.value,
        "is_async": fn.is_async,
        "has_doc": fn.has_doc,
        "attributes": list(fn.attribute_tags),
    }


def node_to_dict(node: ArchitectureNode) -> Dict[str, Any]:
    m = node.metrics
    return {
        "id": node.id,
        "name": node.name,
        "module_type": node.module_type.value,
        "file_path": node.file_path,
        "dependencies": sorted(node.dependencies),
        "dependents": sorted(node.dependents),
        "status": _status_to_dict(node.status),
        "external_dependencies": node.external_dependencies,
        "last_modified": node.last_modified.isoformat() if node.last_modified else None,
        "metrics": {
            "lines_of_code": m.lines_of_code,
            "line_count": m.line_count,
            "function_count": m.function_count,
            "struct_count": m.struct_count,
            "enum_count": m.enum_count,
            "trait_count": m.trait_count,
            "complexity": m.complexity,
            "cognitive_complexity": m.cognitive_complexity,
            "doc_density": m.doc_density,
            "maintainability_index": m.maintainability_index,
            "fan_in": m.fan_in,
            "fan_out": m.fan_out,
            "external_dependencies": m.external_dependencies,
        },
        "functions": [_function_to_dict(f) for f in node.functions],
        "structs": [
            {
                "name": s.name,
                "field_count": s.field_count,
                "visibility": s.visibility.value,
                "derives": list(s.derives),
                "attributes": list(s.attribute_tags),
                "has_doc": s.has_doc,
            }
            for s in node.structs
        ],
        "enums": [
            {
                "name": e.name,
                "variant_count": e.variant_count,
                "visibility": e.visibility.value,
                "derives": list(e.derives),
                "has_doc": e.has_doc,
            }
            for e in node.enums
        ],
        "traits": [
            {
                "name": t.name,
                "method_count": t.method_count,
                "visibility": t.visibility.value,
                "supertraits": list(t.supertraits),
                "has_doc": t.has_doc,
            }
            for t in node.traits
        ],
        "declared_modules": list(node.declared_modules),
    }


def edge_to_dict(edge: DependencyEdge) -> Dict[str, Any]:
    return {
        "source": edge.source,
        "target": edge.target,
        "strength": edge.strength,
        "kind": edge.kind.value,
        "is_circular": edge.is_circular,
    }


def cycle_report(architecture_map: ArchitectureMap) -> Dict[str, Any]:
    """Cycles as ordered id lists plus the truncation flag."""
    return {
        "cycles": [list(c) for c in architecture_map.cycles],
        "truncated": architecture_map.cycles_truncated,
    }


def snapshot_to_dict(architecture_map: ArchitectureMap) -> Dict[str, Any]:
    """Whole map as plain dicts/lists; nodes in id order, edges in (source, target) order."""
    agg = architecture_map.metrics
    return {
        "project_name": architecture_map.project_name,
        "scan_timestamp": architecture_map.scan_timestamp.isoformat(),
        "total_modules": architecture_map.total_modules,
        "total_lines": architecture_map.total_lines,
        "average_complexity": architecture_map.average_complexity,
        "skipped_files": architecture_map.skipped_files,
        "nodes": [node_to_dict(architecture_map.nodes[k]) for k in sorted(architecture_map.nodes)],
        "edges": [edge_to_dict(e) for e in architecture_map.edges],
        **cycle_report(architecture_map),
        "metrics": {
            "total_functions": agg.total_functions,
            "total_structs": agg.total_structs,
            "total_enums": agg.total_enums,
            "total_traits": agg.total_traits,
            "max_complexity": agg.max_complexity,
            "min_complexity": agg.min_complexity,
            "average_complexity": agg.average_complexity,
            "dependency_density": agg.dependency_density,
            "average_dependencies": agg.average_dependencies,
            "most_connected_node": agg.most_connected_node,
            "modularity_score": agg.modularity_score,
            "maintainability_index": agg.maintainability_index,
        },
    }


def graph_view(architecture_map: ArchitectureMap) -> Dict[str, Any]:
    """
    Compact graph for UI renderers.
    nodes: [{ id, label, title, group, fan_in, fan_out, status }]
    edges: [{ from, to, value, circular }]
    """
    nodes: List[Dict[str, Any]] = []
    for node_id in sorted(architecture_map.nodes):
        node = architecture_map.nodes[node_id]
        fi, fo = node.metrics.fan_in, node.metrics.fan_out
        nodes.append(
            {
                "id": node_id,
                "label": node.name,
                "title": node_id + f" (fan-in: {fi}, fan-out: {fo})",
                "group": node.module_type.value,
                "fan_in": fi,
                "fan_out": fo,
                "status": node.status.kind.value,
            }
        )
    edges = [
        {"from": e.source, "to": e.target, "value": e.strength, "circular": e.is_circular}
        for e in architecture_map.edges
    ]
    return {"nodes": nodes, "edges": edges}


def get_node(architecture_map: ArchitectureMap, node_id: str) -> Optional[Dict[str, Any]]:
    node = architecture_map.node(node_id)
    return node_to_dict(node) if node is not None else None
