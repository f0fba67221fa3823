"""Architecture report presentation.

Rendering only: takes an ArchitectureMap, returns a formatted string.
Scanning and metrics stay in cratemap.core.pipeline.
"""

from __future__ import annotations

from typing import List, assert_never

from cratemap.models import ArchitectureMap, ArchitectureNode, ModuleType, StatusKind


def module_type_label(module_type: ModuleType) -> str:
    if module_type is ModuleType.CORE:
        return "core"
    elif module_type is ModuleType.TEST:
        return "tests"
    elif module_type is ModuleType.EXAMPLE:
        return "examples"
    elif module_type is ModuleType.BENCH:
        return "benches"
    elif module_type is ModuleType.DOC:
        return "docs"
    elif module_type is ModuleType.OTHER:
        return "other"
    else:
        assert_never(module_type)


def _most_complex(amap: ArchitectureMap, top_n: int) -> List[ArchitectureNode]:
    nodes = [n for n in amap.nodes.values() if n.metrics.complexity is not None]
    return sorted(nodes, key=lambda n: (-(n.metrics.complexity or 0.0), n.id))[:top_n]


def _type_counts(amap: ArchitectureMap) -> List[tuple[str, int]]:
    counts = {}
    for node in amap.nodes.values():
        label = module_type_label(node.module_type)
        counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items())


def _summary_lines(amap: ArchitectureMap) -> List[str]:
    m = amap.metrics
    return [
        f"Modules: {amap.total_modules} ({', '.join(f'{k}={v}' for k, v in _type_counts(amap)) or 'none'})",
        f"Lines of code: {amap.total_lines}",
        f"Dependencies: {len(amap.edges)}",
        f"Entities: {m.total_functions} functions, {m.total_structs} structs, "
        f"{m.total_enums} enums, {m.total_traits} traits",
        f"Complexity: avg={m.average_complexity:.2f} min={m.min_complexity:.2f} max={m.max_complexity:.2f}",
        f"Dependency density: {m.dependency_density:.3f} (avg {m.average_dependencies:.2f} per module)",
        f"Most connected: {m.most_connected_node or '-'}",
        f"Modularity: {m.modularity_score:.3f}",
        f"Maintainability: {m.maintainability_index:.3f}",
        f"Skipped files: {amap.skipped_files}",
    ]


def _cycle_lines(amap: ArchitectureMap, top_n: int) -> List[str]:
    lines = []
    for cycle in amap.cycles[:top_n]:
        lines.append(" -> ".join((*cycle, cycle[0])))
    if len(amap.cycles) > top_n:
        lines.append(f"... and {len(amap.cycles) - top_n} more")
    if amap.cycles_truncated:
        lines.append("(cycle detection stopped at the configured limit)")
    return lines


def render_architecture_report(
    amap: ArchitectureMap,
    *,
    top_modules: int = 5,
    top_cycles: int = 10,
    format: str = "text",
) -> str:
    """Render a summary report of a map as plain text or markdown."""
    if format == "markdown":
        return _render_architecture_report_md(amap, top_modules, top_cycles)

    title = f"ARCHITECTURE MAP: {amap.project_name}" if amap.project_name else "ARCHITECTURE MAP"
    parts: List[str] = [title, ""]
    parts.extend(_summary_lines(amap))

    complex_nodes = _most_complex(amap, top_modules)
    if complex_nodes:
        parts.append("")
        parts.append("Most complex modules:")
        for node in complex_nodes:
            parts.append(
                f"  {node.id}  complexity={node.metrics.complexity:.2f} "
                f"mi={node.metrics.maintainability_index:.2f} loc={node.metrics.lines_of_code}"
            )

    parts.append("")
    if amap.cycles:
        parts.append(f"Cycles ({len(amap.cycles)}):")
        parts.extend(f"  {line}" for line in _cycle_lines(amap, top_cycles))
    else:
        parts.append("Cycles: none")

    errors = amap.nodes_with_status(StatusKind.ERROR)
    if errors:
        parts.append("")
        parts.append("Parse errors:")
        for node in errors:
            parts.append(f"  {node.file_path}: {node.status.reason}")

    warnings = amap.nodes_with_status(StatusKind.WARNING)
    if warnings:
        parts.append("")
        parts.append("Warnings:")
        for node in warnings:
            for reason in node.status.reasons:
                parts.append(f"  {node.id}: {reason}")
    return "\n".join(parts)


def _render_architecture_report_md(amap: ArchitectureMap, top_modules: int, top_cycles: int) -> str:
    """Markdown version of the architecture report."""
    title = f"# Architecture Map: {amap.project_name}" if amap.project_name else "# Architecture Map"
    parts: List[str] = [title, "", "## Summary", ""]
    parts.extend(f"- {line}" for line in _summary_lines(amap))
    parts.append("")

    complex_nodes = _most_complex(amap, top_modules)
    if complex_nodes:
        parts.append("## Most Complex Modules")
        parts.append("")
        parts.append("| Module | Complexity | Maintainability | LOC |")
        parts.append("|---|---|---|---|")
        for node in complex_nodes:
            m = node.metrics
            parts.append(f"| `{node.id}` | {m.complexity:.2f} | {m.maintainability_index:.2f} | {m.lines_of_code} |")
        parts.append("")

    parts.append("## Cycles")
    parts.append("")
    if amap.cycles:
        parts.extend(f"- `{line}`" if "->" in line else f"- {line}" for line in _cycle_lines(amap, top_cycles))
    else:
        parts.append("- none")
    parts.append("")

    errors = amap.nodes_with_status(StatusKind.ERROR)
    if errors:
        parts.append("## Parse Errors")
        parts.append("")
        for node in errors:
            parts.append(f"- `{node.file_path}`: {node.status.reason}")
        parts.append("")
    return "\n".join(parts)
