"""Module dependency graph built from parsed source units."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from cratemap.analysis.layout import BINARY_ROOT, crate_root_kind, display_name, module_path_for, module_type_for
from cratemap.errors import GraphInvariantError
from cratemap.logging import get_logger
from cratemap.models import (
    REFERENCE_PRIORITY,
    DependencyEdge,
    ModuleType,
    NodeStatus,
    ParseOutcome,
    Reference,
    ReferenceKind,
    SourceUnit,
)

_LOG = get_logger("graph")


@dataclass(slots=True)
class GraphNode:
    id: str
    name: str
    module_type: ModuleType
    unit: SourceUnit
    status: NodeStatus
    dependencies: Set[str] = field(default_factory=set)
    dependents: Set[str] = field(default_factory=set)
    external_dependencies: int = 0


@dataclass(slots=True)
class _EdgeAccumulator:
    paths: Set[str] = field(default_factory=set)
    kinds: Set[ReferenceKind] = field(default_factory=set)

    def add(self, ref: Reference) -> None:
        self.paths.add(ref.path)
        self.kinds.add(ref.kind)

    def kind(self) -> ReferenceKind:
        return next(k for k in REFERENCE_PRIORITY if k in self.kinds)


class ModuleGraph:
    """Dependency graph over module nodes, iterated in id order."""

    def __init__(self, nodes: Dict[str, GraphNode], edges: List[DependencyEdge], skipped: int = 0):
        self.nodes: Dict[str, GraphNode] = dict(sorted(nodes.items()))
        self.edges: List[DependencyEdge] = sorted(edges, key=lambda e: (e.source, e.target))
        self.skipped = skipped

    def adjacency(self) -> Dict[str, Tuple[str, ...]]:
        return {node_id: tuple(sorted(node.dependencies)) for node_id, node in self.nodes.items()}

    def fan_in_out(self) -> Dict[str, Tuple[int, int]]:
        return {
            node_id: (len(node.dependents), len(node.dependencies))
            for node_id, node in self.nodes.items()
        }

    def verify_symmetry(self) -> None:
        """dependents must be the exact transpose of dependencies, and both match the edges."""
        expected_in: Dict[str, Set[str]] = {n: set() for n in self.nodes}
        edge_pairs = {(e.source, e.target) for e in self.edges}
        for node_id, node in self.nodes.items():
            for dep in node.dependencies:
                if dep not in self.nodes:
                    raise GraphInvariantError(f"{node_id} depends on unknown node {dep}")
                if (node_id, dep) not in edge_pairs:
                    raise GraphInvariantError(f"{node_id} -> {dep} has no edge")
                expected_in[dep].add(node_id)
        if len(edge_pairs) != sum(len(n.dependencies) for n in self.nodes.values()):
            raise GraphInvariantError("edge list does not match dependency sets")
        for node_id, node in self.nodes.items():
            if node.dependents != expected_in[node_id]:
                raise GraphInvariantError(
                    f"dependents of {node_id} are {sorted(node.dependents)}, expected {sorted(expected_in[node_id])}"
                )


def _assign_ids(units: List[SourceUnit]) -> Dict[str, Tuple[SourceUnit, List[str]]]:
    """Node id per unit; colliding module paths become `<id>@<file_path>`.

    A src/main.rs sharing its crate with a src/lib.rs is the package's binary
    root and gets `<crate>::main` instead of colliding with the library root.
    """
    libraries = {u.module_path for u in units if crate_root_kind(u.file_path) == "lib"}
    by_path: Dict[str, List[SourceUnit]] = {}
    for unit in units:
        key = unit.module_path
        if key in libraries and crate_root_kind(unit.file_path) == BINARY_ROOT:
            key = f"{key}::{BINARY_ROOT}"
        by_path.setdefault(key, []).append(unit)
    assigned: Dict[str, Tuple[SourceUnit, List[str]]] = {}
    for module_path, group in by_path.items():
        if len(group) == 1:
            assigned[module_path] = (group[0], [])
            continue
        files = ", ".join(u.file_path for u in group)
        for unit in group:
            reason = f"module path {module_path} is shared by {files}"
            assigned[f"{module_path}@{unit.file_path}"] = (unit, [reason])
    return assigned


class _Resolver:
    """Longest-prefix lookup of reference paths against the node id index.

    A prefix match may not drop a segment that the matched node declares as a
    child module (`mod x;`): that module has no node (skipped, excluded or
    missing), so the reference stays unresolved instead of landing on the parent.
    """

    def __init__(self, index: Mapping[str, str], aliases: Mapping[str, str], declared: Mapping[str, Set[str]]):
        self.index = index
        self.aliases = aliases
        self.declared = declared

    def _longest(self, segments: Tuple[str, ...], min_len: int = 1) -> str | None:
        for n in range(len(segments), min_len - 1, -1):
            hit = self.index.get("::".join(segments[:n]))
            if hit is not None:
                if n < len(segments) and segments[n] in self.declared.get(hit, ()):
                    return None
                return hit
        return None

    def resolve(self, ref: Reference, source_parts: Tuple[str, ...]) -> str | None:
        segments = ref.segments
        if ref.anchored:
            return self._longest(segments)
        head = segments[0]
        if head in self.aliases:
            hit = self._longest((self.aliases[head], *segments[1:]))
            if hit is not None:
                return hit
        hit = self._longest(segments)
        if hit is not None:
            return hit
        # relative to the source module: `use child::Item` in crate::a
        return self._longest((*source_parts, *segments), min_len=len(source_parts) + 1)


def _unit_status(unit: SourceUnit, reasons: List[str]) -> NodeStatus:
    if unit.status.outcome is ParseOutcome.ERROR:
        return NodeStatus.error(unit.status.reason or "parse error")
    if reasons:
        return NodeStatus.warning(reasons)
    return NodeStatus.ok()


def build_module_graph(
    units: Iterable[SourceUnit],
    aliases: Mapping[str, str] | None = None,
    *,
    module_tree_edges: bool = False,
) -> ModuleGraph:
    """Aggregate source units into nodes and resolved edges.

    Skipped units never become nodes. Error units become nodes without
    references. Output order depends only on ids, not on input order.
    """
    aliases = dict(aliases or {})
    ordered = sorted(units, key=lambda u: (u.module_path, u.file_path))
    skipped = sum(1 for u in ordered if u.skipped)
    parsed = [u for u in ordered if not u.skipped]
    assigned = _assign_ids(parsed)

    # canonical path -> node id; colliding paths resolve to their first id
    index: Dict[str, str] = {}
    for node_id in sorted(assigned):
        index.setdefault(assigned[node_id][0].module_path, node_id)
    declared = {node_id: set(unit.declared_modules) for node_id, (unit, _) in assigned.items()}
    resolver = _Resolver(index, aliases, declared)

    nodes: Dict[str, GraphNode] = {}
    accumulators: Dict[Tuple[str, str], _EdgeAccumulator] = {}
    for node_id in sorted(assigned):
        unit, reasons = assigned[node_id]
        reasons = list(reasons)
        external: Set[str] = set()
        node = GraphNode(
            id=node_id,
            name=display_name(module_path_for(unit.file_path), unit.file_path),
            module_type=module_type_for(unit.file_path),
            unit=unit,
            status=NodeStatus.ok(),
        )
        source_parts = tuple(unit.module_path.split("::"))
        if unit.status.outcome is ParseOutcome.OK:
            for ref in unit.references:
                if ref.kind is ReferenceKind.MODULE and not module_tree_edges:
                    continue
                target = resolver.resolve(ref, source_parts)
                if target is None:
                    external.add(ref.path)
                    if ref.anchored:
                        reasons.append(f"unresolved reference {ref.path} (line {ref.line})")
                    continue
                if target == node_id:
                    continue
                node.dependencies.add(target)
                accumulators.setdefault((node_id, target), _EdgeAccumulator()).add(ref)
        node.external_dependencies = len(external)
        node.status = _unit_status(unit, reasons)
        nodes[node_id] = node

    for source, target in accumulators:
        nodes[target].dependents.add(source)
    edges = [
        DependencyEdge(source=s, target=t, strength=len(acc.paths), kind=acc.kind())
        for (s, t), acc in accumulators.items()
    ]
    graph = ModuleGraph(nodes, edges, skipped=skipped)
    graph.verify_symmetry()
    _LOG.debug("graph: %d nodes, %d edges, %d skipped", len(graph.nodes), len(graph.edges), skipped)
    return graph
