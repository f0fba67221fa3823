"""Elementary cycle enumeration (Johnson's algorithm).

Every elementary cycle is reported once, rotated to start at its smallest
node id. Search is iterative throughout, so deep dependency chains do not
hit the recursion limit.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from cratemap.config import DEFAULT_MAX_CYCLES
from cratemap.logging import get_logger

_LOG = get_logger("cycles")

Cycle = Tuple[str, ...]


@dataclass(frozen=True)
class CycleReport:
    cycles: Tuple[Cycle, ...]
    truncated: bool = False

    def edges(self) -> Set[Tuple[str, str]]:
        """(source, target) pairs lying on a reported cycle."""
        pairs: Set[Tuple[str, str]] = set()
        for cycle in self.cycles:
            for i, node in enumerate(cycle):
                pairs.add((node, cycle[(i + 1) % len(cycle)]))
        return pairs


class _CycleLimitReached(Exception):
    pass


def canonical_rotation(cycle: Iterable[str]) -> Cycle:
    items = list(cycle)
    if not items:
        return ()
    i = items.index(min(items))
    return tuple(items[i:] + items[:i])


def strongly_connected_components(graph: Mapping[str, Tuple[str, ...]], members: Set[str]) -> List[List[str]]:
    """Tarjan's SCC over the subgraph induced by members (iterative)."""
    index: Dict[str, int] = {}
    low: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    result: List[List[str]] = []
    counter = 0

    def visit(node: str) -> None:
        nonlocal counter
        index[node] = low[node] = counter
        counter += 1
        stack.append(node)
        on_stack.add(node)

    for root in sorted(members):
        if root in index:
            continue
        visit(root)
        work = [(root, iter(graph.get(root, ())))]
        while work:
            node, successors = work[-1]
            descended = False
            for w in successors:
                if w not in members:
                    continue
                if w not in index:
                    visit(w)
                    work.append((w, iter(graph.get(w, ()))))
                    descended = True
                    break
                if w in on_stack:
                    low[node] = min(low[node], index[w])
            if descended:
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] == index[node]:
                component = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == node:
                        break
                result.append(sorted(component))
    return result


class _JohnsonSearch:
    def __init__(self, graph: Mapping[str, Tuple[str, ...]], max_cycles: int):
        self.graph = graph
        self.max_cycles = max_cycles
        self.found: List[Cycle] = []
        self.seen: Set[Cycle] = set()

    def emit(self, path: List[str]) -> None:
        cycle = canonical_rotation(path)
        if cycle in self.seen:
            return
        if len(self.found) >= self.max_cycles:
            raise _CycleLimitReached
        self.seen.add(cycle)
        self.found.append(cycle)

    def circuits_from(self, start: str, members: Set[str]) -> None:
        """All elementary circuits through start inside members."""

        def successors(node: str) -> List[str]:
            return [w for w in self.graph.get(node, ()) if w in members and w != node]

        blocked: Set[str] = {start}
        block_map: Dict[str, Set[str]] = defaultdict(set)
        path = [start]
        closed = [False]
        stack = [(start, iter(successors(start)))]
        while stack:
            node, nbrs = stack[-1]
            nxt = next(nbrs, None)
            if nxt is not None:
                if nxt == start:
                    self.emit(path)
                    closed[-1] = True
                elif nxt not in blocked:
                    path.append(nxt)
                    closed.append(False)
                    blocked.add(nxt)
                    stack.append((nxt, iter(successors(nxt))))
                continue
            stack.pop()
            path.pop()
            node_closed = closed.pop()
            if node_closed:
                if closed:
                    closed[-1] = True
                self._unblock(node, blocked, block_map)
            else:
                for w in successors(node):
                    block_map[w].add(node)

    @staticmethod
    def _unblock(node: str, blocked: Set[str], block_map: Dict[str, Set[str]]) -> None:
        pending = [node]
        while pending:
            n = pending.pop()
            if n in blocked:
                blocked.discard(n)
                pending.extend(block_map.pop(n, ()))

    def run(self) -> None:
        nodes = set(self.graph)
        for node in sorted(nodes):
            if node in self.graph.get(node, ()):
                self.emit([node])
        components = [c for c in strongly_connected_components(self.graph, nodes) if len(c) > 1]
        while components:
            component = components.pop()
            members = set(component)
            start = component[0]  # sorted: smallest id
            self.circuits_from(start, members)
            members.discard(start)
            components.extend(c for c in strongly_connected_components(self.graph, members) if len(c) > 1)


def find_cycles(adjacency: Mapping[str, Iterable[str]], max_cycles: int = DEFAULT_MAX_CYCLES) -> CycleReport:
    """Enumerate elementary cycles, stopping (truncated=True) past max_cycles."""
    graph: Dict[str, Tuple[str, ...]] = {}
    for node, targets in adjacency.items():
        graph.setdefault(node, ())
        graph[node] = tuple(sorted(set(targets)))
        for t in graph[node]:
            graph.setdefault(t, ())
    search = _JohnsonSearch(graph, max(0, max_cycles))
    truncated = False
    try:
        search.run()
    except _CycleLimitReached:
        truncated = True
        _LOG.warning("cycle detection stopped after %d cycles (limit reached)", len(search.found))
    cycles = tuple(sorted(search.found, key=lambda c: (len(c), c)))
    return CycleReport(cycles=cycles, truncated=truncated)
