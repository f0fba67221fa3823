"""Tests for elementary cycle enumeration."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cratemap.analysis.cycles import (
    CycleReport,
    canonical_rotation,
    find_cycles,
    strongly_connected_components,
)


def complete_graph(n):
    names = [f"m{i}" for i in range(n)]
    return {a: [b for b in names if b != a] for a in names}


def test_two_node_cycle_reported_once():
    report = find_cycles({"a": ["b"], "b": ["a"]})
    assert report.cycles == (("a", "b"),)
    assert not report.truncated


def test_acyclic_graph_has_no_cycles():
    assert find_cycles({"a": ["b"], "b": ["c"], "c": []}).cycles == ()
    assert find_cycles({"a": [], "b": []}).cycles == ()
    assert find_cycles({}).cycles == ()


def test_self_loop_is_a_cycle_of_length_one():
    report = find_cycles({"a": ["a", "b"], "b": []})
    assert report.cycles == (("a",),)


def test_overlapping_cycles_sorted_by_length_then_ids():
    report = find_cycles({"a": ["b"], "b": ["c", "a"], "c": ["a"]})
    assert report.cycles == (("a", "b"), ("a", "b", "c"))


def test_cycles_start_at_smallest_id():
    report = find_cycles({"z": ["m"], "m": ["q"], "q": ["z"]})
    assert report.cycles == (("m", "q", "z"),)


def test_complete_graph_enumerates_every_elementary_cycle():
    # 6 two-cycles, 8 three-cycles, 6 four-cycles
    report = find_cycles(complete_graph(4))
    assert len(report.cycles) == 20
    assert len(set(report.cycles)) == 20
    assert not report.truncated


def test_limit_truncates_and_flags():
    report = find_cycles(complete_graph(4), max_cycles=5)
    assert len(report.cycles) == 5
    assert report.truncated


def test_exact_limit_is_not_truncated():
    report = find_cycles(complete_graph(4), max_cycles=20)
    assert len(report.cycles) == 20
    assert not report.truncated


def test_long_chain_does_not_recurse():
    n = 5000
    adjacency = {f"n{i:05d}": [f"n{(i + 1) % n:05d}"] for i in range(n)}
    report = find_cycles(adjacency)
    assert len(report.cycles) == 1
    assert len(report.cycles[0]) == n
    assert report.cycles[0][0] == "n00000"


def test_targets_missing_from_adjacency_are_nodes():
    assert find_cycles({"a": ["b"]}).cycles == ()


def test_canonical_rotation():
    assert canonical_rotation(["c", "a", "b"]) == ("a", "b", "c")
    assert canonical_rotation([]) == ()


def test_strongly_connected_components():
    graph = {"a": ("b",), "b": ("a",), "c": ("a",)}
    components = strongly_connected_components(graph, {"a", "b", "c"})
    assert sorted(components) == [["a", "b"], ["c"]]


def test_report_edges():
    report = CycleReport(cycles=(("a", "b"), ("a", "c", "d")))
    assert report.edges() == {("a", "b"), ("b", "a"), ("a", "c"), ("c", "d"), ("d", "a")}
