"""Tests for report/architecture_report.py rendering."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cratemap.analysis.parser import parse_source_unit
from cratemap.core.pipeline import build_map
from cratemap.models import ArchitectureMap, ModuleType
from report.architecture_report import module_type_label, render_architecture_report


def _map(sources, **kwargs):
    units = []
    for path, text in sources.items():
        data = text.encode("utf-8")
        units.append(parse_source_unit(path, data, len(data)))
    return build_map(units, **kwargs)


CYCLIC = {
    "src/a.rs": "use crate::b::B;\npub struct A;\npub fn f() { if true { } else { } }\n",
    "src/b.rs": "use crate::a::A;\npub struct B;\n",
    "src/bad.rs": "fn broken( {\n",
}


def test_text_report_lists_summary_cycles_and_errors():
    text = render_architecture_report(_map(CYCLIC, project_name="demo"))
    assert text.startswith("ARCHITECTURE MAP: demo")
    assert "Modules: 3 (core=3)" in text
    assert "Cycles (1):" in text
    assert "  crate::a -> crate::b -> crate::a" in text
    assert "Parse errors:" in text
    assert "src/bad.rs" in text
    assert "Most complex modules:" in text


def test_text_report_without_cycles():
    text = render_architecture_report(_map({"src/lib.rs": "pub fn a() {}\n"}))
    assert text.startswith("ARCHITECTURE MAP\n")
    assert "Cycles: none" in text
    assert "Parse errors:" not in text


def test_markdown_report():
    md = render_architecture_report(_map(CYCLIC), format="markdown")
    assert md.startswith("# Architecture Map")
    assert "## Summary" in md
    assert "- `crate::a -> crate::b -> crate::a`" in md
    assert "## Parse Errors" in md
    assert "| `crate::a` |" in md


def test_top_cycles_limit_and_truncation_note():
    sources = {"src/lib.rs": ""}
    for name, others in (("a", "bc"), ("b", "ac"), ("c", "ab")):
        sources[f"src/{name}.rs"] = "".join(f"use crate::{o}::X;\n" for o in others)
    amap = _map(sources)
    text = render_architecture_report(amap, top_cycles=2)
    assert "Cycles (5):" in text
    assert "... and 3 more" in text


def test_empty_map_report():
    text = render_architecture_report(ArchitectureMap.empty())
    assert "Modules: 0 (none)" in text
    assert "Cycles: none" in text


def test_module_type_labels_cover_every_type():
    labels = {module_type_label(t) for t in ModuleType}
    assert labels == {"core", "tests", "examples", "benches", "docs", "other"}
