"""End-to-end scan tests on small Rust trees written to tmp_path."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import dataclasses

import pytest

from cratemap.api.architecture import snapshot_to_dict
from cratemap.config import ProjectConfig
from cratemap.core.pipeline import build_map, run_full_analysis
from cratemap.errors import ScanFailure
from cratemap.models import StatusKind

DEMO = {
    "Cargo.toml": '[package]\nname = "demo"\nversion = "0.1.0"\n',
    "src/lib.rs": "pub mod a;\npub mod b;\npub mod c;\nmod broken;\n",
    "src/a.rs": "use crate::b::B;\npub fn fa() -> u8 { if true { 1 } else { 2 } }\n",
    "src/b.rs": "use crate::a::fa;\npub struct B;\npub fn fb() -> u8 { fa() }\n",
    "src/c.rs": "/// Constant helper.\npub fn c() -> u8 { 3 }\n",
    "src/broken.rs": "pub fn broken( {\n",
}


def test_scan_builds_nodes_statuses_and_cycles(make_project):
    root = make_project(DEMO)
    amap = run_full_analysis(root, ProjectConfig())
    assert amap.total_modules == 5
    assert sorted(amap.nodes) == ["crate", "crate::a", "crate::b", "crate::broken", "crate::c"]
    assert len(amap.nodes_with_status(StatusKind.ERROR)) == 1
    assert len(amap.nodes_with_status(StatusKind.OK)) == 4
    assert amap.nodes["crate::broken"].status.kind is StatusKind.ERROR
    assert amap.cycles == (("crate::a", "crate::b"),)
    assert all(e.is_circular for e in amap.edges)
    assert amap.nodes["crate"].declared_modules == ("a", "b", "c", "broken")


def test_project_name_comes_from_cargo_toml(make_project):
    root = make_project(DEMO)
    assert run_full_analysis(root).project_name == "demo"


def test_rescan_of_unchanged_tree_is_identical(make_project):
    root = make_project(DEMO)
    first = snapshot_to_dict(run_full_analysis(root, ProjectConfig()))
    second = snapshot_to_dict(run_full_analysis(root, ProjectConfig()))
    first.pop("scan_timestamp")
    second.pop("scan_timestamp")
    assert first == second


def test_oversize_file_is_skipped_not_noded(make_project):
    root = make_project({"src/big.rs": "fn a() {}\n" * 20})
    config = ProjectConfig()
    config.scanning.max_file_size = 50
    amap = run_full_analysis(root, config)
    assert amap.total_modules == 0
    assert amap.skipped_files == 1
    assert amap.nodes_with_status(StatusKind.ERROR) == []


def test_excluded_and_disabled_paths_are_not_scanned(make_project):
    root = make_project({
        "src/lib.rs": "",
        "target/debug/build/gen.rs": "fn gen() {}\n",
        ".git/hooks/x.rs": "",
        "examples/demo.rs": "fn main() {}\n",
        "tests/it.rs": "#[test]\nfn it() {}\n",
        "README.md": "# demo\n",
    })
    amap = run_full_analysis(root, ProjectConfig())
    assert sorted(amap.nodes) == ["crate", "crate::tests::it"]

    config = ProjectConfig()
    config.scanning.include_examples = True
    config.scanning.include_tests = False
    amap = run_full_analysis(root, config)
    assert sorted(amap.nodes) == ["crate", "crate::examples::demo"]


def test_workspace_member_aliases_from_manifests(make_project):
    root = make_project({
        "Cargo.toml": '[workspace]\nmembers = ["crates/*"]\n',
        "crates/app/Cargo.toml": '[package]\nname = "app"\n',
        "crates/app/src/main.rs": "use engine_core::run;\nfn main() { run(); }\n",
        "crates/engine-core/Cargo.toml": '[package]\nname = "engine-core"\n',
        "crates/engine-core/src/lib.rs": "pub fn run() {}\n",
    })
    amap = run_full_analysis(root, ProjectConfig())
    assert amap.nodes["app"].dependencies == frozenset({"engine_core"})


def test_module_tree_edges_setting(make_project):
    root = make_project({"src/lib.rs": "mod a;\n", "src/a.rs": ""})
    config = ProjectConfig()
    assert run_full_analysis(root, config).edges == ()
    config.scanning.module_tree_edges = True
    (e,) = run_full_analysis(root, config).edges
    assert (e.source, e.target) == ("crate", "crate::a")


def test_max_cycles_setting_truncates(make_project):
    files = {"src/lib.rs": ""}
    names = ["a", "b", "c"]
    for name in names:
        uses = "".join(f"use crate::{other}::X;\n" for other in names if other != name)
        files[f"src/{name}.rs"] = uses + "pub struct X;\n"
    root = make_project(files)
    config = ProjectConfig()
    config.scanning.max_cycles = 2
    amap = run_full_analysis(root, config)
    assert len(amap.cycles) == 2
    assert amap.cycles_truncated


def test_missing_root_raises_scan_failure(tmp_path):
    with pytest.raises(ScanFailure):
        run_full_analysis(tmp_path / "nope", ProjectConfig())


def test_file_as_root_raises_scan_failure(tmp_path):
    target = tmp_path / "lib.rs"
    target.write_text("", encoding="utf-8")
    with pytest.raises(ScanFailure, match="not a directory"):
        run_full_analysis(target, ProjectConfig())


def test_map_is_read_only(make_project):
    amap = run_full_analysis(make_project({"src/lib.rs": ""}), ProjectConfig())
    with pytest.raises(TypeError):
        amap.nodes["x"] = None
    with pytest.raises(dataclasses.FrozenInstanceError):
        amap.total_modules = 3


def test_build_map_of_no_units_is_empty():
    amap = build_map([])
    assert amap.total_modules == 0
    assert amap.edges == ()
    assert amap.cycles == ()
    assert amap.metrics.modularity_score == 1.0


def test_edge_lookups_by_endpoint(make_project):
    amap = run_full_analysis(make_project(DEMO), ProjectConfig())
    assert [(e.source, e.target) for e in amap.edges_from("crate::a")] == [("crate::a", "crate::b")]
    assert [(e.source, e.target) for e in amap.edges_to("crate::a")] == [("crate::b", "crate::a")]
    assert amap.edges_from("crate::c") == []
    assert amap.edges_to("crate::nope") == []


def test_bin_and_lib_package_keeps_both_roots_ok(make_project):
    root = make_project(
        {
            "Cargo.toml": '[package]\nname = "tool"\nversion = "0.1.0"\n',
            "src/lib.rs": "pub mod scanner;\n",
            "src/main.rs": "use tool::scanner::scan;\nfn main() { scan(); }\n",
            "src/scanner.rs": "pub fn scan() {}\n",
        }
    )
    amap = run_full_analysis(root, ProjectConfig())
    assert sorted(amap.nodes) == ["crate", "crate::main", "crate::scanner"]
    assert len(amap.nodes_with_status(StatusKind.OK)) == 3
    assert [(e.source, e.target) for e in amap.edges] == [("crate::main", "crate::scanner")]


def test_reference_into_oversize_module_is_not_an_edge_to_the_root(make_project):
    root = make_project(
        {
            "src/lib.rs": "pub mod big;\npub mod user;\n",
            "src/big.rs": "pub fn a() {}\n" * 20,
            "src/user.rs": "use crate::big::a;\n",
        }
    )
    config = ProjectConfig()
    config.scanning.max_file_size = 100
    amap = run_full_analysis(root, config)
    assert amap.skipped_files == 1
    assert amap.edges == ()
    user = amap.nodes["crate::user"]
    assert user.status.kind is StatusKind.WARNING
    assert user.external_dependencies == 1
