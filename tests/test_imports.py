"""Tests for use-tree expansion and path normalization."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cratemap.analysis.imports import expand_use_tree, normalize_path, scan_inline_paths
from cratemap.analysis.lexer import tokenize


def _expand(tree):
    tokens = tokenize(tree)
    return ["::".join(p.segments) for p in expand_use_tree(tokens, 0, len(tokens))]


def test_expand_nested_groups_self_glob_and_alias():
    assert _expand("a::{b, c::{d, e as f}, self, g::*}") == [
        "a::b",
        "a::c::d",
        "a::c::e",
        "a",
        "a::g",
    ]


def test_expand_simple_and_aliased_paths():
    assert _expand("std::collections::HashMap") == ["std::collections::HashMap"]
    assert _expand("crate::engine::Engine as E") == ["crate::engine::Engine"]


def test_leading_colons_are_kept_as_marker():
    tokens = tokenize("::serde::Serialize")
    (path,) = expand_use_tree(tokens, 0, len(tokens))
    assert path.segments == ("::", "serde", "Serialize")
    assert normalize_path(path.segments, ("crate",), "crate") == (("serde", "Serialize"), False)


def test_normalize_crate_self_super():
    module = ("crate", "a", "b")
    assert normalize_path(("crate", "x", "Y"), module, "crate") == (("crate", "x", "Y"), True)
    assert normalize_path(("self", "x"), module, "crate") == (("crate", "a", "b", "x"), True)
    assert normalize_path(("super", "x"), module, "crate") == (("crate", "a", "x"), True)
    assert normalize_path(("super", "super", "x"), module, "crate") == (("crate", "x"), True)


def test_normalize_crate_uses_member_crate_root():
    assert normalize_path(("crate", "y"), ("core", "a"), "core") == (("core", "y"), True)


def test_super_is_clamped_at_crate_root():
    assert normalize_path(("super", "x"), ("crate",), "crate") == (("crate", "x"), True)


def test_external_paths_are_not_anchored():
    assert normalize_path(("tokio", "sync"), ("crate", "a"), "crate") == (("tokio", "sync"), False)
    assert normalize_path((), ("crate",), "crate") is None


def test_scan_inline_paths_finds_anchored_paths_only():
    tokens = tokenize("let v = crate::a::B::new(); self.x; Self::y(); super::z(); other::crate::w;")
    found = ["::".join(p.segments) for p in scan_inline_paths(tokens, 0, len(tokens))]
    assert found == ["crate::a::B::new", "super::z"]
