"""Tests for per-file parsing: entities, references, complexity, statuses."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cratemap.analysis.parser import parse_source_unit
from cratemap.models import ParseOutcome, ReferenceKind, Visibility

WIDGET = '''//! Widget module.
use crate::util::{self, helpers::Helper as H};
use super::sibling::*;
use std::collections::HashMap;

/// A widget.
#[derive(Debug, Clone)]
pub struct Widget {
    pub name: String,
    count: usize,
}

pub(crate) enum Mode { Fast, Slow(u8), Custom { level: u32 } }

pub trait Render: std::fmt::Debug + Send {
    fn render(&self) -> String;
    fn name(&self) -> &str { "widget" }
}

impl Widget {
    /// Create one.
    pub fn new(name: &str, count: usize) -> Self {
        if count > 0 && !name.is_empty() {
            Widget { name: name.to_string(), count }
        } else {
            Widget { name: String::new(), count: 0 }
        }
    }

    async fn tick(&mut self) {
        for _ in 0..3 { self.count += 1; }
        match self.count { 0 => {}, 1 => {}, _ => {} }
    }
}

fn helper() -> usize { crate::util::compute(1) }
'''


def _unit(text, path="src/widget.rs", **kwargs):
    data = text.encode("utf-8")
    return parse_source_unit(path, data, len(data), **kwargs)


def _function(unit, name):
    return next(f for f in unit.functions if f.name == name)


def test_parse_collects_entities():
    unit = _unit(WIDGET)
    assert unit.status.outcome is ParseOutcome.OK
    assert unit.module_path == "crate::widget"
    assert [f.name for f in unit.functions] == ["name", "new", "tick", "helper"]
    assert [s.name for s in unit.structs] == ["Widget"]
    assert [e.name for e in unit.enums] == ["Mode"]
    assert [t.name for t in unit.traits] == ["Render"]


def test_struct_enum_trait_details():
    unit = _unit(WIDGET)
    (widget,) = unit.structs
    assert widget.field_count == 2
    assert widget.visibility is Visibility.PUBLIC
    assert widget.derives == ("Debug", "Clone")
    assert widget.attribute_tags == ("derive",)
    assert widget.has_doc

    (mode,) = unit.enums
    assert mode.variant_count == 3
    assert mode.visibility is Visibility.CRATE
    assert not mode.has_doc

    (render,) = unit.traits
    # bodiless signatures count as trait methods too
    assert render.method_count == 2
    assert render.supertraits == ("Debug", "Send")


def test_methods_carry_owner_and_signature_details():
    unit = _unit(WIDGET)
    new = _function(unit, "new")
    assert new.owner == "Widget"
    assert new.parameter_count == 2
    assert new.visibility is Visibility.PUBLIC
    assert new.has_doc
    assert new.line_span == (22, 28)

    tick = _function(unit, "tick")
    assert tick.is_async
    assert tick.parameter_count == 1  # &mut self
    assert not tick.has_doc

    assert _function(unit, "name").owner == "Render"
    assert _function(unit, "helper").owner is None


def test_cyclomatic_and_cognitive_complexity():
    unit = _unit(WIDGET)
    new = _function(unit, "new")
    assert new.cyclomatic_complexity == 3  # if, &&
    assert new.cognitive_complexity == 3  # if, &&, else
    tick = _function(unit, "tick")
    assert tick.cyclomatic_complexity == 4  # for, match with 3 arms
    assert tick.cognitive_complexity == 2
    assert _function(unit, "helper").cyclomatic_complexity == 1


def test_closure_bars_and_double_references_are_not_decisions():
    text = (
        "fn a() { let f = || true; f(); }\n"
        "fn b(v: Vec<i32>) -> bool { v.iter().any(|x| *x > 0) || v.is_empty() }\n"
        "fn c(x: &str) { let y = &&x; }\n"
    )
    unit = _unit(text)
    assert [f.cyclomatic_complexity for f in unit.functions] == [1, 2, 1]


def test_nested_conditions_raise_cognitive_complexity():
    text = "fn f(a: bool, b: bool) {\n    if a {\n        while b {\n            if a { }\n        }\n    } else if b { }\n}\n"
    (f,) = _unit(text).functions
    assert f.cyclomatic_complexity == 5
    # if(1) + while(1+1) + if(1+2) + else if(1)
    assert f.cognitive_complexity == 7


def test_references_are_normalized():
    unit = _unit(WIDGET)
    refs = {(r.path, r.kind, r.anchored) for r in unit.references}
    assert refs == {
        ("crate::util", ReferenceKind.IMPORT, True),
        ("crate::util::helpers::Helper", ReferenceKind.IMPORT, True),
        ("crate::sibling", ReferenceKind.IMPORT, True),
        ("std::collections::HashMap", ReferenceKind.IMPORT, False),
        ("crate::util::compute", ReferenceKind.PATH, True),
    }


def test_inline_modules_and_declared_modules():
    text = "mod inner {\n    use super::Thing;\n    pub fn f() {}\n}\nmod decl;\npub mod other;\n"
    unit = _unit(text, path="src/lib.rs")
    assert unit.declared_modules == ("decl", "other")
    assert [f.name for f in unit.functions] == ["f"]
    refs = {(r.path, r.kind) for r in unit.references}
    assert ("crate::Thing", ReferenceKind.IMPORT) in refs
    assert ("crate::decl", ReferenceKind.MODULE) in refs
    assert ("crate::other", ReferenceKind.MODULE) in refs


def test_visibility_variants():
    text = "pub(super) fn a() {}\npub(in crate::x) fn b() {}\npub(crate) fn c() {}\nfn d() {}\n"
    unit = _unit(text, path="src/x/y.rs")
    assert [f.visibility for f in unit.functions] == [
        Visibility.RESTRICTED,
        Visibility.RESTRICTED,
        Visibility.CRATE,
        Visibility.PRIVATE,
    ]


def test_attributes_and_doc_attribute():
    text = '#[doc = "Documented."]\n#[inline]\npub fn a() {}\n#[tokio::main]\nasync fn main() {}\n'
    a, main = _unit(text, path="src/main.rs").functions
    assert a.has_doc
    assert a.attribute_tags == ("doc", "inline")
    assert main.attribute_tags == ("tokio::main",)
    assert main.is_async


def test_impl_trait_for_type_uses_the_type_as_owner():
    text = "impl<T: Clone> std::fmt::Display for Wrapper<T> {\n    fn fmt(&self, f: &mut Formatter) -> Result { Ok(()) }\n}\n"
    (fmt,) = _unit(text).functions
    assert fmt.owner == "Wrapper"
    assert fmt.parameter_count == 2


def test_macro_rules_and_extern_blocks_are_skipped():
    text = (
        "macro_rules! m { ($x:expr) => { fn hidden() {} }; }\n"
        'extern "C" { fn puts(s: *const u8) -> i32; }\n'
        "fn visible() {}\n"
    )
    unit = _unit(text)
    assert [f.name for f in unit.functions] == ["visible"]


def test_malformed_source_is_error_without_entities():
    unit = _unit("pub fn broken( {\n    let x = 1;\n}\n")
    assert unit.status.outcome is ParseOutcome.ERROR
    assert unit.status.reason.startswith("line ")
    assert unit.functions == ()
    assert unit.references == ()
    assert unit.line_count == 3


def test_invalid_utf8_is_error():
    unit = parse_source_unit("src/a.rs", b"fn a() {}\xff\xfe", 11)
    assert unit.status.outcome is ParseOutcome.ERROR
    assert "UTF-8" in unit.status.reason


def test_oversize_and_unreadable_files_are_skipped():
    big = parse_source_unit("src/a.rs", None, 100, max_size=10)
    assert big.skipped
    assert "exceeds limit" in big.status.reason
    unreadable = parse_source_unit("src/b.rs", None, 5)
    assert unreadable.skipped


def test_bom_is_ignored():
    unit = _unit("\ufefffn a() {}\n")
    assert unit.status.outcome is ParseOutcome.OK
    assert [f.name for f in unit.functions] == ["a"]


def test_line_counts():
    unit = _unit("// comment\n\nfn a() {\n    b();\n}\n")
    assert unit.line_count == 5
    assert unit.lines_of_code == 3


def test_deeply_nested_inline_modules_parse():
    depth = 1200
    text = "mod m { " * depth + "pub fn f() {}" + " }" * depth
    unit = _unit(text)
    assert unit.status.outcome is ParseOutcome.OK
    assert [f.name for f in unit.functions] == ["f"]


def test_inline_modules_keep_source_order():
    text = "fn a() {}\nmod m {\n    fn b() {}\n    mod n { fn c() {} }\n    fn d() {}\n}\nfn e() {}\n"
    unit = _unit(text)
    assert [f.name for f in unit.functions] == ["a", "b", "c", "d", "e"]


def test_unexpected_parser_failure_stays_on_the_unit(monkeypatch):
    from cratemap.analysis import parser

    def explode(file_path, text):
        raise RecursionError("maximum recursion depth exceeded")

    monkeypatch.setattr(parser, "parse_text", explode)
    unit = _unit("fn a() {}\n")
    assert unit.status.outcome is ParseOutcome.ERROR
    assert "RecursionError" in unit.status.reason
    assert unit.functions == ()
    assert unit.lines_of_code == 1
