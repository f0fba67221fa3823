"""Per-file parsing: source text -> SourceUnit.

Works on the token stream from `lexer.tokenize` plus the delimiter match
table, so item bodies are delimited exactly even though no grammar is
applied. Items inside inline `mod name { ... }` blocks belong to the file;
their relative paths resolve against the inline module.
"""

from __future__ import annotations

from datetime import datetime

from cratemap.analysis.imports import (
    expand_use_tree,
    extern_crate_name,
    normalize_path,
    scan_inline_paths,
)
from cratemap.analysis.layout import ROOT_CRATE, module_path_for
from cratemap.analysis.lexer import (
    KEYWORDS,
    Token,
    TokenKind,
    count_code_lines,
    match_delimiters,
    tokenize,
)
from cratemap.errors import SourceParseError
from cratemap.models import (
    EnumInfo,
    FunctionInfo,
    ParseStatus,
    Reference,
    ReferenceKind,
    SourceUnit,
    StructInfo,
    TraitInfo,
    Visibility,
)

DECISION_KEYWORDS = frozenset({"if", "while", "for", "loop"})
NESTING_KEYWORDS = frozenset({"if", "while", "for", "loop", "match"})
# keywords that can end an operand, so a following && / || is binary
OPERAND_KEYWORDS = frozenset({"self", "Self", "true", "false", "crate", "super"})
FN_QUALIFIERS = frozenset({"async", "unsafe", "default", "const", "extern"})


def _count_lines(text: str) -> int:
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


class _ItemParser:
    """Walks items of one file and collects entities and references."""

    def __init__(self, tokens: list[Token], pairs: dict[int, int], module_parts: tuple[str, ...], crate_root: str):
        self.tokens = tokens
        self.pairs = pairs
        self.module_parts = module_parts
        self.crate_root = crate_root
        self.functions: list[FunctionInfo] = []
        self.structs: list[StructInfo] = []
        self.enums: list[EnumInfo] = []
        self.traits: list[TraitInfo] = []
        self.references: list[Reference] = []
        self.declared_modules: list[str] = []
        self._seen_refs: set[tuple[str, ReferenceKind]] = set()
        # set by _mod when an inline module body should be walked next
        self._entered: tuple[int, int, tuple[str, ...]] | None = None

    # -- references -------------------------------------------------------

    def _add_reference(self, segments: tuple[str, ...], kind: ReferenceKind, line: int, scope: tuple[str, ...]) -> None:
        normalized = normalize_path(segments, scope, self.crate_root)
        if normalized is None:
            return
        path_segments, anchored = normalized
        path = "::".join(path_segments)
        key = (path, kind)
        if key in self._seen_refs:
            return
        self._seen_refs.add(key)
        self.references.append(Reference(path=path, kind=kind, line=line, anchored=anchored))

    def _scan_paths(self, start: int, end: int, scope: tuple[str, ...]) -> None:
        for found in scan_inline_paths(self.tokens, start, end):
            self._add_reference(found.segments, ReferenceKind.PATH, found.line, scope)

    # -- token helpers ----------------------------------------------------

    def _skip_group(self, i: int) -> int:
        """Index after the group opened at i, or i + 1 for a non-opener."""
        close = self.pairs.get(i)
        if close is not None and close > i:
            return close + 1
        return i + 1

    def _skip_generics(self, i: int, end: int) -> int:
        """Skip a `<...>` list starting at i (if any)."""
        if i >= end or not self.tokens[i].is_punct("<"):
            return i
        depth = 0
        while i < end:
            tok = self.tokens[i]
            if tok.kind is TokenKind.PUNCT:
                if tok.text == "<":
                    depth += 1
                elif tok.text == ">":
                    depth -= 1
                elif tok.text == ">>":
                    depth -= 2
                elif tok.text in ("(", "[", "{"):
                    i = self._skip_group(i)
                    continue
            i += 1
            if depth <= 0:
                return i
        return i

    def _find_body_or_semicolon(self, i: int, end: int) -> tuple[int, int | None]:
        """From i, find the item's `{` body or terminating `;`.

        Returns (index after the item, index of `{` or None).
        """
        while i < end:
            tok = self.tokens[i]
            if tok.is_punct(";"):
                return i + 1, None
            if tok.is_punct("{"):
                return self.pairs[i] + 1, i
            if tok.is_punct("(") or tok.is_punct("["):
                i = self._skip_group(i)
                continue
            i += 1
        return end, None

    def _skip_to_semicolon(self, i: int, end: int) -> int:
        while i < end:
            tok = self.tokens[i]
            if tok.is_punct(";"):
                return i + 1
            if tok.kind is TokenKind.PUNCT and tok.text in ("(", "[", "{"):
                i = self._skip_group(i)
                continue
            i += 1
        return end

    def _top_level_count(self, open_idx: int, sep: str = ",") -> int:
        """Number of separated elements directly inside the group at open_idx."""
        close = self.pairs[open_idx]
        i = open_idx + 1
        count = 0
        pending = False
        while i < close:
            tok = self.tokens[i]
            if tok.is_punct(sep):
                if pending:
                    count += 1
                pending = False
                i += 1
                continue
            if tok.kind is TokenKind.DOC:
                i += 1
                continue
            if tok.is_punct("#") and i + 1 < close and self.tokens[i + 1].is_punct("["):
                i = self._skip_group(i + 1)
                continue
            pending = True
            if tok.is_punct("<"):
                i = self._skip_generics(i, close)
                continue
            if tok.kind is TokenKind.PUNCT and tok.text in ("(", "[", "{"):
                i = self._skip_group(i)
                continue
            i += 1
        return count + (1 if pending else 0)

    def _visibility(self, i: int) -> tuple[Visibility, int]:
        """Parse `pub`, `pub(crate)`, `pub(super)`, `pub(in path)` at i."""
        nxt = i + 1
        if nxt < len(self.tokens) and self.tokens[nxt].is_punct("("):
            close = self.pairs[nxt]
            inner = self.tokens[nxt + 1:close]
            if len(inner) == 1 and inner[0].is_ident("crate"):
                return Visibility.CRATE, close + 1
            if inner and (inner[0].is_ident("super") or inner[0].is_ident("self") or inner[0].is_ident("in")):
                return Visibility.RESTRICTED, close + 1
            # `pub (A, B)` in a tuple struct field list is not a restriction
        return Visibility.PUBLIC, nxt

    # -- attributes -------------------------------------------------------

    def _attribute(self, open_idx: int) -> tuple[str, tuple[str, ...], bool]:
        """Return (tag, derives, is_doc) for the `[...]` at open_idx."""
        close = self.pairs[open_idx]
        inner = self.tokens[open_idx + 1:close]
        if not inner:
            return "", (), False
        name_parts = []
        k = 0
        while k < len(inner) and inner[k].kind is TokenKind.IDENT:
            name_parts.append(inner[k].text)
            if k + 1 < len(inner) and inner[k + 1].is_punct("::"):
                k += 2
                continue
            k += 1
            break
        tag = "::".join(name_parts)
        derives: tuple[str, ...] = ()
        if tag == "derive":
            derives = tuple(
                inner[m].text
                for m in range(k, len(inner))
                if inner[m].kind is TokenKind.IDENT
                and (m + 1 >= len(inner) or not inner[m + 1].is_punct("::"))
            )
        is_doc = tag == "doc" and k < len(inner) and inner[k].is_punct("=")
        return tag, derives, is_doc

    # -- items ------------------------------------------------------------

    def walk(self, start: int, end: int, scope: tuple[str, ...]) -> None:
        """Collect items in [start, end). Inline ``mod name { ... }`` blocks are
        entered in place; the enclosing blocks wait on an explicit stack."""
        tokens = self.tokens
        suspended: list[tuple[int, int, tuple[str, ...]]] = []
        i = start
        tags: list[str] = []
        derives: list[str] = []
        has_doc = False
        while True:
            if i >= end:
                if not suspended:
                    return
                i, end, scope = suspended.pop()
                continue
            tok = tokens[i]
            if tok.kind is TokenKind.DOC:
                has_doc = True
                i += 1
                continue
            if tok.kind is TokenKind.INNER_DOC or tok.is_punct(";"):
                i += 1
                continue
            if tok.is_punct("#"):
                j = i + 1
                inner_attr = j < end and tokens[j].is_punct("!")
                if inner_attr:
                    j += 1
                if j < end and tokens[j].is_punct("["):
                    if not inner_attr:
                        tag, found, is_doc = self._attribute(j)
                        if tag:
                            tags.append(tag)
                        derives.extend(found)
                        has_doc = has_doc or is_doc
                    i = self._skip_group(j)
                    continue
                i += 1
                continue
            i = self._item(i, end, scope, tuple(tags), tuple(derives), has_doc)
            tags, derives, has_doc = [], [], False
            if self._entered is not None:
                suspended.append((i, end, scope))
                i, end, scope = self._entered
                self._entered = None

    def _item(self, i: int, end: int, scope, tags, derives, has_doc) -> int:
        tokens = self.tokens
        item_start = i
        visibility = Visibility.PRIVATE
        if tokens[i].is_ident("pub"):
            visibility, i = self._visibility(i)
        j, is_async = self._qualifiers(i, end)
        if j >= end:
            return end
        kw = tokens[j]
        if kw.is_ident("fn"):
            nxt, _ = self._function(item_start, j, end, scope, visibility, has_doc, tags, is_async, owner=None)
            return nxt
        if kw.is_ident("struct") or kw.is_ident("union"):
            return self._struct(item_start, j, end, scope, visibility, tags, derives, has_doc)
        if kw.is_ident("enum"):
            return self._enum(item_start, j, end, scope, visibility, derives, has_doc)
        if kw.is_ident("trait") or (kw.is_ident("auto") and j + 1 < end and tokens[j + 1].is_ident("trait")):
            if kw.is_ident("auto"):
                j += 1
            return self._trait(item_start, j, end, scope, visibility, has_doc)
        if kw.is_ident("impl"):
            return self._impl(item_start, j, end, scope)
        if kw.is_ident("mod"):
            return self._mod(j, end, scope)
        if kw.is_ident("use"):
            stop = self._skip_to_semicolon(j + 1, end)
            body_end = stop - 1 if stop - 1 < end and tokens[stop - 1].is_punct(";") else stop
            for use in expand_use_tree(tokens, j + 1, body_end):
                self._add_reference(use.segments, ReferenceKind.IMPORT, use.line, scope)
            return stop
        if kw.is_ident("extern") and j + 1 < end and tokens[j + 1].is_ident("crate"):
            stop = self._skip_to_semicolon(j + 2, end)
            name = extern_crate_name(tokens, j + 2, stop)
            if name:
                self._add_reference((name,), ReferenceKind.IMPORT, kw.line, scope)
            return stop
        if kw.is_ident("extern"):
            k = j + 1
            if k < end and tokens[k].kind is TokenKind.LITERAL:
                k += 1
            if k < end and tokens[k].is_punct("{"):
                return self._skip_group(k)
            return k
        if kw.is_ident("macro_rules") and j + 1 < end and tokens[j + 1].is_punct("!"):
            k = j + 2
            if k < end and tokens[k].kind is TokenKind.IDENT:
                k += 1
            if k < end and tokens[k].kind is TokenKind.PUNCT and tokens[k].text in ("(", "[", "{"):
                k = self._skip_group(k)
            return k
        if kw.is_ident("const") or kw.is_ident("static") or kw.is_ident("type"):
            stop = self._skip_to_semicolon(j + 1, end)
            self._scan_paths(j, stop, scope)
            return stop
        # macro invocation or anything else: skip one token tree
        if kw.kind is TokenKind.PUNCT and kw.text in ("(", "[", "{"):
            self._scan_paths(j, self._skip_group(j), scope)
            return self._skip_group(j)
        if kw.kind is TokenKind.IDENT and j + 1 < end and tokens[j + 1].is_punct("!"):
            stop = j + 2
            if stop < end and tokens[stop].kind is TokenKind.PUNCT and tokens[stop].text in ("(", "[", "{"):
                stop = self._skip_group(stop)
            self._scan_paths(j, stop, scope)
            return stop
        return j + 1

    def _precedes_fn(self, j: int, end: int) -> bool:
        """`const`/`extern` at j is a qualifier of a following `fn`."""
        k = j + 1
        while k < end:
            t = self.tokens[k]
            if t.is_ident("fn"):
                return True
            if t.kind is TokenKind.LITERAL or (t.kind is TokenKind.IDENT and t.text in FN_QUALIFIERS):
                k += 1
                continue
            return False
        return False

    def _qualifiers(self, i: int, end: int) -> tuple[int, bool]:
        """Skip `async`, `unsafe`, `default`, `const fn`, `extern "C" fn`.

        Returns (index of the item keyword, is_async).
        """
        tokens = self.tokens
        is_async = False
        while i < end:
            t = tokens[i]
            if t.kind is TokenKind.IDENT and t.text in ("async", "unsafe", "default"):
                is_async = is_async or t.text == "async"
            elif t.kind is TokenKind.IDENT and t.text in ("const", "extern") and self._precedes_fn(i, end):
                pass
            elif t.kind is TokenKind.LITERAL and i > 0 and tokens[i - 1].is_ident("extern"):
                pass  # ABI string
            else:
                break
            i += 1
        return i, is_async

    def _path_tail(self, k: int, stop: int) -> str | None:
        """Last identifier of the type path starting at k (`a::b::Foo<T>` -> Foo)."""
        tokens = self.tokens
        while k < stop and (tokens[k].kind is TokenKind.PUNCT and tokens[k].text in ("&", "!", "::")
                            or tokens[k].kind is TokenKind.LIFETIME or tokens[k].is_ident("dyn")
                            or tokens[k].is_ident("mut")):
            k += 1
        tail = None
        while k < stop:
            tok = tokens[k]
            if tok.kind is TokenKind.IDENT:
                tail = tok.text
            elif not tok.is_punct("::"):
                break
            k += 1
        return tail

    def _function(self, item_start, fn_idx, end, scope, visibility, has_doc, tags, is_async, owner) -> tuple[int, bool]:
        """Parse `fn name<..>(..) -> T where .. { body }` or a bodiless signature.

        Returns (index after the item, whether it had a body).
        """
        tokens = self.tokens
        name_idx = fn_idx + 1
        if name_idx >= end or tokens[name_idx].kind is not TokenKind.IDENT:
            return fn_idx + 1, False
        name = tokens[name_idx].text
        k = self._skip_generics(name_idx + 1, end)
        params = 0
        if k < end and tokens[k].is_punct("("):
            params = self._top_level_count(k)
            k = self._skip_group(k)
        stop, body = self._find_body_or_semicolon(k, end)
        self._scan_paths(fn_idx, stop, scope)
        if body is None:
            return stop, False
        close = self.pairs[body]
        cyclomatic, cognitive = self._complexity(body + 1, close)
        self.functions.append(
            FunctionInfo(
                name=name,
                line_span=(tokens[item_start].line, tokens[close].line),
                parameter_count=params,
                cyclomatic_complexity=cyclomatic,
                visibility=visibility,
                has_doc=has_doc,
                owner=owner,
                cognitive_complexity=cognitive,
                is_async=is_async,
                attribute_tags=tags,
            )
        )
        return stop, True

    def _struct(self, item_start, kw_idx, end, scope, visibility, tags, derives, has_doc) -> int:
        tokens = self.tokens
        name = tokens[kw_idx + 1].text if kw_idx + 1 < end else ""
        k = self._skip_generics(kw_idx + 2, end)
        fields = 0
        stop = end
        while k < end:
            tok = tokens[k]
            if tok.is_punct(";"):
                stop = k + 1
                break
            if tok.is_punct("{"):
                fields = self._top_level_count(k)
                stop = self._skip_group(k)
                break
            if tok.is_punct("("):
                fields = self._top_level_count(k)
                stop = self._skip_to_semicolon(self._skip_group(k), end)
                break
            k += 1
        self._scan_paths(kw_idx, stop, scope)
        self.structs.append(
            StructInfo(
                name=name,
                field_count=fields,
                visibility=visibility,
                attribute_tags=tags,
                derives=derives,
                has_doc=has_doc,
            )
        )
        return stop

    def _enum(self, item_start, kw_idx, end, scope, visibility, derives, has_doc) -> int:
        tokens = self.tokens
        name = tokens[kw_idx + 1].text if kw_idx + 1 < end else ""
        k = kw_idx + 2
        while k < end and not tokens[k].is_punct("{"):
            k = self._skip_generics(k, end) if tokens[k].is_punct("<") else k + 1
        if k >= end:
            return end
        variants = self._top_level_count(k)
        stop = self._skip_group(k)
        self._scan_paths(kw_idx, stop, scope)
        self.enums.append(
            EnumInfo(name=name, variant_count=variants, visibility=visibility, derives=derives, has_doc=has_doc)
        )
        return stop

    def _trait(self, item_start, kw_idx, end, scope, visibility, has_doc) -> int:
        tokens = self.tokens
        name = tokens[kw_idx + 1].text if kw_idx + 1 < end else ""
        k = self._skip_generics(kw_idx + 2, end)
        supertraits: list[str] = []
        if k < end and tokens[k].is_punct(":"):
            k += 1
            expect_name = True
            while k < end and not tokens[k].is_punct("{") and not tokens[k].is_ident("where"):
                tok = tokens[k]
                if tok.is_punct("<"):
                    k = self._skip_generics(k, end)
                    continue
                if tok.is_punct("+"):
                    expect_name = True
                elif tok.is_punct("?"):
                    expect_name = False  # ?Sized relaxes a bound
                elif tok.kind is TokenKind.IDENT and expect_name:
                    # last segment of a path like std::fmt::Debug
                    if not (k + 1 < end and tokens[k + 1].is_punct("::")):
                        supertraits.append(tok.text)
                        expect_name = False
                k += 1
        while k < end and not tokens[k].is_punct("{"):
            k += 1
        if k >= end:
            return end
        close = self.pairs[k]
        methods = self._associated_items(k + 1, close, scope, owner=name)
        self.traits.append(
            TraitInfo(
                name=name,
                method_count=methods,
                visibility=visibility,
                supertraits=tuple(supertraits),
                has_doc=has_doc,
            )
        )
        self._scan_paths(kw_idx, k, scope)
        return close + 1

    def _impl(self, item_start, kw_idx, end, scope) -> int:
        tokens = self.tokens
        header = self._skip_generics(kw_idx + 1, end)
        body = header
        while body < end and not tokens[body].is_punct("{"):
            body = self._skip_group(body) if tokens[body].is_punct("(") or tokens[body].is_punct("[") else body + 1
        if body >= end:
            return end
        # `impl Trait for Type` is owned by Type, `impl Type` by Type
        for_idx = next((m for m in range(header, body) if tokens[m].is_ident("for")), None)
        owner = self._path_tail(header if for_idx is None else for_idx + 1, body)
        self._scan_paths(kw_idx, body, scope)
        close = self.pairs[body]
        self._associated_items(body + 1, close, scope, owner=owner)
        return close + 1

    def _associated_items(self, start: int, end: int, scope, owner: str | None) -> int:
        """Walk an impl or trait body. Returns the number of fn items (with or without body)."""
        tokens = self.tokens
        i = start
        methods = 0
        tags: list[str] = []
        has_doc = False
        while i < end:
            tok = tokens[i]
            if tok.kind is TokenKind.DOC:
                has_doc = True
                i += 1
                continue
            if tok.is_punct("#") and i + 1 < end and tokens[i + 1].is_punct("["):
                tag, _, is_doc = self._attribute(i + 1)
                if tag:
                    tags.append(tag)
                has_doc = has_doc or is_doc
                i = self._skip_group(i + 1)
                continue
            visibility = Visibility.PRIVATE
            item_start = i
            if tok.is_ident("pub"):
                visibility, i = self._visibility(i)
            i, is_async = self._qualifiers(i, end)
            if i >= end:
                break
            tok = tokens[i]
            if tok.is_ident("fn"):
                methods += 1
                i, _ = self._function(item_start, i, end, scope, visibility, has_doc, tuple(tags), is_async, owner)
            elif tok.kind is TokenKind.PUNCT and tok.text in ("(", "[", "{"):
                i = self._skip_group(i)
            elif tok.kind is TokenKind.IDENT and i + 1 < end and tokens[i + 1].is_punct("!"):
                # macro invocation inside the body
                stop = i + 2
                if stop < end and tokens[stop].kind is TokenKind.PUNCT and tokens[stop].text in ("(", "[", "{"):
                    stop = self._skip_group(stop)
                self._scan_paths(i, stop, scope)
                i = stop
            else:
                stop = self._skip_to_semicolon(i, end)
                self._scan_paths(i, stop, scope)
                i = stop
            tags, has_doc = [], False
        return methods

    def _mod(self, kw_idx: int, end: int, scope: tuple[str, ...]) -> int:
        tokens = self.tokens
        if kw_idx + 1 >= end or tokens[kw_idx + 1].kind is not TokenKind.IDENT:
            return kw_idx + 1
        name = tokens[kw_idx + 1].text
        k = kw_idx + 2
        if k < end and tokens[k].is_punct("{"):
            close = self.pairs[k]
            self._entered = (k + 1, close, (*scope, name))
            return close + 1
        if scope == self.module_parts:
            self.declared_modules.append(name)
            self._add_reference(("self", name), ReferenceKind.MODULE, tokens[kw_idx].line, scope)
        return self._skip_to_semicolon(k, end)

    # -- complexity -------------------------------------------------------

    def _is_operand_end(self, idx: int, start: int) -> bool:
        if idx < start:
            return False
        tok = self.tokens[idx]
        if tok.kind is TokenKind.LITERAL:
            return True
        if tok.kind is TokenKind.IDENT:
            return tok.text not in KEYWORDS or tok.text in OPERAND_KEYWORDS
        return tok.kind is TokenKind.PUNCT and tok.text in (")", "]", "?")

    def _block_after(self, i: int, end: int) -> int | None:
        """Index of the `{` opening the block controlled by the keyword at i."""
        k = i + 1
        while k < end:
            tok = self.tokens[k]
            if tok.is_punct("{"):
                return k
            if tok.is_punct(";"):
                return None
            if tok.kind is TokenKind.PUNCT and tok.text in ("(", "["):
                k = self._skip_group(k)
                continue
            k += 1
        return None

    def _match_arms(self, open_idx: int) -> int:
        close = self.pairs[open_idx]
        arms = 0
        k = open_idx + 1
        while k < close:
            tok = self.tokens[k]
            if tok.is_punct("=>"):
                arms += 1
            if tok.kind is TokenKind.PUNCT and tok.text in ("(", "[", "{"):
                k = self._skip_group(k)
                continue
            k += 1
        return arms

    def _complexity(self, start: int, end: int) -> tuple[int, int]:
        """(cyclomatic, cognitive) complexity of the body tokens[start:end]."""
        tokens = self.tokens
        cyclomatic = 1
        cognitive = 0
        nesting_closes: list[int] = []
        last_bool_op: str | None = None
        for k in range(start, end):
            while nesting_closes and k > nesting_closes[-1]:
                nesting_closes.pop()
            tok = tokens[k]
            if tok.kind is TokenKind.IDENT:
                text = tok.text
                if text == "for" and k + 1 < end and tokens[k + 1].is_punct("<"):
                    continue  # higher-ranked bound, for<'a>
                if text in DECISION_KEYWORDS:
                    cyclomatic += 1
                if text in NESTING_KEYWORDS:
                    if text == "if" and k > start and tokens[k - 1].is_ident("else"):
                        cognitive += 1
                    else:
                        cognitive += 1 + len(nesting_closes)
                    block = self._block_after(k, end)
                    if block is not None:
                        if text == "match":
                            cyclomatic += max(self._match_arms(block) - 1, 0)
                        nesting_closes.append(self.pairs[block])
                elif text == "else" and not (k + 1 < end and tokens[k + 1].is_ident("if")):
                    cognitive += 1
            elif tok.kind is TokenKind.PUNCT:
                if tok.text in ("&&", "||") and self._is_operand_end(k - 1, start):
                    cyclomatic += 1
                    if tok.text != last_bool_op:
                        cognitive += 1
                    last_bool_op = tok.text
                elif tok.text in (";", "{", "}", "=>", ","):
                    last_bool_op = None
        return cyclomatic, cognitive

    def result(self) -> dict:
        return {
            "functions": tuple(self.functions),
            "structs": tuple(self.structs),
            "enums": tuple(self.enums),
            "traits": tuple(self.traits),
            "references": tuple(self.references),
            "declared_modules": tuple(self.declared_modules),
        }


def parse_text(file_path: str, text: str) -> dict:
    """Parse decoded source text; raises SourceParseError on malformed content."""
    module_path = module_path_for(file_path)
    tokens = tokenize(text)
    pairs = match_delimiters(tokens)
    crate_root = module_path.crate or ROOT_CRATE
    parser = _ItemParser(tokens, pairs, module_path.parts, crate_root)
    parser.walk(0, len(tokens), module_path.parts)
    return parser.result()


def parse_source_unit(
    file_path: str,
    contents: bytes | str | None,
    size: int,
    *,
    max_size: int | None = None,
    modified: datetime | None = None,
) -> SourceUnit:
    """Parse one file into a SourceUnit.

    Oversize or unreadable (contents None) files are Skipped and never read
    further. Undecodable bytes and malformed structure give status Error
    with no entities or references.
    """
    module_id = module_path_for(file_path).id
    if max_size is not None and size > max_size:
        return SourceUnit(
            file_path=file_path,
            module_path=module_id,
            size=size,
            status=ParseStatus.skipped(f"file size {size} exceeds limit {max_size}"),
            modified=modified,
        )
    if contents is None:
        return SourceUnit(
            file_path=file_path,
            module_path=module_id,
            size=size,
            status=ParseStatus.skipped("file could not be read"),
            modified=modified,
        )
    if isinstance(contents, bytes):
        try:
            text = contents.decode("utf-8")
        except UnicodeDecodeError as e:
            return SourceUnit(
                file_path=file_path,
                module_path=module_id,
                size=size,
                status=ParseStatus.error(f"invalid UTF-8 at byte {e.start}"),
                modified=modified,
            )
    else:
        text = contents
    if text.startswith("\ufeff"):
        text = text[1:]
    line_count = _count_lines(text)
    try:
        parsed = parse_text(file_path, text)
    except Exception as e:
        # any failure on one file stays on that file's node
        reason = str(e) if isinstance(e, SourceParseError) else f"internal parser error: {type(e).__name__}: {e}"
        return SourceUnit(
            file_path=file_path,
            module_path=module_id,
            size=size,
            status=ParseStatus.error(reason),
            modified=modified,
            line_count=line_count,
            lines_of_code=count_code_lines(text),
        )
    return SourceUnit(
        file_path=file_path,
        module_path=module_id,
        size=size,
        status=ParseStatus.ok(),
        modified=modified,
        line_count=line_count,
        lines_of_code=count_code_lines(text),
        **parsed,
    )
