"""`use` tree expansion and path normalization.

    use a::{b, c::{d, e as f}, self, g::*};

expands to a::b, a::c::d, a::c::e, a, a::g. Relative heads (crate, self,
super, leading ::) are rewritten against the module the statement lives in.
"""

from __future__ import annotations

from dataclasses import dataclass

from cratemap.analysis.lexer import Token, TokenKind

ANCHORS = frozenset({"crate", "self", "super"})
LEADING_COLONS = "::"


@dataclass(frozen=True)
class UsePath:
    segments: tuple[str, ...]  # may start with "::" for a leading-colon path
    line: int


class _UseTreeReader:
    def __init__(self, tokens: list[Token], end: int) -> None:
        self.tokens = tokens
        self.end = end
        self.out: list[UsePath] = []

    def _emit(self, segments: list[str], line: int) -> None:
        if segments and segments != [LEADING_COLONS]:
            self.out.append(UsePath(tuple(segments), line))

    def _skip_alias(self, i: int) -> int:
        if i < self.end and self.tokens[i].is_ident("as"):
            return min(i + 2, self.end)
        return i

    def tree(self, i: int, prefix: tuple[str, ...]) -> int:
        tokens = self.tokens
        segs = list(prefix)
        line = tokens[i].line if i < self.end else 0
        if i < self.end and tokens[i].is_punct("::"):
            if not prefix:
                segs.append(LEADING_COLONS)
            i += 1
        while i < self.end:
            tok = tokens[i]
            if tok.kind is TokenKind.IDENT:
                if tok.text == "self" and prefix and len(segs) == len(prefix):
                    # `a::{self}` names the group prefix itself
                    self._emit(segs, tok.line)
                    return self._skip_alias(i + 1)
                segs.append(tok.text)
                i += 1
                if i < self.end and tokens[i].is_punct("::"):
                    i += 1
                    continue
                self._emit(segs, line)
                return self._skip_alias(i)
            if tok.is_punct("*"):
                self._emit(segs, line)
                return i + 1
            if tok.is_punct("{"):
                i += 1
                while i < self.end and not tokens[i].is_punct("}"):
                    if tokens[i].is_punct(","):
                        i += 1
                        continue
                    i = self.tree(i, tuple(segs))
                return i + 1
            return i + 1
        return i


def expand_use_tree(tokens: list[Token], start: int, end: int) -> list[UsePath]:
    """Expand the use tree in tokens[start:end] (after `use`, before `;`)."""
    reader = _UseTreeReader(tokens, end)
    i = start
    while i < end:
        if tokens[i].is_punct(","):
            i += 1
            continue
        i = reader.tree(i, ())
    return reader.out


def normalize_path(
    segments: tuple[str, ...],
    module_parts: tuple[str, ...],
    crate_root: str,
) -> tuple[tuple[str, ...], bool] | None:
    """Rewrite relative heads against module_parts.

    Returns (segments, anchored) or None when nothing is left to reference.
    `anchored` is True for crate::, self:: and super:: paths.
    """
    if not segments:
        return None
    head = segments[0]
    if head == LEADING_COLONS:
        rest = segments[1:]
        return (rest, False) if rest else None
    if head == "crate":
        return (crate_root, *segments[1:]), True
    if head not in ("self", "super"):
        return segments, False
    base = list(module_parts)
    i = 0
    while i < len(segments) and segments[i] in ("self", "super"):
        if segments[i] == "super" and len(base) > 1:
            base.pop()
        i += 1
    return (*base, *segments[i:]), True


def extern_crate_name(tokens: list[Token], start: int, end: int) -> str | None:
    """`extern crate foo [as bar];` -> foo (tokens[start] is the name)."""
    if start >= end:
        return None
    tok = tokens[start]
    if tok.kind is not TokenKind.IDENT or tok.text == "self":
        return None
    return tok.text


def scan_inline_paths(tokens: list[Token], start: int, end: int) -> list[UsePath]:
    """Qualified paths starting with crate::, self:: or super:: in code.

    `self.field` and `Self::` are not module paths and are ignored, as are
    paths that continue another path (`a::self`).
    """
    found: list[UsePath] = []
    i = start
    while i < end:
        tok = tokens[i]
        if (
            tok.kind is TokenKind.IDENT
            and tok.text in ANCHORS
            and i + 1 < end
            and tokens[i + 1].is_punct("::")
            and not (i > start and tokens[i - 1].is_punct("::"))
        ):
            segs = [tok.text]
            j = i + 1
            while j + 1 < end and tokens[j].is_punct("::") and tokens[j + 1].kind is TokenKind.IDENT:
                segs.append(tokens[j + 1].text)
                j += 2
            if len(segs) > 1:
                found.append(UsePath(tuple(segs), tok.line))
            i = j
            continue
        i += 1
    return found
