"""Tolerant Rust tokenizer.

Produces a flat token list good enough to find items, delimit bodies and
count decision points. It is not a validating lexer: unknown characters
become single-char punctuation. Only conditions that make brace structure
unrecoverable raise SourceParseError (unterminated block comments, string
literals, mismatched delimiters).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from cratemap.errors import SourceParseError


class TokenKind(str, Enum):
    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"
    DOC = "doc"  # outer doc comment: /// or /** */
    INNER_DOC = "inner_doc"  # //! or /*! */


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    line: int

    def is_ident(self, text: str) -> bool:
        return self.kind is TokenKind.IDENT and self.text == text

    def is_punct(self, text: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text == text


KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "self", "Self",
        "static", "struct", "super", "trait", "true", "type", "union", "unsafe",
        "use", "where", "while",
    }
)

# Longest first so that "..=" wins over "..".
_MULTI_PUNCT = (
    "..=", "...", "<<=", ">>=",
    "::", "->", "=>", "==", "!=", "<=", ">=", "&&", "||", "+=", "-=", "*=", "/=",
    "%=", "^=", "&=", "|=", "<<", ">>", "..",
)

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}

# r"..", r#".."#, br".."; group 1 is the hash fence
_RAW_STRING_START = re.compile(r'b?r(#*)"')


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


class _Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.tokens: list[Token] = []

    def _advance_to(self, end: int) -> str:
        chunk = self.text[self.pos:end]
        self.line += chunk.count("\n")
        self.pos = end
        return chunk

    def run(self) -> list[Token]:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch in " \t\r\n\f\v" or ch == "\ufeff":
                if ch == "\n":
                    self.line += 1
                self.pos += 1
            elif text.startswith("//", self.pos):
                self._line_comment()
            elif text.startswith("/*", self.pos):
                self._block_comment()
            elif ch == '"':
                self._string(self.pos)
            elif ch in "rb" and self._raw_or_byte_literal():
                continue
            elif ch == "'":
                self._quote()
            elif _is_ident_start(ch):
                self._ident()
            elif ch.isdigit():
                self._number()
            else:
                self._punct()
        return self.tokens

    def _emit(self, kind: TokenKind, text: str, line: int) -> None:
        self.tokens.append(Token(kind, text, line))

    def _line_comment(self) -> None:
        end = self.text.find("\n", self.pos)
        if end == -1:
            end = len(self.text)
        body = self.text[self.pos:end]
        line = self.line
        self.pos = end
        if body.startswith("///") and not body.startswith("////"):
            self._emit(TokenKind.DOC, body, line)
        elif body.startswith("//!"):
            self._emit(TokenKind.INNER_DOC, body, line)

    def _block_comment(self) -> None:
        start_line = self.line
        text = self.text
        i = self.pos + 2
        depth = 1
        while depth and i < len(text):
            if text.startswith("/*", i):
                depth += 1
                i += 2
            elif text.startswith("*/", i):
                depth -= 1
                i += 2
            else:
                i += 1
        if depth:
            raise SourceParseError("unterminated block comment", start_line)
        body = self._advance_to(i)
        if body.startswith("/**") and not body.startswith("/***") and body != "/**/":
            self._emit(TokenKind.DOC, body, start_line)
        elif body.startswith("/*!"):
            self._emit(TokenKind.INNER_DOC, body, start_line)

    def _string(self, start: int) -> None:
        """Plain or byte string; `start` points at the prefix, quote at self.pos."""
        line = self.line
        text = self.text
        i = text.index('"', start) + 1
        while i < len(text):
            c = text[i]
            if c == "\\":
                i += 2
                continue
            if c == '"':
                self.pos = start
                self._emit(TokenKind.LITERAL, self._advance_to(i + 1), line)
                return
            i += 1
        raise SourceParseError("unterminated string literal", line)

    def _raw_or_byte_literal(self) -> bool:
        """Handle r"..", r#".."#, b"..", br".."; b'x'. False if this is an identifier."""
        text = self.text
        i = self.pos
        if text.startswith("b'", i):
            self.pos += 1
            self._quote()
            return True
        if text.startswith('b"', i):
            self._string(i)
            return True
        j = i + (2 if text.startswith("br", i) else 1)
        if not (text.startswith("r", i) or text.startswith("br", i)):
            return False
        hashes = 0
        while j < len(text) and text[j] == "#":
            hashes += 1
            j += 1
        if j >= len(text) or text[j] != '"':
            return False
        line = self.line
        terminator = '"' + "#" * hashes
        end = text.find(terminator, j + 1)
        if end == -1:
            raise SourceParseError("unterminated raw string literal", line)
        self._emit(TokenKind.LITERAL, self._advance_to(end + len(terminator)), line)
        return True

    def _quote(self) -> None:
        """Char literal or lifetime/label."""
        text = self.text
        i = self.pos
        line = self.line
        if i + 1 < len(text) and text[i + 1] == "\\":
            end = text.find("'", i + 3)
            if end == -1 or "\n" in text[i:end]:
                raise SourceParseError("unterminated char literal", line)
            self._emit(TokenKind.LITERAL, self._advance_to(end + 1), line)
            return
        if i + 2 < len(text) and text[i + 2] == "'":
            self._emit(TokenKind.LITERAL, self._advance_to(i + 3), line)
            return
        j = i + 1
        while j < len(text) and _is_ident_char(text[j]):
            j += 1
        if j == i + 1:
            self._emit(TokenKind.PUNCT, self._advance_to(i + 1), line)
            return
        self._emit(TokenKind.LIFETIME, self._advance_to(j), line)

    def _ident(self) -> None:
        text = self.text
        j = self.pos + 1
        while j < len(text) and _is_ident_char(text[j]):
            j += 1
        if text.startswith("r#", self.pos) and j == self.pos + 1:
            j = self.pos + 2
            while j < len(text) and _is_ident_char(text[j]):
                j += 1
            word = text[self.pos + 2:j]
            line = self.line
            self.pos = j
            self._emit(TokenKind.IDENT, word, line)
            return
        self._emit(TokenKind.IDENT, self._advance_to(j), self.line)

    def _number(self) -> None:
        text = self.text
        j = self.pos + 1
        while j < len(text):
            c = text[j]
            if _is_ident_char(c):
                j += 1
            elif c == "." and j + 1 < len(text) and text[j + 1].isdigit():
                j += 1
            else:
                break
        self._emit(TokenKind.LITERAL, self._advance_to(j), self.line)

    def _punct(self) -> None:
        for op in _MULTI_PUNCT:
            if self.text.startswith(op, self.pos):
                self._emit(TokenKind.PUNCT, self._advance_to(self.pos + len(op)), self.line)
                return
        self._emit(TokenKind.PUNCT, self._advance_to(self.pos + 1), self.line)


def tokenize(text: str) -> list[Token]:
    """Tokenize Rust source text. Raises SourceParseError on unterminated constructs."""
    return _Lexer(text).run()


def match_delimiters(tokens: list[Token]) -> dict[int, int]:
    """Map each opening (, [, { index to its closing index (and back).

    Raises SourceParseError on a mismatched, unexpected or unclosed delimiter.
    """
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for idx, tok in enumerate(tokens):
        if tok.kind is not TokenKind.PUNCT:
            continue
        if tok.text in OPENERS:
            stack.append(idx)
        elif tok.text in CLOSERS:
            if not stack:
                raise SourceParseError(f"unexpected '{tok.text}'", tok.line)
            open_idx = stack.pop()
            if OPENERS[tokens[open_idx].text] != tok.text:
                raise SourceParseError(
                    f"mismatched '{tokens[open_idx].text}' (line {tokens[open_idx].line}) closed by '{tok.text}'",
                    tok.line,
                )
            pairs[open_idx] = idx
            pairs[idx] = open_idx
    if stack:
        tok = tokens[stack[-1]]
        raise SourceParseError(f"unclosed '{tok.text}'", tok.line)
    return pairs


def count_code_lines(text: str) -> int:
    """Lines holding at least one character outside comments.

    Blank lines and lines covered only by // or (nested) /* */ comments do
    not count; every line a multi-line string literal spans does. Never
    raises, so it also serves files that fail to tokenize.
    """
    lines: set[int] = set()
    n = len(text)
    i = 0
    line = 1
    depth = 0
    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
            continue
        if depth:
            if text.startswith("/*", i):
                depth += 1
                i += 2
            elif text.startswith("*/", i):
                depth -= 1
                i += 2
            else:
                i += 1
            continue
        if ch in " \t\r\f\v" or ch == "\ufeff":
            i += 1
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if text.startswith("/*", i):
            depth = 1
            i += 2
            continue
        lines.add(line)
        raw = _RAW_STRING_START.match(text, i) if ch in "rb" and (i == 0 or not _is_ident_char(text[i - 1])) else None
        if raw:
            end = text.find('"' + raw.group(1), raw.end())
            j = n if end == -1 else end + 1 + len(raw.group(1))
        elif ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            j = min(j + 1, n)
        elif ch == "'":
            if text.startswith("\\", i + 1):
                end = text.find("'", i + 3)
                j = i + 1 if end == -1 else end + 1
            elif i + 2 < n and text[i + 2] == "'":
                j = i + 3
            else:
                j = i + 1
        else:
            i += 1
            continue
        spanned = text.count("\n", i, j)
        lines.update(range(line, line + spanned + 1))
        line += spanned
        i = j
    return len(lines)
