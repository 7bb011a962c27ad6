"""
Boundary scanner.

Walks a normalized token stream, tracks nesting through paired delimiters,
and emits candidate chunk boundaries for namespaces, classes, structs,
enums, functions, body-less declarations and comment blocks.

Scopes that can hold declarations (namespaces, classes, structs) are
scanned recursively. Function and enum bodies are opaque: their inner
braces are only counted, never turned into boundaries.
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence, Tuple

from .languages import LanguageTable
from .tokens import TokenStream
from .types import (
    CONTAINER_KINDS,
    LEADING,
    TRAILING_COMMENT,
    TRUNCATED,
    Boundary,
    DeclaredKind,
    Token,
    TokenKind,
)

_LINE_ENDERS = frozenset({")", "]", "}", "++", "--"})
_CONTINUATIONS = frozenset({"{", ".", "?.", "=>"})
_DECLARATOR_PUNCT = frozenset({",", "*", "&", "[", "]"})


class _Decl(NamedTuple):
    kind: DeclaredKind
    name: Optional[str]
    modifiers: Tuple[str, ...]


def _normalize_ws(text: str) -> str:
    return " ".join(text.split())


class BoundaryScanner:
    """Produces the ordered boundary set for one file."""

    def __init__(self, stream: TokenStream, table: LanguageTable):
        self.stream = stream
        self.tokens: Tuple[Token, ...] = stream.tokens
        self.table = table
        self.n = len(self.tokens)
        self.boundaries: List[Boundary] = []

    def scan(self) -> Tuple[Boundary, ...]:
        self.boundaries = []
        self._scan_scope(0, in_body=False)
        return tuple(sorted(self.boundaries, key=lambda b: (b.start, -b.end)))

    # Scope walking

    def _scan_scope(self, i: int, in_body: bool) -> int:
        """Scan declarations from ``i``; return the index of the closing brace.

        Returns ``self.n`` when end-of-stream is reached first.
        """
        toks = self.tokens
        table = self.table
        stmt: List[int] = []
        depth = 0
        has_initializer = False
        pending: Optional[Tuple[int, int]] = None
        last_closed: Optional[int] = None
        visibility: Optional[str] = None

        while i < self.n:
            tok = toks[i]
            kind = tok.kind

            if kind == TokenKind.WHITESPACE:
                if (
                    table.newline_terminates
                    and stmt
                    and depth == 0
                    and "\n" in tok.text
                    and self._ends_line(stmt[-1])
                    and self._next_significant_text(i) not in _CONTINUATIONS
                ):
                    last_closed = self._end_statement(
                        stmt, stmt[-1] + 1, pending, visibility
                    )
                    stmt, pending, has_initializer = [], None, False
                i += 1
                continue

            if kind == TokenKind.COMMENT:
                if stmt:
                    i += 1
                    continue
                if last_closed is not None and self._is_trailing(last_closed, i):
                    self._extend_with_trailing_comment(last_closed, i)
                    last_closed = None
                    i += 1
                    continue
                last_closed = None
                if self._is_inline(i):
                    i += 1
                    continue
                if pending is not None:
                    self._add_comment(pending, leading=False)
                    pending = None
                run_end = self._comment_run_end(i)
                if self._detached_after(run_end):
                    self._add_comment((i, run_end), leading=False)
                else:
                    pending = (i, run_end)
                i = run_end
                continue

            if kind == TokenKind.PREPROCESSOR and not stmt:
                if pending is not None:
                    self._add_comment(pending, leading=False)
                    pending = None
                last_closed = None
                i += 1
                continue

            text = tok.text if kind == TokenKind.PUNCT else None

            if text == "}":
                if stmt and table.newline_terminates and depth == 0:
                    self._end_statement(stmt, stmt[-1] + 1, pending, visibility)
                elif pending is not None:
                    self._add_comment(pending, leading=False)
                if in_body:
                    return i
                # Stray closer at file scope: leave it in the file's own content
                stmt, pending, depth, has_initializer = [], None, 0, False
                last_closed = None
                i += 1
                continue

            if text == "{":
                if depth > 0:
                    close = self._skip_block(i)
                    if close >= self.n:
                        break
                    stmt.append(close)
                    i = close + 1
                    continue

                if self._is_linkage_block(stmt):
                    # extern "C" { ... }: declarations inside belong to the enclosing scope
                    if pending is not None:
                        self._add_comment(pending, leading=False)
                    close = self._scan_scope(i + 1, in_body=True)
                    if close >= self.n:
                        i = self.n
                        break
                    stmt, pending, has_initializer, last_closed = [], None, False, None
                    i = close + 1
                    continue

                decl = self._classify(stmt, has_body=True) if stmt else None
                if decl is not None and not has_initializer:
                    i, last_closed = self._open_declaration(
                        decl, stmt[0], i, pending, visibility
                    )
                    stmt, pending, has_initializer = [], None, False
                    continue

                close = self._skip_block(i)
                if close >= self.n:
                    i = self.n
                    break
                if has_initializer:
                    stmt.append(close)
                else:
                    # Plain block (static initializer, extern "C", ...): own content
                    if pending is not None:
                        self._add_comment(pending, leading=False)
                    stmt, pending = [], None
                last_closed = None
                i = close + 1
                continue

            if text == ";" and depth == 0:
                if stmt:
                    last_closed = self._end_statement(stmt, i + 1, pending, visibility)
                elif pending is not None:
                    self._add_comment(pending, leading=False)
                    last_closed = None
                stmt, pending, has_initializer = [], None, False
                i += 1
                continue

            if (
                text == ":"
                and depth == 0
                and len(stmt) == 1
                and toks[stmt[0]].text in table.access_labels
            ):
                visibility = toks[stmt[0]].text
                if pending is not None:
                    self._add_comment(pending, leading=False)
                stmt, pending, last_closed = [], None, None
                i += 1
                continue

            if text in ("(", "["):
                depth += 1
            elif text in (")", "]"):
                depth = max(0, depth - 1)
            elif text == "=" and depth == 0 and not self._after_operator(stmt):
                has_initializer = True

            stmt.append(i)
            last_closed = None
            i += 1

        # End of stream
        if stmt and table.newline_terminates and depth == 0:
            self._end_statement(stmt, stmt[-1] + 1, pending, visibility)
        elif pending is not None:
            self._add_comment(pending, leading=False)
        return self.n

    def _open_declaration(
        self,
        decl: _Decl,
        first: int,
        brace: int,
        pending: Optional[Tuple[int, int]],
        visibility: Optional[str],
    ) -> Tuple[int, int]:
        """Consume a declaration with a body; return (next index, boundary slot)."""
        if decl.kind in CONTAINER_KINDS:
            close = self._scan_scope(brace + 1, in_body=True)
        else:
            close = self._skip_block(brace)

        modifiers = list(decl.modifiers)
        if visibility and visibility not in modifiers:
            modifiers.append(visibility)

        if close >= self.n:
            end_index = self.n
            modifiers.append(TRUNCATED)
        else:
            end_index = close + 1
            if decl.kind in (DeclaredKind.CLASS, DeclaredKind.STRUCT, DeclaredKind.ENUM):
                end_index = self._absorb_declarators(end_index)

        if pending is not None:
            self._add_comment(pending, leading=True)

        self.boundaries.append(
            Boundary(
                kind=decl.kind,
                start=self.tokens[first].start,
                end=self.tokens[end_index - 1].end,
                name=decl.name,
                modifiers=tuple(modifiers),
                body_start=self.tokens[brace].start,
            )
        )
        return end_index, len(self.boundaries) - 1

    def _end_statement(
        self,
        stmt: Sequence[int],
        end_index: int,
        pending: Optional[Tuple[int, int]],
        visibility: Optional[str],
    ) -> Optional[int]:
        """Close a body-less statement; return the boundary slot if one was made."""
        decl = self._classify(stmt, has_body=False)
        if decl is None:
            if pending is not None:
                self._add_comment(pending, leading=False)
            return None

        if pending is not None:
            self._add_comment(pending, leading=True)

        modifiers = list(decl.modifiers)
        if visibility and visibility not in modifiers:
            modifiers.append(visibility)
        kind = decl.kind if decl.kind == DeclaredKind.TEMPLATE else DeclaredKind.OTHER
        self.boundaries.append(
            Boundary(
                kind=kind,
                start=self.tokens[stmt[0]].start,
                end=self.tokens[end_index - 1].end,
                name=decl.name,
                modifiers=tuple(modifiers),
            )
        )
        return len(self.boundaries) - 1

    # Comments

    def _add_comment(self, run: Tuple[int, int], leading: bool) -> None:
        first, last = run
        self.boundaries.append(
            Boundary(
                kind=DeclaredKind.COMMENT,
                start=self.tokens[first].start,
                end=self.tokens[last - 1].end,
                modifiers=(LEADING,) if leading else (),
            )
        )

    def _is_inline(self, i: int) -> bool:
        """True when the comment follows code on the same line."""
        if i == 0:
            return False
        prev = self.tokens[i - 1]
        if prev.kind != TokenKind.WHITESPACE:
            return prev.kind != TokenKind.COMMENT
        return "\n" not in prev.text and i >= 2

    def _comment_run_end(self, i: int) -> int:
        toks = self.tokens
        j = i + 1
        while j < self.n:
            if toks[j].kind == TokenKind.COMMENT:
                j += 1
            elif (
                toks[j].kind == TokenKind.WHITESPACE
                and toks[j].text.count("\n") <= 1
                and j + 1 < self.n
                and toks[j + 1].kind == TokenKind.COMMENT
            ):
                j += 2
            else:
                break
        return j

    def _detached_after(self, j: int) -> bool:
        """True when no declaration can directly follow the comment run ending at ``j``."""
        if j >= self.n:
            return True
        tok = self.tokens[j]
        if tok.kind == TokenKind.WHITESPACE:
            if tok.text.count("\n") >= 2:
                return True
            j += 1
            if j >= self.n:
                return True
            tok = self.tokens[j]
        if tok.kind == TokenKind.PREPROCESSOR:
            return True
        return tok.kind == TokenKind.PUNCT and tok.text == "}"

    def _is_trailing(self, slot: int, i: int) -> bool:
        boundary = self.boundaries[slot]
        after = self.stream.index_at(boundary.end)
        if after == i:
            return True
        return (
            after + 1 == i
            and self.tokens[after].kind == TokenKind.WHITESPACE
            and "\n" not in self.tokens[after].text
        )

    def _extend_with_trailing_comment(self, slot: int, i: int) -> None:
        boundary = self.boundaries[slot]
        self.boundaries[slot] = boundary._replace(
            end=self.tokens[i].end,
            modifiers=boundary.modifiers + (TRAILING_COMMENT,),
        )

    # Delimiters

    def _skip_block(self, i: int) -> int:
        """Index of the brace closing the one at ``i``, or ``self.n``."""
        depth = 0
        for j in range(i, self.n):
            tok = self.tokens[j]
            if tok.kind != TokenKind.PUNCT:
                continue
            if tok.text == "{":
                depth += 1
            elif tok.text == "}":
                depth -= 1
                if depth == 0:
                    return j
        return self.n

    def _absorb_declarators(self, end_index: int) -> int:
        """Extend past ``;`` (or ``} name;`` declarators) after a type body."""
        toks = self.tokens
        j = end_index
        first_significant = True
        while j < self.n:
            tok = toks[j]
            if tok.kind == TokenKind.WHITESPACE:
                if first_significant and "\n" in tok.text:
                    nxt = self._next_significant_index(j)
                    if nxt is None or toks[nxt].text != ";":
                        return end_index
                if tok.text.count("\n") >= 2:
                    return end_index
                j += 1
                continue
            if tok.kind == TokenKind.PUNCT and tok.text == ";":
                return j + 1
            if tok.kind in (TokenKind.WORD, TokenKind.NUMBER) or (
                tok.kind == TokenKind.PUNCT and tok.text in _DECLARATOR_PUNCT
            ):
                first_significant = False
                j += 1
                continue
            return end_index
        return end_index

    def _next_significant_index(self, i: int) -> Optional[int]:
        for j in range(i + 1, self.n):
            if self.tokens[j].significant:
                return j
        return None

    def _next_significant_text(self, i: int) -> Optional[str]:
        j = self._next_significant_index(i)
        return self.tokens[j].text if j is not None else None

    def _ends_line(self, index: int) -> bool:
        tok = self.tokens[index]
        if tok.kind in (TokenKind.WORD, TokenKind.NUMBER, TokenKind.STRING):
            return True
        return tok.kind == TokenKind.PUNCT and tok.text in _LINE_ENDERS

    def _after_operator(self, stmt: Sequence[int]) -> bool:
        return bool(stmt) and self.tokens[stmt[-1]].text == "operator"

    def _is_linkage_block(self, stmt: Sequence[int]) -> bool:
        return (
            len(stmt) == 2
            and self.tokens[stmt[0]].text == "extern"
            and self.tokens[stmt[1]].kind == TokenKind.STRING
        )

    # Classification

    def _classify(self, stmt: Sequence[int], has_body: bool) -> Optional[_Decl]:
        """Decide whether a statement header declares something."""
        table = self.table
        words = [self.tokens[k] for k in stmt]
        pos = self._skip_attributes(words, 0)
        modifiers: List[str] = []

        if (
            table.template_keyword
            and pos + 1 < len(words)
            and words[pos].text == table.template_keyword
            and words[pos + 1].text == "<"
        ):
            close = self._match_angle(words, pos + 1)
            if close is None:
                return None
            modifiers.append(
                _normalize_ws(self.stream.text(words[pos].start, words[close].end))
            )
            pos = close + 1

        if pos >= len(words):
            return None
        first = words[pos]
        if first.kind == TokenKind.WORD and first.text in table.control_keywords:
            if modifiers and not has_body:
                return _Decl(DeclaredKind.TEMPLATE, None, tuple(modifiers))
            return None

        first_paren: Optional[int] = None
        first_eq: Optional[int] = None
        kw_index: Optional[int] = None
        paren = 0
        angle = 0
        k = pos
        prev: Optional[Token] = None
        while k < len(words):
            tok = words[k]
            tx = tok.text
            if tok.kind == TokenKind.WORD and tx == "operator":
                k = self._skip_operator_name(words, k)
                prev = words[k - 1]
                continue
            if tok.kind == TokenKind.PUNCT:
                if tx in ("(", "["):
                    if tx == "(" and paren == 0 and angle == 0 and first_paren is None:
                        first_paren = k
                    paren += 1
                elif tx in (")", "]"):
                    paren = max(0, paren - 1)
                elif paren == 0 and first_eq is None:
                    if tx == "<" and prev is not None and prev.kind == TokenKind.WORD:
                        angle += 1
                    elif tx == ">" and angle:
                        angle -= 1
                    elif tx == ">>" and angle:
                        angle = max(0, angle - 2)
                    elif tx == "=" and angle == 0:
                        first_eq = k
            elif tok.kind == TokenKind.WORD and paren == 0 and angle == 0:
                if first_eq is None and kw_index is None and table.kind_for(tx):
                    kw_index = k
                if (
                    tx in table.visibility_words
                    and tx not in modifiers
                    and kw_index is None
                    and first_paren is None
                ):
                    modifiers.append(tx)
            prev = tok
            k += 1

        if kw_index is not None:
            kind = table.kind_for(words[kw_index].text)
            assert kind is not None
            name = self._name_after(words, kw_index)
            if (
                kind not in (DeclaredKind.FUNCTION, DeclaredKind.NAMESPACE)
                and first_paren is not None
                and first_paren > kw_index
            ):
                function_name = self._declares_function(words, first_paren, pos, has_body)
                if function_name is not None:
                    return _Decl(DeclaredKind.FUNCTION, function_name, tuple(modifiers))
            return _Decl(kind, name, tuple(modifiers))

        if first_paren is not None and (first_eq is None or first_eq > first_paren):
            function_name = self._declares_function(words, first_paren, pos, has_body)
            if function_name is not None:
                return _Decl(DeclaredKind.FUNCTION, function_name, tuple(modifiers))

        if modifiers and modifiers[0].startswith("template") and not has_body:
            return _Decl(DeclaredKind.TEMPLATE, None, tuple(modifiers))
        return None

    def _skip_attributes(self, words: Sequence[Token], pos: int) -> int:
        """Skip ``@Annotation(...)``, ``[[attr]]`` and ``#[attr]`` prefixes."""
        while pos < len(words):
            tx = words[pos].text
            if tx == "@" and pos + 1 < len(words) and words[pos + 1].kind == TokenKind.WORD:
                if self.table.kind_for(words[pos + 1].text):
                    break
                pos += 2
                while (
                    pos + 1 < len(words)
                    and words[pos].text == "."
                    and words[pos + 1].kind == TokenKind.WORD
                ):
                    pos += 2
                if pos < len(words) and words[pos].text == "(":
                    pos = self._match_close(words, pos, "(", ")") + 1
            elif tx == "[" and pos + 1 < len(words) and words[pos + 1].text == "[":
                pos = self._match_close(words, pos, "[", "]") + 1
            elif tx == "#" and pos + 1 < len(words) and words[pos + 1].text in ("[", "!"):
                start = pos + 1 if words[pos + 1].text == "[" else pos + 2
                if start >= len(words) or words[start].text != "[":
                    break
                pos = self._match_close(words, start, "[", "]") + 1
            else:
                break
        return pos

    @staticmethod
    def _match_close(words: Sequence[Token], pos: int, opener: str, closer: str) -> int:
        depth = 0
        for k in range(pos, len(words)):
            if words[k].text == opener:
                depth += 1
            elif words[k].text == closer:
                depth -= 1
                if depth == 0:
                    return k
        return len(words) - 1

    @staticmethod
    def _match_angle(words: Sequence[Token], pos: int) -> Optional[int]:
        depth = 0
        paren = 0
        for k in range(pos, len(words)):
            tx = words[k].text
            if tx in ("(", "["):
                paren += 1
            elif tx in (")", "]"):
                paren -= 1
            elif paren == 0 and tx == "<":
                depth += 1
            elif paren == 0 and tx == ">":
                depth -= 1
            elif paren == 0 and tx == ">>":
                depth -= 2
            if depth <= 0 and k > pos:
                return k
        return None

    @staticmethod
    def _skip_operator_name(words: Sequence[Token], k: int) -> int:
        """Index just past the tokens naming an ``operator`` overload."""
        k += 1
        if k >= len(words):
            return k
        tx = words[k].text
        if tx in ("(", "[") and k + 1 < len(words) and words[k + 1].text in (")", "]"):
            return k + 2
        if tx in ("new", "delete"):
            k += 1
            if k + 1 < len(words) and words[k].text == "[" and words[k + 1].text == "]":
                k += 2
            return k
        return k + 1

    def _name_after(self, words: Sequence[Token], kw_index: int) -> str:
        """Declared name following a keyword; empty string when anonymous."""
        table = self.table
        j = kw_index + 1
        while j < len(words):
            tok = words[j]
            tx = tok.text
            if tok.kind == TokenKind.WORD:
                if (
                    tx in table.name_skip_words
                    or tx in table.visibility_words
                    or table.kind_for(tx)
                ):
                    j += 1
                    continue
                if tx in table.inheritance_words:
                    return ""
                name = tx
                j += 1
                while (
                    j + 1 < len(words)
                    and words[j].text in ("::", ".")
                    and words[j + 1].kind == TokenKind.WORD
                ):
                    name += words[j].text + words[j + 1].text
                    j += 2
                return name
            if tok.kind == TokenKind.PUNCT:
                if tx == "(":
                    j = self._match_close(words, j, "(", ")") + 1
                    continue
                if tx == "<":
                    close = self._match_angle(words, j)
                    if close is None:
                        return ""
                    j = close + 1
                    continue
                if tx == "[":
                    j = self._match_close(words, j, "[", "]") + 1
                    continue
                if tx in ("*", "&", "::"):
                    j += 1
                    continue
                return ""
            if tok.kind == TokenKind.STRING:
                return tx.strip("\"'`")
            return ""
        return ""

    def _function_name(
        self, words: Sequence[Token], paren: int, pos: int
    ) -> Optional[Tuple[str, int]]:
        """Name preceding a function's parameter list and the index it starts at."""
        if paren <= pos:
            return None

        for q in range(max(pos, paren - 4), paren):
            if words[q].kind == TokenKind.WORD and words[q].text == "operator":
                parts = [tok.text for tok in words[q + 1 : paren]]
                joiner = " " if parts and parts[0][:1].isalpha() else ""
                return self._qualify(words, q, pos, "operator" + joiner + "".join(parts))

        tok = words[paren - 1]
        if tok.kind != TokenKind.WORD:
            return None
        if tok.text in self.table.control_keywords or self.table.kind_for(tok.text):
            return None
        name = tok.text
        j = paren - 2
        if j >= pos and words[j].text == "~":
            name = "~" + name
            j -= 1
        return self._qualify(words, j + 1, pos, name)

    def _declares_function(
        self, words: Sequence[Token], paren: int, pos: int, has_body: bool
    ) -> Optional[str]:
        """Function name for a header, rejecting member calls and bare call statements."""
        found = self._function_name(words, paren, pos)
        if found is None:
            return None
        name, start = found
        if start > pos and words[start - 1].text in (".", "->"):
            return None
        if has_body:
            return name
        # Without a body, a declaration needs a return type before the name
        # or a trailing return type after the parameters.
        before = words[start - 1] if start > pos else None
        if before is not None and (
            before.kind == TokenKind.WORD or before.text in ("*", "&", "&&", ">", ">>")
        ):
            return name
        close = self._match_close(words, paren, "(", ")")
        if close + 1 < len(words) and words[close + 1].text in (":", "->"):
            return name
        return None

    @staticmethod
    def _qualify(
        words: Sequence[Token], first: int, pos: int, name: str
    ) -> Tuple[str, int]:
        """Prefix ``name`` with ``A::B::`` qualifiers; template arguments are dropped."""
        j = first - 1
        while j - 1 >= pos and words[j].text == "::":
            k = j - 1
            if words[k].text in (">", ">>"):
                depth = 0
                while k >= pos:
                    tx = words[k].text
                    if tx == ">":
                        depth += 1
                    elif tx == ">>":
                        depth += 2
                    elif tx == "<":
                        depth -= 1
                        if depth <= 0:
                            break
                    k -= 1
                k -= 1
            if k < pos or words[k].kind != TokenKind.WORD:
                break
            name = words[k].text + "::" + name
            j = k - 1
        return name, j + 1


def scan_boundaries(stream: TokenStream, table: LanguageTable) -> Tuple[Boundary, ...]:
    """Produce the ordered, non-conflicting boundary set for a token stream."""
    return BoundaryScanner(stream, table).scan()
