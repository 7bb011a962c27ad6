"""
Token stream adapter.

Normalizes a per-language token stream into the uniform ``Token`` sequence
the scanner consumes and checks the tokenizer contract: tokens are gapless
and cover the whole file.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import TokenStreamError
from .languages import LanguageTable
from .lexer import tokenize
from .types import Token, TokenKind


class TokenStream:
    """An immutable, validated token sequence plus its source text."""

    __slots__ = ("source", "tokens", "_starts")

    def __init__(self, source: str, tokens: Sequence[Token]):
        self.source = source
        self.tokens: Tuple[Token, ...] = tuple(tokens)
        self._starts = [token.start for token in self.tokens]

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    @property
    def end_offset(self) -> int:
        return self.tokens[-1].end if self.tokens else 0

    def index_at(self, offset: int) -> int:
        """Index of the token starting at or covering ``offset``."""
        if offset >= self.end_offset:
            return len(self.tokens)
        return bisect_right(self._starts, offset) - 1

    def index_after(self, offset: int) -> int:
        """Exclusive token index for a range ending at ``offset``."""
        if offset <= 0:
            return 0
        return self.index_at(offset - 1) + 1

    def text(self, start: int, end: int) -> str:
        return self.source[start:end]

    def span_text(self, first: int, last: int) -> str:
        """Source text of tokens ``[first, last)``."""
        if first >= last:
            return ""
        return self.source[self.tokens[first].start : self.tokens[last - 1].end]


def _coerce(raw: Any, table: LanguageTable) -> Token:
    if isinstance(raw, Token):
        kind, text, start, end = raw
    elif isinstance(raw, Mapping):
        kind = raw["kind"]
        text = raw["text"]
        start = raw["start"]
        end = raw["end"]
    else:
        kind, text, start, end = raw

    if not isinstance(kind, TokenKind):
        try:
            kind = TokenKind(str(kind).lower())
        except ValueError:
            kind = table.kind_aliases.get(str(kind).lower(), TokenKind.OTHER)

    # External tokenizers often tag keywords and identifiers alike; spaces
    # tagged as anything else would break blank-line detection.
    if kind != TokenKind.WHITESPACE and text and not text.strip():
        kind = TokenKind.WHITESPACE
    return Token(kind, text, int(start), int(end))


def normalize_tokens(
    raw_tokens: Iterable[Any],
    source: str,
    table: LanguageTable,
) -> TokenStream:
    """
    Validate and normalize an external token stream.

    Args:
        raw_tokens: Tokens as ``Token`` values, ``(kind, text, start, end)``
            tuples or mappings with those keys
        source: The file text the tokens were produced from
        table: Language table providing kind aliases

    Returns:
        TokenStream over the normalized tokens

    Raises:
        TokenStreamError: if the stream has gaps, overlaps or text mismatches
    """
    tokens: List[Token] = []
    expected = 0

    for raw in raw_tokens:
        token = _coerce(raw, table)
        if token.start != expected:
            raise TokenStreamError("token stream is not gapless", expected)
        if token.end - token.start != len(token.text) or token.end < token.start:
            raise TokenStreamError("token span does not match its text", token.start)
        if source[token.start : token.end] != token.text:
            raise TokenStreamError("token text differs from source", token.start)
        if token.start == token.end:
            continue
        tokens.append(token)
        expected = token.end

    if expected != len(source):
        raise TokenStreamError("token stream does not cover the file", expected)

    return TokenStream(source, tokens)


def stream_for(
    source: str, table: LanguageTable, raw_tokens: Optional[Iterable[Any]] = None
) -> TokenStream:
    """Normalize ``raw_tokens``, lexing ``source`` when none are supplied."""
    if raw_tokens is None:
        raw_tokens = tokenize(source, table)
    return normalize_tokens(raw_tokens, source, table)
