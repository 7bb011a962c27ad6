"""
Chunk size measurement.

Sizes are measured over token ranges and ignore whitespace in every unit,
so reindenting a file never changes how it is chunked.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Dict, Iterable, List, Sequence, Tuple

import tiktoken

from .tokens import TokenStream
from .types import Segment, TokenKind


class SizeUnit(str, Enum):
    """Budget units for ``max_chunk_size``/``min_chunk_size``."""

    TOKENS = "tokens"  # non-whitespace source tokens
    LINES = "lines"  # lines holding at least one non-whitespace token
    CHARS = "chars"  # characters outside whitespace tokens
    BPE = "bpe"  # tiktoken encoding length of the non-whitespace text


@lru_cache(maxsize=8)
def get_encoding(name: str):
    """Resolve a tiktoken encoding by encoding or model name."""
    try:
        return tiktoken.get_encoding(name)
    except ValueError:
        return tiktoken.encoding_for_model(name)


def coalesce(segments: Iterable[Segment]) -> List[Segment]:
    """Sort segments and join the ones that touch."""
    merged: List[Segment] = []
    for start, end in sorted(segments):
        if start >= end:
            continue
        if merged and merged[-1][1] >= start:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class SizeMeter:
    """Measures segments of one token stream in a configured unit."""

    def __init__(
        self,
        stream: TokenStream,
        unit: SizeUnit = SizeUnit.TOKENS,
        encoding: str = "cl100k_base",
    ):
        self.stream = stream
        self.unit = SizeUnit(unit)
        self.encoding_name = encoding
        self._bpe_cache: Dict[Tuple[int, int], int] = {}

        n = len(stream)
        self._count = [0] * (n + 1)
        self._chars = [0] * (n + 1)
        self._new_lines = [0] * (n + 1)
        self._full_lines = [0] * n
        self._next_content = [n] * (n + 1)

        line = 0
        last_line = -1
        for i, token in enumerate(stream.tokens):
            content = token.kind != TokenKind.WHITESPACE
            start_line = line
            line += token.text.count("\n")
            end_line = line
            self._full_lines[i] = end_line - start_line + 1
            new = 0
            if content:
                new = max(0, end_line - max(start_line, last_line + 1) + 1)
                last_line = end_line
            self._count[i + 1] = self._count[i] + (1 if content else 0)
            self._chars[i + 1] = self._chars[i] + (len(token.text) if content else 0)
            self._new_lines[i + 1] = self._new_lines[i] + new

        for i in range(n - 1, -1, -1):
            if stream[i].kind != TokenKind.WHITESPACE:
                self._next_content[i] = i
            else:
                self._next_content[i] = self._next_content[i + 1]

    def token_range(self, segment: Segment) -> Tuple[int, int]:
        start, end = segment
        return self.stream.index_at(start), self.stream.index_after(end)

    def content_tokens(self, first: int, last: int) -> int:
        return self._count[last] - self._count[first]

    def measure_range(self, first: int, last: int) -> int:
        """Size of tokens ``[first, last)``."""
        if first >= last:
            return 0
        if self.unit == SizeUnit.TOKENS:
            return self.content_tokens(first, last)
        if self.unit == SizeUnit.CHARS:
            return self._chars[last] - self._chars[first]
        if self.unit == SizeUnit.LINES:
            head = self._next_content[first]
            if head >= last:
                return 0
            return (
                self._new_lines[last]
                - self._new_lines[head + 1]
                + self._full_lines[head]
            )
        return self._measure_bpe(first, last)

    def _measure_bpe(self, first: int, last: int) -> int:
        key = (first, last)
        cached = self._bpe_cache.get(key)
        if cached is None:
            words = [
                token.text
                for token in self.stream.tokens[first:last]
                if token.kind != TokenKind.WHITESPACE
            ]
            cached = len(get_encoding(self.encoding_name).encode(" ".join(words)))
            self._bpe_cache[key] = cached
        return cached

    def measure(self, segments: Sequence[Segment]) -> int:
        total = 0
        for segment in coalesce(segments):
            total += self.measure_range(*self.token_range(segment))
        return total

    def has_content(self, segments: Sequence[Segment]) -> bool:
        return any(
            self.content_tokens(*self.token_range(segment)) for segment in segments
        )
