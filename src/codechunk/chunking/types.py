"""
Core value types shared by every chunking stage.

All of these are immutable once produced: stages hand them forward and
build new values instead of mutating what they received.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional, Tuple

Segment = Tuple[int, int]


class TokenKind(str, Enum):
    """Uniform token kinds the scanner understands."""

    WORD = "word"
    NUMBER = "number"
    STRING = "string"
    PUNCT = "punct"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    PREPROCESSOR = "preprocessor"
    OTHER = "other"


class DeclaredKind(str, Enum):
    """Closed set of construct kinds a boundary can declare."""

    NAMESPACE = "namespace"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    FUNCTION = "function"
    TEMPLATE = "template"
    COMMENT = "comment"
    OTHER = "other"


# Kinds whose bodies are scanned for nested declarations.
CONTAINER_KINDS = frozenset(
    {DeclaredKind.NAMESPACE, DeclaredKind.CLASS, DeclaredKind.STRUCT}
)

TRUNCATED = "truncated"
LEADING = "leading"
TRAILING_COMMENT = "trailing-comment"


class Token(NamedTuple):
    """A lexical token with its half-open character span in the source."""

    kind: TokenKind
    text: str
    start: int
    end: int

    @property
    def significant(self) -> bool:
        return self.kind not in (TokenKind.WHITESPACE, TokenKind.COMMENT)


class Boundary(NamedTuple):
    """A detected source range ``[start, end)`` believed to be one unit."""

    kind: DeclaredKind
    start: int
    end: int
    name: Optional[str] = None
    modifiers: Tuple[str, ...] = ()
    body_start: Optional[int] = None

    @property
    def truncated(self) -> bool:
        return TRUNCATED in self.modifiers

    @property
    def template_params(self) -> Optional[str]:
        for modifier in self.modifiers:
            if modifier.startswith("template"):
                return modifier
        return None

    def contains(self, other: "Boundary") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "Boundary") -> bool:
        return self.start < other.end and other.start < self.end


class Chunk(NamedTuple):
    """An emitted, self-contained unit of source with its metadata.

    ``segments`` are the disjoint source ranges the chunk owns; ``start`` and
    ``end`` span from the first segment to the last one, so a composite's
    header chunk reaches from its opening line to its closing brace.
    """

    start: int
    end: int
    segments: Tuple[Segment, ...]
    scope_path: Tuple[str, ...]
    kind: str
    signature_text: str = ""
    leading_comment: Optional[str] = None
    trailing_comment: Optional[str] = None
    size: int = 0
    sequence_index: Optional[int] = None
    truncated: bool = False
    oversized: bool = False
    merged_count: int = 1

    # Assigned by the emitter
    file_path: str = ""
    chunk_id: str = ""
    ord: int = 0
    structure_id: Optional[str] = None  # chunk_id of piece 0 when split
