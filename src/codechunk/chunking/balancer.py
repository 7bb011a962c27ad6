"""
Size balancer.

Flattens the containment tree into chunks that honor the size budget:
composites emit a header chunk for their own content followed by their
children's chunks, oversized spans are split at statement boundaries, and
undersized siblings are merged.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .hierarchy import ChunkTree
from .languages import LanguageTable
from .metadata import TreeMetadata
from .sizing import SizeMeter, coalesce
from .tokens import TokenStream
from .types import Chunk, DeclaredKind, Segment, TokenKind

Piece = Tuple[List[Segment], int]


def subtract(extent: Segment, holes: Iterable[Segment]) -> List[Segment]:
    """Parts of ``extent`` not covered by any of ``holes``."""
    start, end = extent
    remaining: List[Segment] = []
    cursor = start
    for hole_start, hole_end in sorted(holes):
        if hole_start > cursor:
            remaining.append((cursor, min(hole_start, end)))
        cursor = max(cursor, hole_end)
    if cursor < end:
        remaining.append((cursor, end))
    return remaining


def _common_prefix(a: Tuple[str, ...], b: Tuple[str, ...]) -> Tuple[str, ...]:
    prefix: List[str] = []
    for left, right in zip(a, b):
        if left != right:
            break
        prefix.append(left)
    return tuple(prefix)


class SizeBalancer:
    """Turns one file's annotated tree into an ordered chunk list."""

    def __init__(
        self,
        tree: ChunkTree,
        metadata: TreeMetadata,
        stream: TokenStream,
        meter: SizeMeter,
        table: LanguageTable,
        max_size: int,
        min_size: int = 0,
        merge_across_kinds: bool = True,
    ):
        self.tree = tree
        self.metadata = metadata
        self.stream = stream
        self.meter = meter
        self.table = table
        self.max_size = max_size
        self.min_size = min_size
        self.merge_across_kinds = merge_across_kinds

    def run(self) -> List[Chunk]:
        roots = self._live_children(self.tree.roots)
        gaps = subtract((0, len(self.stream.source)), [self._extent(r) for r in roots])
        content_gaps = [gap for gap in gaps if self.meter.has_content([gap])]
        blank_gaps = [gap for gap in gaps if not self.meter.has_content([gap])]

        # Each run of loose top-level code is its own sibling, so no chunk
        # envelope reaches across a declaration.
        groups: List[List[Chunk]] = [
            self._make_chunks(
                self._split([gap], atomic_end=0, list_mode=False),
                scope_path=(),
                kind=DeclaredKind.OTHER.value,
                signature="",
            )
            for gap in content_gaps
        ]
        groups.extend(self._emit(r) for r in roots)
        groups.sort(key=lambda group: group[0].start)
        chunks = self._merge_siblings(groups)

        if not chunks:
            if not blank_gaps:
                return []
            # Whitespace-only file
            return self._make_chunks(
                [(blank_gaps, 0)], scope_path=(), kind=DeclaredKind.OTHER.value, signature=""
            )
        return self._donate(chunks, blank_gaps)

    # Tree walk

    def _live_children(self, ids: Sequence[int]) -> List[int]:
        return [node_id for node_id in ids if node_id not in self.metadata.consumed]

    def _extent(self, node_id: int) -> Segment:
        return self.metadata[node_id].extent_start, self.tree[node_id].boundary.end

    def _atomic_end(self, node_id: int) -> int:
        boundary = self.tree[node_id].boundary
        if boundary.kind == DeclaredKind.COMMENT:
            return boundary.start
        if boundary.body_start is not None:
            return boundary.body_start + 1
        return boundary.end

    def _emit(self, node_id: int) -> List[Chunk]:
        node = self.tree[node_id]
        meta = self.metadata[node_id]
        boundary = node.boundary
        children = self._live_children(node.children)

        own = subtract(self._extent(node_id), [self._extent(c) for c in children])
        pieces = self._split(
            own,
            atomic_end=self._atomic_end(node_id),
            list_mode=boundary.kind == DeclaredKind.ENUM,
        )
        chunks = self._make_chunks(
            pieces,
            scope_path=meta.scope_path,
            kind=boundary.kind.value,
            signature=meta.signature,
            leading_comment=meta.leading_comment,
            trailing_comment=meta.trailing_comment,
            truncated=boundary.truncated,
        )
        if children:
            chunks.extend(self._merge_siblings([self._emit(c) for c in children]))
        return chunks

    def _make_chunks(
        self,
        pieces: Sequence[Piece],
        scope_path: Tuple[str, ...],
        kind: str,
        signature: str,
        leading_comment: Optional[str] = None,
        trailing_comment: Optional[str] = None,
        truncated: bool = False,
    ) -> List[Chunk]:
        split = len(pieces) > 1
        last = len(pieces) - 1
        chunks = []
        for index, (segments, size) in enumerate(pieces):
            chunks.append(
                Chunk(
                    start=segments[0][0],
                    end=segments[-1][1],
                    segments=tuple(segments),
                    scope_path=scope_path,
                    kind=kind,
                    signature_text=signature,
                    leading_comment=leading_comment if index == 0 else None,
                    trailing_comment=trailing_comment if index == last else None,
                    size=size,
                    sequence_index=index if split else None,
                    truncated=truncated,
                    oversized=size > self.max_size,
                )
            )
        return chunks

    # Splitting

    def _split(self, segments: Sequence[Segment], atomic_end: int, list_mode: bool) -> List[Piece]:
        """Greedily pack statement-level units into pieces within budget."""
        segments = coalesce(segments)
        total = self.meter.measure(segments)
        if total <= self.max_size:
            return [(segments, total)]

        pieces: List[List[Segment]] = []
        current: List[Segment] = []
        for unit in self._units(segments, atomic_end, list_mode):
            if current:
                if self.meter.measure(current + [unit]) <= self.max_size:
                    current.append(unit)
                    continue
                pieces.append(current)
            current = [unit]
        if current:
            pieces.append(current)

        # Whitespace-only pieces join their neighbour
        folded: List[List[Segment]] = []
        carry: List[Segment] = []
        for piece in pieces:
            if not self.meter.has_content(piece):
                if folded:
                    folded[-1].extend(piece)
                else:
                    carry.extend(piece)
                continue
            folded.append(carry + piece)
            carry = []
        if carry:
            folded.append(carry)

        return [(coalesce(piece), self.meter.measure(piece)) for piece in folded]

    def _cuts_after(self, index: int, last: int, list_mode: bool) -> bool:
        token = self.stream[index]
        if token.kind == TokenKind.COMMENT:
            following = self.stream[index + 1] if index + 1 < last else None
            return following is None or (
                following.kind == TokenKind.WHITESPACE and "\n" in following.text
            )
        if token.kind != TokenKind.PUNCT:
            return False
        if token.text in self.table.statement_terminators:
            return True
        return list_mode and token.text == self.table.list_separator

    def _units(
        self, segments: Sequence[Segment], atomic_end: int, list_mode: bool
    ) -> List[Segment]:
        """Smallest safe pieces: statements, plus trailing whitespace."""
        units: List[Segment] = []
        for seg_start, seg_end in segments:
            first, last = self.meter.token_range((seg_start, seg_end))
            cut_start = seg_start
            depth = 0
            i = first
            while i < last:
                token = self.stream[i]
                if token.kind == TokenKind.PUNCT:
                    if token.text in ("(", "["):
                        depth += 1
                    elif token.text in (")", "]"):
                        depth = max(0, depth - 1)
                if (
                    depth == 0
                    and token.end >= atomic_end
                    and self._cuts_after(i, last, list_mode)
                ):
                    j = i + 1
                    while j < last and self.stream[j].kind == TokenKind.WHITESPACE:
                        j += 1
                    cut = self.stream[j - 1].end
                    if cut_start < cut < seg_end:
                        units.append((cut_start, cut))
                        cut_start = cut
                    i = j
                    continue
                i += 1
            if cut_start < seg_end:
                units.append((cut_start, seg_end))
        return units

    # Merging

    def _mergeable(self, chunk: Chunk) -> bool:
        return (
            chunk.sequence_index is None
            and not chunk.truncated
            and not chunk.oversized
        )

    def _can_merge(self, left: Chunk, right: Chunk) -> bool:
        if self.min_size <= 0:
            return False
        if not self.merge_across_kinds and left.kind != right.kind:
            return False
        if self.stream.text(left.end, right.start).strip():
            return False
        return self.meter.measure(left.segments + right.segments) < self.min_size

    def _merge(self, left: Chunk, right: Chunk) -> Chunk:
        segments = coalesce(left.segments + right.segments)
        kind = left.kind
        if kind == DeclaredKind.COMMENT.value:
            kind = right.kind
        return left._replace(
            start=segments[0][0],
            end=segments[-1][1],
            segments=tuple(segments),
            scope_path=_common_prefix(left.scope_path, right.scope_path),
            kind=kind,
            signature_text=left.signature_text or right.signature_text,
            trailing_comment=right.trailing_comment,
            size=self.meter.measure(segments),
            merged_count=left.merged_count + right.merged_count,
        )

    def _merge_siblings(self, groups: Sequence[List[Chunk]]) -> List[Chunk]:
        """Merge runs of small single-chunk siblings left to right."""
        merged: List[Chunk] = []
        current: Optional[Chunk] = None
        for group in groups:
            if len(group) == 1 and self._mergeable(group[0]):
                chunk = group[0]
                if current is not None and self._can_merge(current, chunk):
                    current = self._merge(current, chunk)
                    continue
                if current is not None:
                    merged.append(current)
                current = chunk
                continue
            if current is not None:
                merged.append(current)
                current = None
            merged.extend(group)
        if current is not None:
            merged.append(current)
        return merged

    # Root trivia

    def _donate(self, chunks: List[Chunk], blank_gaps: Sequence[Segment]) -> List[Chunk]:
        """Attach whitespace between top-level chunks to a neighbouring chunk."""
        ends: Dict[int, int] = {}
        starts: Dict[int, int] = {}
        for position, chunk in enumerate(chunks):
            for start, end in chunk.segments:
                starts[start] = position
                ends[end] = position

        for gap_start, gap_end in blank_gaps:
            position = ends.get(gap_start, starts.get(gap_end))
            if position is None:
                chunks.extend(
                    self._make_chunks(
                        [([(gap_start, gap_end)], 0)],
                        scope_path=(),
                        kind=DeclaredKind.OTHER.value,
                        signature="",
                    )
                )
                continue
            chunk = chunks[position]
            segments = coalesce(chunk.segments + ((gap_start, gap_end),))
            chunks[position] = chunk._replace(
                start=segments[0][0], end=segments[-1][1], segments=tuple(segments)
            )
            ends[gap_end] = position
            starts[gap_start] = position
        return chunks
