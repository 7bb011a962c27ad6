"""
Per-file chunking pipeline.

Adapter -> Scanner -> Hierarchy Builder -> Metadata Extractor -> Balancer
-> Emitter. Each stage consumes the previous stage's immutable output; the
tree and token stream are private to the call and discarded afterwards.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..core.logging import log
from .balancer import SizeBalancer
from .config import ChunkingConfig
from .emitter import chunk_text, emit_chunks
from .errors import ChunkingCancelled
from .hierarchy import build_tree
from .languages import LanguageTable, get_language, language_for_path
from .metadata import extract_metadata
from .scanner import scan_boundaries
from .sizing import SizeMeter
from .tokens import stream_for
from .types import Chunk

CancelCheck = Callable[[], bool]


def resolve_language(config: ChunkingConfig, file_path: str = "") -> LanguageTable:
    """Keyword table for a file: the configured language, or by extension for ``auto``."""
    if config.language == "auto":
        return language_for_path(file_path)
    return get_language(config.language)


def _checkpoint(should_cancel: Optional[CancelCheck], stage: str, file_path: str) -> None:
    if should_cancel is not None and should_cancel():
        raise ChunkingCancelled(f"chunking of {file_path or '<source>'} cancelled before {stage}")


def chunk_source(
    source: str,
    config: Optional[ChunkingConfig] = None,
    file_path: str = "",
    tokens: Optional[Iterable[Any]] = None,
    language: Optional[LanguageTable] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> List[Chunk]:
    """
    Chunk one file's source text.

    Args:
        source: Full file text
        config: Budget and language configuration (defaults apply if omitted)
        file_path: Path recorded on chunks; also used for ``auto`` language lookup
        tokens: Pre-lexed token stream; the reference lexer is used when omitted
        language: Explicit keyword table, overriding ``config.language``
        should_cancel: Polled between stages; returning True abandons the file

    Returns:
        Chunks in source order whose segments exactly cover ``source``

    Raises:
        UnsupportedLanguageError: if no keyword table matches
        TokenStreamError: if ``tokens`` is not a gapless cover of ``source``
        MalformedNestingError: if boundaries partially overlap
        ChunkingCancelled: if ``should_cancel`` asked to stop
    """
    config = config or ChunkingConfig()
    table = language or resolve_language(config, file_path)
    started = time.perf_counter()

    _checkpoint(should_cancel, "tokenize", file_path)
    stream = stream_for(source, table, tokens)

    _checkpoint(should_cancel, "scan", file_path)
    boundaries = scan_boundaries(stream, table)

    _checkpoint(should_cancel, "hierarchy", file_path)
    tree = build_tree(boundaries)

    _checkpoint(should_cancel, "metadata", file_path)
    metadata = extract_metadata(tree, stream, config.anonymous_placeholder)

    _checkpoint(should_cancel, "balance", file_path)
    meter = SizeMeter(stream, config.size_unit, config.bpe_encoding)
    balanced = SizeBalancer(
        tree,
        metadata,
        stream,
        meter,
        table,
        max_size=config.max_chunk_size,
        min_size=config.min_chunk_size,
        merge_across_kinds=config.merge_across_kinds,
    ).run()

    _checkpoint(should_cancel, "emit", file_path)
    chunks = emit_chunks(balanced, source, file_path)

    log.debug(
        "chunk.file_done",
        file_path=file_path,
        language=table.name,
        tokens=len(stream),
        boundaries=len(boundaries),
        tree_depth=tree.depth(),
        chunks=len(chunks),
        duration_ms=int((time.perf_counter() - started) * 1000),
    )
    return chunks


def reconstruct(chunks: Iterable[Chunk], source: str) -> str:
    """Rebuild file text from chunk segments, in offset order."""
    segments = sorted(segment for chunk in chunks for segment in chunk.segments)
    return "".join(source[start:end] for start, end in segments)


def calculate_coverage(
    segments: Iterable[Tuple[int, int]], original_text_length: int
) -> Tuple[float, List[Tuple[int, int]], List[Tuple[int, int]]]:
    """
    Calculate text coverage from chunk segments and identify gaps and overlaps.

    Args:
        segments: (start, end) ranges owned by chunks
        original_text_length: Length of the original file text

    Returns:
        Tuple of (coverage_percentage, gaps, overlaps) where gaps and overlaps
        are (start, end) tuples
    """
    if original_text_length == 0:
        return 100.0, [], []

    covered_ranges = sorted((start, end) for start, end in segments if start < end)
    if not covered_ranges:
        return 0.0, [(0, original_text_length)], []

    gaps: List[Tuple[int, int]] = []
    overlaps: List[Tuple[int, int]] = []
    covered_chars = 0
    cursor = 0
    for start, end in covered_ranges:
        if start > cursor:
            gaps.append((cursor, start))
        elif start < cursor:
            overlaps.append((start, min(cursor, end)))
        if end > cursor:
            covered_chars += end - max(start, cursor)
            cursor = end

    if cursor < original_text_length:
        gaps.append((cursor, original_text_length))

    coverage_pct = (min(covered_chars, original_text_length) / original_text_length) * 100
    return coverage_pct, gaps, overlaps


__all__ = [
    "calculate_coverage",
    "chunk_source",
    "chunk_text",
    "reconstruct",
    "resolve_language",
]
