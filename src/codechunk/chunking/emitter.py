"""
Chunk emission: ordering, identity and serialization.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import ChunkRangeError
from .types import Chunk


def emit_chunks(chunks: Iterable[Chunk], source: str, file_path: str = "") -> List[Chunk]:
    """
    Order chunks by source position and stamp their identity.

    Args:
        chunks: Balanced chunks for one file
        source: The file text
        file_path: Path recorded on every chunk and used in chunk ids

    Pieces of a split structure arrive consecutively, starting with
    ``sequence_index`` 0; each piece's ``structure_id`` is set to the chunk id
    of that first piece.

    Returns:
        Chunks in source order with ``ord``, ``file_path``, ``chunk_id`` and
        ``structure_id`` set

    Raises:
        ChunkRangeError: if a chunk refers to text outside the file
    """
    length = len(source)
    pending = list(chunks)

    heads: List[Optional[int]] = []
    head: Optional[int] = None
    for index, chunk in enumerate(pending):
        if chunk.sequence_index is None:
            heads.append(None)
            continue
        if chunk.sequence_index == 0:
            head = index
        heads.append(head)

    order = sorted(range(len(pending)), key=lambda i: (pending[i].start, pending[i].segments[0][1]))
    chunk_ids = {index: f"{file_path}:{ord_num:04d}" for ord_num, index in enumerate(order)}

    emitted = []
    for ord_num, index in enumerate(order):
        chunk = pending[index]
        for start, end in chunk.segments:
            if not 0 <= start <= end <= length:
                raise ChunkRangeError(
                    f"chunk range [{start}, {end}) outside file of length {length}"
                )
        head = heads[index]
        emitted.append(
            chunk._replace(
                file_path=file_path,
                ord=ord_num,
                chunk_id=chunk_ids[index],
                structure_id=chunk_ids[head] if head is not None else None,
            )
        )
    return emitted


def chunk_text(chunk: Chunk, source: str) -> str:
    """Source text owned by a chunk (its segments, concatenated)."""
    return "".join(source[start:end] for start, end in chunk.segments)


def chunk_to_record(
    chunk: Chunk, source: Optional[str] = None, scope_separator: str = "::"
) -> Dict[str, Any]:
    """Serializable record for one chunk; ``text`` is included when ``source`` is given."""
    record: Dict[str, Any] = {
        "chunk_id": chunk.chunk_id,
        "file_path": chunk.file_path,
        "ord": chunk.ord,
        "start_offset": chunk.start,
        "end_offset": chunk.end,
        "segments": [list(segment) for segment in chunk.segments],
        "scope_path": list(chunk.scope_path),
        "qualified_name": scope_separator.join(chunk.scope_path),
        "kind": chunk.kind,
        "signature_text": chunk.signature_text,
        "leading_comment": chunk.leading_comment,
        "trailing_comment": chunk.trailing_comment,
        "sequence_index": chunk.sequence_index,
        "structure_id": chunk.structure_id,
        "size": chunk.size,
        "truncated": chunk.truncated,
        "oversized": chunk.oversized,
        "merged_count": chunk.merged_count,
    }
    if source is not None:
        record["text"] = chunk_text(chunk, source)
    return record


def write_chunks_ndjson(records: Sequence[Dict[str, Any]], path: Path) -> int:
    """Write one JSON object per line; returns the number of records written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    return len(records)


def read_chunks_ndjson(path: Path) -> List[Dict[str, Any]]:
    records = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                records.append(json.loads(line))
    return records
