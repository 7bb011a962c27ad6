"""
Chunk assurance and quality reporting.
"""

import statistics
from typing import Dict, List, Mapping, Optional, Sequence

from .config import ChunkingConfig
from .engine import calculate_coverage


def size_stats(values: Sequence[int]) -> Dict[str, int]:
    """Min/median/p95/max/total summary of chunk sizes."""
    return {
        "count": len(values),
        "min": min(values) if values else 0,
        "median": int(statistics.median(values)) if values else 0,
        "p95": (
            int(statistics.quantiles(values, n=20)[18])
            if len(values) > 20
            else (max(values) if values else 0)
        ),
        "max": max(values) if values else 0,
        "total": sum(values),
    }


def record_segments(record: Mapping) -> List[tuple]:
    segments = record.get("segments")
    if segments:
        return [tuple(segment) for segment in segments]
    return [(record.get("start_offset", 0), record.get("end_offset", 0))]


def is_budget_breach(record: Mapping, max_size: int) -> bool:
    """Over budget without an ``oversized`` or ``truncated`` excuse."""
    return (
        record.get("size", 0) > max_size
        and not record.get("oversized", False)
        and not record.get("truncated", False)
    )


def build_chunk_assurance(
    records: Sequence[Mapping],
    cfg: ChunkingConfig,
    failures: Sequence[Mapping] = (),
    file_lengths: Optional[Mapping[str, int]] = None,
) -> Dict:
    """
    Build the chunk assurance report for one run.

    Args:
        records: Emitted chunk records (as written to chunks.ndjson)
        cfg: Chunking configuration the run used
        failures: ``{"file_path", "error_type", "error"}`` entries for files
            that could not be chunked
        file_lengths: Source length per file, for coverage analysis

    Returns:
        Assurance report dictionary
    """
    sizes = [record.get("size", 0) for record in records]
    kinds: Dict[str, int] = {}
    flags = {"truncated": 0, "oversized": 0, "split": 0, "merged": 0}
    breaches = []

    by_file: Dict[str, List[Mapping]] = {}
    for record in records:
        by_file.setdefault(record.get("file_path", ""), []).append(record)

        kind = record.get("kind", "other")
        kinds[kind] = kinds.get(kind, 0) + 1

        if record.get("truncated"):
            flags["truncated"] += 1
        if record.get("oversized"):
            flags["oversized"] += 1
        if record.get("sequence_index") is not None:
            flags["split"] += 1
        if record.get("merged_count", 1) > 1:
            flags["merged"] += 1

        if is_budget_breach(record, cfg.max_chunk_size):
            breaches.append(
                {
                    "chunk_id": record.get("chunk_id", ""),
                    "size": record.get("size", 0),
                    "kind": kind,
                }
            )

    # Coverage per file
    files_with_gaps = 0
    files_with_overlaps = 0
    coverage_percentages = []
    gaps_examples: List[Dict] = []
    for file_path, file_records in by_file.items():
        segments = [segment for record in file_records for segment in record_segments(record)]
        if file_lengths and file_path in file_lengths:
            length = file_lengths[file_path]
        else:
            length = max((end for _, end in segments), default=0)

        coverage_pct, gaps, overlaps = calculate_coverage(segments, length)
        coverage_percentages.append(coverage_pct)
        if overlaps:
            files_with_overlaps += 1
        if gaps:
            files_with_gaps += 1
            if len(gaps_examples) < 10:
                gaps_examples.append(
                    {
                        "file_path": file_path,
                        "coverage_pct": coverage_pct,
                        "gaps": gaps[:5],
                        "gaps_count": len(gaps),
                    }
                )

    status = (
        "PASS"
        if not breaches and not failures and files_with_gaps == 0 and files_with_overlaps == 0
        else "FAIL"
    )

    return {
        "sizeCap": {
            "maxSize": cfg.max_chunk_size,
            "minSize": cfg.min_chunk_size,
            "unit": cfg.size_unit.value,
            "breaches": {"count": len(breaches), "examples": breaches[:10]},
        },
        "sizeStats": size_stats(sizes),
        "kinds": dict(sorted(kinds.items())),
        "flags": flags,
        "files": {
            "processed": len(by_file) + len(failures),
            "chunked": len(by_file),
            "failed": len(failures),
            "failures": list(failures)[:10],
        },
        "coverage": {
            "filesWithGaps": files_with_gaps,
            "filesWithOverlaps": files_with_overlaps,
            "avgCoveragePct": (
                statistics.mean(coverage_percentages) if coverage_percentages else 100.0
            ),
            "gapsExamples": gaps_examples,
        },
        "status": status,
    }
