"""
Chunk output verification.

Re-checks a chunks.ndjson file against the sources it was produced from:
exact coverage, no overlaps, byte-for-byte reconstruction and budget
compliance.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .assurance import record_segments, is_budget_breach, size_stats
from .emitter import read_chunks_ndjson
from .engine import calculate_coverage


def _load_source(file_path: str, source_root: Optional[Path]) -> Optional[str]:
    candidate = Path(file_path)
    if source_root is not None and not candidate.is_absolute():
        candidate = source_root / candidate
    if not candidate.is_file():
        return None
    return candidate.read_text(encoding="utf-8")


def verify_chunks(
    chunks_file: str,
    max_size: Optional[int] = None,
    source_root: Optional[str] = None,
    out_dir: str = "var/chunk_verify",
) -> Dict:
    """
    Verify emitted chunks for coverage, reconstruction and size compliance.

    Args:
        chunks_file: Path to a chunks.ndjson file
        max_size: Budget to check sizes against (skipped when None)
        source_root: Directory relative file paths are resolved against
        out_dir: Output directory for reports

    Returns:
        Verification report dictionary
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    verify_dir = Path(out_dir) / f"{timestamp}_{uuid.uuid4().hex[:4]}"
    verify_dir.mkdir(parents=True, exist_ok=True)

    records = read_chunks_ndjson(Path(chunks_file))
    root = Path(source_root) if source_root else None

    by_file: Dict[str, List[Dict]] = {}
    for record in records:
        by_file.setdefault(record.get("file_path", ""), []).append(record)

    gaps_by_file: List[Dict] = []
    overlaps_by_file: List[Dict] = []
    mismatches: List[Dict] = []
    missing_sources: List[str] = []
    breaches: List[Dict] = []
    coverage_percentages = []

    for file_path, file_records in by_file.items():
        source = _load_source(file_path, root)
        if source is None:
            missing_sources.append(file_path)

        segments = [segment for record in file_records for segment in record_segments(record)]
        length = (
            len(source) if source is not None else max((end for _, end in segments), default=0)
        )
        coverage_pct, gaps, overlaps = calculate_coverage(segments, length)
        coverage_percentages.append(coverage_pct)
        if gaps:
            gaps_by_file.append(
                {"file_path": file_path, "coverage_pct": coverage_pct, "gaps": gaps[:10]}
            )
        if overlaps:
            overlaps_by_file.append({"file_path": file_path, "overlaps": overlaps[:10]})

        if source is not None:
            for record in file_records:
                if "text" not in record:
                    continue
                expected = "".join(source[start:end] for start, end in record_segments(record))
                if record["text"] != expected:
                    mismatches.append(
                        {"chunk_id": record.get("chunk_id", ""), "file_path": file_path}
                    )

        if max_size is not None:
            for record in file_records:
                if is_budget_breach(record, max_size):
                    breaches.append(
                        {"chunk_id": record.get("chunk_id", ""), "size": record.get("size", 0)}
                    )

    sizes = [record.get("size", 0) for record in records]
    stats = {
        "total_chunks": len(records),
        "total_files": len(by_file),
        "size_stats": size_stats(sizes),
        "coverage_stats": {
            "avg_coverage_pct": (
                sum(coverage_percentages) / len(coverage_percentages)
                if coverage_percentages
                else 100.0
            ),
            "min_coverage_pct": min(coverage_percentages) if coverage_percentages else 100.0,
            "files_with_gaps": len(gaps_by_file),
            "files_with_overlaps": len(overlaps_by_file),
        },
    }

    # Write detailed reports
    for name, rows in (
        ("gaps.json", gaps_by_file),
        ("overlaps.json", overlaps_by_file),
        ("mismatches.json", mismatches),
        ("breaches.json", breaches),
    ):
        if rows:
            with open(verify_dir / name, "w") as f:
                json.dump(rows, f, indent=2)

    report = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "parameters": {
            "chunks_file": str(chunks_file),
            "max_size": max_size,
            "source_root": source_root,
        },
        "statistics": stats,
        "violations": {
            "files_with_gaps": len(gaps_by_file),
            "files_with_overlaps": len(overlaps_by_file),
            "text_mismatches": len(mismatches),
            "budget_breaches": len(breaches),
        },
        "missing_sources": missing_sources,
        "status": (
            "PASS"
            if not gaps_by_file and not overlaps_by_file and not mismatches and not breaches
            else "FAIL"
        ),
        "verify_dir": str(verify_dir),
    }

    with open(verify_dir / "report.json", "w") as f:
        json.dump(report, f, indent=2)

    md_lines = [
        "# Chunk Verification Report",
        "",
        f"**Generated:** {report['timestamp']}",
        f"**Chunks File:** {chunks_file}",
        f"**Total Chunks:** {stats['total_chunks']}",
        f"**Total Files:** {stats['total_files']}",
        f"**Max Size:** {max_size if max_size is not None else 'not checked'}",
        "",
        "## Size Statistics",
        "",
        f"- **Min:** {stats['size_stats']['min']}",
        f"- **Median:** {stats['size_stats']['median']}",
        f"- **95th percentile:** {stats['size_stats']['p95']}",
        f"- **Max:** {stats['size_stats']['max']}",
        "",
        "## Coverage",
        "",
        f"- **Average Coverage:** {stats['coverage_stats']['avg_coverage_pct']:.1f}%",
        f"- **Minimum Coverage:** {stats['coverage_stats']['min_coverage_pct']:.1f}%",
        f"- **Files with Gaps:** {len(gaps_by_file)}",
        f"- **Files with Overlaps:** {len(overlaps_by_file)}",
        "",
        "## Violations",
        "",
        f"- **Text Mismatches:** {len(mismatches)}",
        f"- **Budget Breaches:** {len(breaches)}",
        f"- **Sources Not Found:** {len(missing_sources)}",
        "",
        f"**Status:** {report['status']}",
    ]
    with open(verify_dir / "report.md", "w") as f:
        f.write("\n".join(md_lines) + "\n")

    return report
