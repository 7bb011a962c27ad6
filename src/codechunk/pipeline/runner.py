"""
Multi-file chunking runner.

Files are independent: each worker owns its file's token stream, boundaries
and tree, and only reads the shared configuration and language tables.
Results are reported in submission order, so output never depends on which
worker finishes first.
"""

import concurrent.futures
import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..chunking.assurance import build_chunk_assurance
from ..chunking.config import ChunkingConfig
from ..chunking.emitter import chunk_to_record, write_chunks_ndjson
from ..chunking.engine import chunk_source, resolve_language
from ..chunking.errors import ChunkingCancelled, ChunkingError
from ..chunking.languages import LanguageTable, get_language, language_for_path
from ..core.logging import log
from ..core.models import FileResult


def discover_files(paths: Sequence[str], config: ChunkingConfig) -> List[Path]:
    """
    Expand input paths into the files to chunk.

    Directories are walked recursively in sorted order; with ``auto`` language
    only files with a known extension are picked up from directories. Files
    named explicitly are always kept, so an unknown extension fails fast when
    languages are resolved.
    """
    files: List[Path] = []
    seen = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted(p for p in path.rglob("*") if p.is_file())
            if config.language == "auto":
                candidates = [p for p in candidates if _has_known_extension(p)]
        else:
            candidates = [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                files.append(candidate)
    return files


def _has_known_extension(path: Path) -> bool:
    try:
        language_for_path(str(path))
    except ChunkingError:
        return False
    return True


def resolve_languages(
    files: Sequence[Path], config: ChunkingConfig
) -> List[Tuple[Path, LanguageTable]]:
    """Pick every file's keyword table up front; raises before any file is chunked."""
    return [(path, resolve_language(config, str(path))) for path in files]


def chunk_file(
    path: Path,
    config: ChunkingConfig,
    language: Optional[LanguageTable] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    display_path: Optional[str] = None,
) -> FileResult:
    """Chunk one file, turning per-file failures into a ``FileResult`` diagnostic."""
    if language is None:
        language = resolve_language(config, str(path))
    file_path = display_path or str(path)
    started = time.perf_counter()
    try:
        source = path.read_text(encoding="utf-8")
        chunks = chunk_source(
            source,
            config,
            file_path=file_path,
            language=language,
            should_cancel=should_cancel,
        )
    except ChunkingCancelled as e:
        log.warning("chunk.file_cancelled", file_path=file_path, reason=str(e))
        return FileResult(
            file_path=file_path,
            language=language.name,
            status="cancelled",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
    except (ChunkingError, OSError, UnicodeDecodeError) as e:
        log.error(
            "chunk.file_failed",
            file_path=file_path,
            error_type=type(e).__name__,
            error=str(e),
        )
        return FileResult(
            file_path=file_path,
            language=language.name,
            status="failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    return FileResult(
        file_path=file_path,
        language=language.name,
        chunks=chunks,
        chunk_count=len(chunks),
        truncated_count=sum(1 for chunk in chunks if chunk.truncated),
        oversized_count=sum(1 for chunk in chunks if chunk.oversized),
        source_length=len(source),
        source=source,
        duration_ms=int((time.perf_counter() - started) * 1000),
    )


def run_chunking(
    paths: Sequence[str],
    config: ChunkingConfig,
    workers: int = 4,
    file_timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[FileResult]:
    """
    Chunk many files concurrently.

    Args:
        paths: Files and/or directories to chunk
        config: Shared, read-only chunking configuration
        workers: Maximum concurrent files
        file_timeout: Seconds after which a file is abandoned at the next
            stage boundary
        cancel_event: When set, files still in progress are abandoned

    Returns:
        One FileResult per file, in discovery order

    Raises:
        UnsupportedLanguageError: if any file's language cannot be resolved
    """
    files = discover_files(paths, config)
    plan = resolve_languages(files, config)
    log.info("chunk.run.start", files=len(plan), workers=workers, language=config.language)

    def process(path: Path, table: LanguageTable) -> FileResult:
        deadline = time.monotonic() + file_timeout if file_timeout else None

        def should_cancel() -> bool:
            if cancel_event is not None and cancel_event.is_set():
                return True
            return deadline is not None and time.monotonic() > deadline

        return chunk_file(path, config, language=table, should_cancel=should_cancel)

    results: List[Optional[FileResult]] = [None] * len(plan)
    completed = 0
    failed = 0

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        future_to_index = {
            executor.submit(process, path, table): index
            for index, (path, table) in enumerate(plan)
        }

        for future in concurrent.futures.as_completed(future_to_index):
            index = future_to_index[future]
            result = future.result()
            results[index] = result
            if result.ok:
                completed += 1
            else:
                failed += 1

            total_processed = completed + failed
            if total_processed % 50 == 0 or total_processed == len(plan):
                log.info(
                    "chunk.run.progress",
                    processed=total_processed,
                    total=len(plan),
                    ok=completed,
                    failed=failed,
                )

    log.info("chunk.run.end", files=len(plan), ok=completed, failed=failed)
    return [result for result in results if result is not None]


def write_run_outputs(
    results: Sequence[FileResult],
    config: ChunkingConfig,
    out_dir: Path,
    include_text: bool = True,
) -> Dict:
    """
    Write chunks.ndjson, failures.ndjson and chunk_assurance.json for a run.

    Failed files contribute no chunks at all.

    Returns:
        The assurance report, with artifact paths added
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    records = []
    file_lengths: Dict[str, int] = {}
    failures = []
    for result in results:
        if not result.ok:
            failures.append(
                {
                    "file_path": result.file_path,
                    "status": result.status,
                    "error_type": result.error_type,
                    "error": result.error,
                }
            )
            continue
        file_lengths[result.file_path] = result.source_length
        source = result.source if include_text else None
        separator = get_language(result.language).scope_separator if result.language else "::"
        for chunk in result.chunks:
            records.append(chunk_to_record(chunk, source, separator))

    chunks_file = out_dir / "chunks.ndjson"
    write_chunks_ndjson(records, chunks_file)

    failures_file = out_dir / "failures.ndjson"
    if failures:
        with open(failures_file, "w") as f:
            for failure in failures:
                f.write(json.dumps(failure) + "\n")

    assurance = build_chunk_assurance(records, config, failures, file_lengths)
    assurance.update(
        {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fileCount": len(results),
            "chunkCount": len(records),
            "chunkConfig": config.model_dump(mode="json"),
            "artifacts": {
                "chunks_file": str(chunks_file),
                "failures_file": str(failures_file) if failures else None,
            },
        }
    )

    assurance_file = out_dir / "chunk_assurance.json"
    with open(assurance_file, "w") as f:
        json.dump(assurance, f, indent=2)

    log.info(
        "chunk.assurance",
        files=len(results),
        chunks=len(records),
        failed=len(failures),
        status=assurance["status"],
        assurance_file=str(assurance_file),
    )
    return assurance
