import json
import time
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..chunking.errors import UnsupportedLanguageError
from ..chunking.languages import LANGUAGES, supported_languages
from ..core import config as core_config
from ..core.config import Settings
from ..core.logging import log, setup_logging

app = typer.Typer(add_completion=False, help="Codechunk CLI")


@app.callback()
def _init(
    ctx: typer.Context,
    log_format: str | None = typer.Option(None, "--log-format", help="json|plain|auto (default: LOG_FORMAT)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log per-file debug events"),
) -> None:
    ctx.obj = {"log_format": log_format, "verbose": verbose}
    _use_settings(ctx, None)


def _use_settings(ctx: typer.Context, config_file: str | None) -> Settings:
    """Load settings, install them as the process-wide SETTINGS and apply logging options."""
    settings = Settings.load_config(config_file)
    core_config.SETTINGS = settings
    options = ctx.obj or {}
    setup_logging(
        options.get("log_format") or settings.LOG_FORMAT,  # type: ignore[arg-type]
        level="debug" if options.get("verbose") else "info",
    )
    return settings


@app.command()
def version() -> None:
    from .. import __version__

    typer.echo(__version__)


@app.command()
def config(
    ctx: typer.Context,
    config_file: str | None = typer.Option(None, "--config", help="Config file (.codechunk.yaml auto-discovered)"),
) -> None:
    """Show resolved settings."""
    settings = _use_settings(ctx, config_file)
    for k, v in settings.model_dump().items():
        typer.echo(f"{k}={v}")


@app.command()
def languages() -> None:
    """List supported languages and the file extensions mapped to them."""
    console = Console(no_color=core_config.SETTINGS.NO_COLOR)
    table = Table(title="Supported languages")
    table.add_column("Language")
    table.add_column("Extensions")
    table.add_column("Declaration keywords")
    table.add_column("Scope separator")
    for name in supported_languages():
        language = LANGUAGES[name]
        table.add_row(
            name,
            " ".join(language.extensions),
            " ".join(sorted(language.declaration_keywords)),
            language.scope_separator,
        )
    console.print(table)


@app.command()
def chunk(
    ctx: typer.Context,
    paths: list[str] = typer.Argument(..., help="Source files and/or directories to chunk"),
    config_file: str | None = typer.Option(None, "--config", help="Config file (.codechunk.yaml auto-discovered)"),
    max_size: int | None = typer.Option(None, "--max-size", help="Maximum chunk size (default: CHUNK_MAX_SIZE)"),
    min_size: int | None = typer.Option(None, "--min-size", help="Merge small siblings below this size"),
    unit: str | None = typer.Option(None, "--unit", help="Size unit: tokens|lines|chars|bpe"),
    language: str | None = typer.Option(None, "--language", help="Language name, or 'auto' to use file extensions"),
    merge_across_kinds: bool | None = typer.Option(
        None,
        "--merge-across-kinds/--no-merge-across-kinds",
        help="Allow merging siblings of different kinds",
    ),
    workers: int | None = typer.Option(None, "--workers", help="Files chunked concurrently"),
    timeout: float | None = typer.Option(None, "--timeout", help="Abandon a file after this many seconds"),
    run_id: str | None = typer.Option(None, "--run-id", help="Run ID for var/runs/<run_id>/chunk (generated if omitted)"),
    out_dir: str | None = typer.Option(None, "--out-dir", help="Write artifacts here instead of the run directory"),
    include_text: bool = typer.Option(True, "--text/--no-text", help="Include chunk text in chunks.ndjson"),
    stdout: bool = typer.Option(False, "--stdout", help="Also print chunk records to stdout as NDJSON"),
) -> None:
    """
    Chunk source files into scope-aware, size-bounded pieces.

    Every file is split along its declaration structure (namespaces, classes,
    functions, ...); each chunk records its scope path, signature and leading
    comment. Chunk segments cover each file exactly.

    Example:
        codechunk chunk src/                        # Use defaults
        codechunk chunk lib.cpp --max-size 200      # Custom budget
        codechunk chunk src/ --unit lines --max-size 60 --min-size 10
    """
    from ..core.artifacts import new_run_id, phase_dir
    from ..pipeline.runner import run_chunking, write_run_outputs

    settings = _use_settings(ctx, config_file)
    try:
        cfg = settings.chunking_config(
            max_chunk_size=max_size,
            min_chunk_size=min_size,
            size_unit=unit,
            language=language,
            merge_across_kinds=merge_across_kinds,
        )
    except ValidationError as e:
        typer.echo(f"❌ Invalid chunking configuration: {e}", err=True)
        raise typer.Exit(2) from e

    start_time = time.time()
    try:
        results = run_chunking(
            paths,
            cfg,
            workers=workers or settings.CHUNK_WORKERS,
            file_timeout=timeout,
        )
    except UnsupportedLanguageError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(2) from e
    duration = time.time() - start_time

    if not results:
        typer.echo("❌ No source files found", err=True)
        raise typer.Exit(1)

    rid = run_id or new_run_id()
    chunk_dir = Path(out_dir) if out_dir else phase_dir(rid, "chunk")
    assurance = write_run_outputs(results, cfg, chunk_dir, include_text=include_text)

    if stdout:
        with open(chunk_dir / "chunks.ndjson") as f:
            for line in f:
                typer.echo(line.rstrip("\n"))

    size_stats = assurance["sizeStats"]
    files = assurance["files"]
    typer.echo(f"✅ Chunking complete in {duration:.1f}s", err=True)
    typer.echo(f"   Files: {files['chunked']} chunked, {files['failed']} failed", err=True)
    typer.echo(f"   Chunks: {assurance['chunkCount']}", err=True)
    typer.echo(
        f"   Size range: {size_stats['min']}-{size_stats['max']} {cfg.size_unit.value} "
        f"(median: {size_stats['median']})",
        err=True,
    )
    for failure in files["failures"]:
        typer.echo(f"   ❌ {failure['file_path']}: {failure['error']}", err=True)
    typer.echo(f"\n📁 Artifacts written to: {chunk_dir}", err=True)

    log.info("cli.chunk.done", run_id=rid, out=str(chunk_dir), status=assurance["status"])
    if files["failed"]:
        raise typer.Exit(1)


@app.command()
def verify(
    ctx: typer.Context,
    chunks_file: str = typer.Argument(..., help="Path to a chunks.ndjson file"),
    config_file: str | None = typer.Option(None, "--config", help="Config file (.codechunk.yaml auto-discovered)"),
    max_size: int | None = typer.Option(None, "--max-size", help="Budget to check chunk sizes against"),
    source_root: str | None = typer.Option(None, "--source-root", help="Directory relative file paths resolve against"),
    out_dir: str | None = typer.Option(None, "--out-dir", help="Report directory (default: var/chunk_verify)"),
) -> None:
    """
    Verify chunk output: exact coverage, no overlaps, byte-for-byte
    reconstruction and budget compliance.
    """
    from ..chunking.verify import verify_chunks
    from ..core import paths as workspace_paths

    _use_settings(ctx, config_file)

    if not Path(chunks_file).exists():
        typer.echo(f"❌ Chunks file not found: {chunks_file}", err=True)
        raise typer.Exit(1)

    report = verify_chunks(
        chunks_file,
        max_size=max_size,
        source_root=source_root,
        out_dir=out_dir or str(workspace_paths.verify_reports()),
    )

    violations = report["violations"]
    typer.echo(json.dumps({"status": report["status"], **violations}, indent=2))
    typer.echo(f"📁 Report written to: {report['verify_dir']}", err=True)
    if report["status"] != "PASS":
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
