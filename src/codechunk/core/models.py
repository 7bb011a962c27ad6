from typing import Any

from pydantic import BaseModel


class FileResult(BaseModel):
    """Outcome of chunking one file."""

    file_path: str
    language: str | None = None
    status: str = "ok"  # ok | failed | cancelled
    chunks: list[Any] = []  # Chunk tuples, in source order
    chunk_count: int = 0
    truncated_count: int = 0
    oversized_count: int = 0
    error: str | None = None
    error_type: str | None = None
    source_length: int = 0
    source: str | None = None  # text the chunks were cut from
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"
