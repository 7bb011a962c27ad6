"""Per-run chunking configuration."""

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .languages import get_language
from .sizing import SizeUnit


class ChunkingConfig(BaseModel):
    """Read-only run configuration shared by every worker."""

    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = 400
    min_chunk_size: int = 0
    language: str = "auto"  # language name, alias, or "auto" for extension lookup
    size_unit: SizeUnit = SizeUnit.TOKENS
    merge_across_kinds: bool = True
    anonymous_placeholder: str = "(anonymous)"
    bpe_encoding: str = "cl100k_base"

    @field_validator("max_chunk_size")
    @classmethod
    def _positive_max(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_chunk_size must be positive")
        return value

    @field_validator("min_chunk_size")
    @classmethod
    def _non_negative_min(cls, value: int) -> int:
        if value < 0:
            raise ValueError("min_chunk_size must not be negative")
        return value

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        if value.strip().lower() == "auto":
            return "auto"
        # Raises UnsupportedLanguageError (a ValueError) for unknown languages
        return get_language(value).name

    @model_validator(mode="after")
    def _min_below_max(self) -> "ChunkingConfig":
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError("min_chunk_size must not exceed max_chunk_size")
        return self


