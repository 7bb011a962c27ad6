from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Dict, Any
from pathlib import Path

from ..chunking.config import ChunkingConfig


class Settings(BaseSettings):
    # Chunking budget
    CHUNK_MAX_SIZE: int = 400  # Maximum chunk size in CHUNK_SIZE_UNIT
    CHUNK_MIN_SIZE: int = 0  # Merge small siblings below this size (0 disables)
    CHUNK_SIZE_UNIT: str = "tokens"  # tokens|lines|chars|bpe
    CHUNK_LANGUAGE: str = "auto"  # Language name or "auto" (by file extension)
    CHUNK_MERGE_ACROSS_KINDS: bool = True  # Allow merging e.g. a comment with a function
    CHUNK_ANONYMOUS_PLACEHOLDER: str = "(anonymous)"
    CHUNK_BPE_ENCODING: str = "cl100k_base"  # tiktoken encoding for CHUNK_SIZE_UNIT=bpe

    # Processing
    CHUNK_WORKERS: int = 4  # Files chunked concurrently

    # Workspace paths
    CODECHUNK_WORKDIR: str = "var"  # Tool-managed artifacts

    # Observability & UI
    LOG_FORMAT: str = "auto"  # json|plain|auto
    NO_COLOR: bool = False  # Disable colored output

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @classmethod
    def load_config(cls, config_file: Optional[str] = None) -> "Settings":
        """Load settings with config file -> env -> CLI precedence."""
        config_data: Dict[str, Any] = {}

        # Find config file
        if config_file:
            config_path: Optional[Path] = Path(config_file)
        else:
            # Auto-discover .codechunk.{yaml,yml,toml}
            for ext in ["yaml", "yml", "toml"]:
                config_path = Path(f".codechunk.{ext}")
                if config_path.exists():
                    break
            else:
                config_path = None

        # Load config file if found
        if config_path and config_path.exists():
            if config_path.suffix in [".yaml", ".yml"]:
                import yaml  # type: ignore[import-untyped]

                with open(config_path) as f:
                    config_data = yaml.safe_load(f) or {}
            elif config_path.suffix == ".toml":
                import tomllib

                with open(config_path, "rb") as f:
                    config_data = tomllib.load(f)

        # Config file values are defaults; environment variables override them
        env_settings = cls()
        merged = {key.upper(): value for key, value in config_data.items()}
        merged.update(
            {
                key: value
                for key, value in env_settings.model_dump().items()
                if key in env_settings.model_fields_set
            }
        )
        return cls.model_validate(merged)

    def chunking_config(self, **overrides: Any) -> ChunkingConfig:
        """Build the immutable per-run chunking configuration."""
        values: Dict[str, Any] = {
            "max_chunk_size": self.CHUNK_MAX_SIZE,
            "min_chunk_size": self.CHUNK_MIN_SIZE,
            "language": self.CHUNK_LANGUAGE,
            "size_unit": self.CHUNK_SIZE_UNIT,
            "merge_across_kinds": self.CHUNK_MERGE_ACROSS_KINDS,
            "anonymous_placeholder": self.CHUNK_ANONYMOUS_PLACEHOLDER,
            "bpe_encoding": self.CHUNK_BPE_ENCODING,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ChunkingConfig(**values)


# Default settings - will be replaced by load_config() during CLI startup
SETTINGS = Settings()
