"""
Codechunk Chunking Package

Hierarchical, language-aware chunking of source files: boundaries follow
declaration nesting, every chunk carries its scope path, signature and
leading comment, and chunk segments exactly cover the file.
"""

from .assurance import build_chunk_assurance
from .config import ChunkingConfig
from .engine import calculate_coverage, chunk_source, reconstruct, resolve_language
from .errors import (
    ChunkingCancelled,
    ChunkingError,
    ChunkRangeError,
    MalformedNestingError,
    TokenStreamError,
    UnsupportedLanguageError,
)
from .languages import get_language, language_for_path, supported_languages
from .sizing import SizeUnit
from .types import Boundary, Chunk, DeclaredKind, Token, TokenKind

__all__ = [
    "Boundary",
    "Chunk",
    "ChunkingCancelled",
    "ChunkingConfig",
    "ChunkingError",
    "ChunkRangeError",
    "DeclaredKind",
    "MalformedNestingError",
    "SizeUnit",
    "Token",
    "TokenKind",
    "TokenStreamError",
    "UnsupportedLanguageError",
    "build_chunk_assurance",
    "calculate_coverage",
    "chunk_source",
    "get_language",
    "language_for_path",
    "reconstruct",
    "resolve_language",
    "supported_languages",
]
