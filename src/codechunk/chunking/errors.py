"""Errors raised by the chunking pipeline."""

from typing import Sequence, Tuple


class ChunkingError(Exception):
    """Base class for errors that abort chunking of a file."""

    pass


class UnsupportedLanguageError(ChunkingError, ValueError):
    """Raised at configuration time for a language without a keyword table."""

    def __init__(self, language: str, supported: Sequence[str] = ()):
        self.language = language
        self.supported = tuple(supported)
        message = f"unsupported language: {language!r}"
        if self.supported:
            message += f" (supported: {', '.join(self.supported)})"
        super().__init__(message)


class TokenStreamError(ChunkingError):
    """Raised when a token stream is not gapless or disagrees with the source."""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(f"{message} at offset {offset}")


class MalformedNestingError(ChunkingError):
    """Raised when two boundaries partially overlap."""

    def __init__(self, first: Tuple[int, int], second: Tuple[int, int]):
        self.first = first
        self.second = second
        super().__init__(
            f"boundaries [{first[0]}, {first[1]}) and [{second[0]}, {second[1]}) "
            "partially overlap"
        )


class ChunkRangeError(ChunkingError):
    """Raised when an emitted chunk references text outside the file."""

    pass


class ChunkingCancelled(ChunkingError):
    """Raised between stages when the caller abandons a file."""

    pass
