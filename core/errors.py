"""Error types raised while converting an archive.

Every error carries the path of the file being processed when one is known,
so callers can report failures without re-deriving context.
"""

from __future__ import annotations

from pathlib import Path


class ArchiveError(Exception):
    """Base class for all conversion errors."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    def with_path(self, path: str | Path) -> ArchiveError:
        """Return this error with `path` attached if none was set yet."""
        if self.path is None:
            self.path = Path(path)
        return self

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"


class ArchiveIOError(ArchiveError, OSError):
    """Opening, creating, copying or timestamping a file failed."""


class ParseError(ArchiveError, ValueError):
    """Malformed JSON or malformed container bytes."""


class EncodeError(ArchiveError, ValueError):
    """A metadata value does not fit the binary format."""


class SchemaError(ArchiveError, KeyError):
    """A required JSON key is absent."""

    # KeyError.__str__ would quote the message
    __str__ = ArchiveError.__str__
