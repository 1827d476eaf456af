"""Core service interfaces and shared data structures.

This module defines the result dataclasses reported by the dispatcher and
the interfaces implemented by the infrastructure layer for photo and video
output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass
class RunSummary:
    """Outcome of a conversion run.

    Attributes:
        photos_written: Output paths of embedded photos (planned ones in dry-run).
        videos_restored: Output paths of copied videos (planned ones in dry-run).
        skipped: Source paths skipped because of an unrecognized type.
        failed: Tuples of (source path, reason) for items that failed and were
            skipped under the skip-item error policy.
    """

    photos_written: list[Path] = field(default_factory=list)
    videos_restored: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class IPhotoWriter:
    """Interface for writing a photo with an embedded metadata block."""

    def embed(self, src: Path, dst: Path, block: bytes, dry_run: bool = False) -> bytes:
        """Rewrite `src` with `block` and write it to `dst`; return the new bytes."""
        raise NotImplementedError


class IVideoRestorer:
    """Interface for copying a video and restoring its timestamps."""

    def restore(self, src: Path, dst: Path, timestamp: datetime, dry_run: bool = False) -> None:
        """Copy `src` to `dst` and set its access/modification times."""
        raise NotImplementedError
