"""Video output: byte-for-byte copy with restored filesystem timestamps."""

from __future__ import annotations

from datetime import datetime
import os
from pathlib import Path
import shutil

from loguru import logger

from core.errors import ArchiveIOError
from core.services.interfaces import IVideoRestorer
from infrastructure.utils import to_epoch_seconds


class VideoService(IVideoRestorer):
    """Copies videos and sets their access/modification times."""

    def restore(self, src: Path, dst: Path, timestamp: datetime, dry_run: bool = False) -> None:
        """Copy `src` to `dst`, then set both times to `timestamp`.

        A single attempt is made; any failure raises `ArchiveIOError`.
        """
        seconds = to_epoch_seconds(timestamp)
        if dry_run:
            logger.debug("Dry run: would copy {} -> {} (mtime {})", src, dst, seconds)
            return
        try:
            shutil.copyfile(src, dst)
        except OSError as ex:
            raise ArchiveIOError(f"failed to copy to {dst}: {ex}", src) from ex
        try:
            os.utime(dst, (seconds, seconds))
        except OSError as ex:
            raise ArchiveIOError(f"failed to set timestamps: {ex}", dst) from ex
        logger.trace("Restored {} with mtime {}", dst, seconds)
