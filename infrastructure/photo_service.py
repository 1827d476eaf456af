"""Photo output: embed an EXIF block into a JPEG copy.

The source is read completely and rewritten in memory; the destination is
only opened once the new bytes exist, so a malformed source never leaves a
partial output file behind. The bytes go to a sibling temporary file that is
renamed over the destination, so a failed write leaves nothing either.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from core.errors import ArchiveError, ArchiveIOError
from core.exif.jpeg import JpegContainer
from core.services.interfaces import IPhotoWriter


class PhotoService(IPhotoWriter):
    """Writes JPEGs whose EXIF segment is replaced by a given block."""

    def rewrite(self, src: Path, block: bytes) -> bytes:
        """Return the bytes of `src` with `block` as its only EXIF segment."""
        try:
            data = Path(src).read_bytes()
        except OSError as ex:
            raise ArchiveIOError(f"failed to open: {ex}", src) from ex
        try:
            jpeg = JpegContainer.parse(data)
            jpeg.set_exif(block)
        except ArchiveError as ex:
            raise ex.with_path(src)
        return jpeg.to_bytes()

    def embed(self, src: Path, dst: Path, block: bytes, dry_run: bool = False) -> bytes:
        """Rewrite `src` and write the result to `dst` unless `dry_run`."""
        output = self.rewrite(src, block)
        if dry_run:
            logger.debug("Dry run: would write {} ({} bytes)", dst, len(output))
            return output
        logger.trace("Outputting {}", dst)
        dst = Path(dst)
        tmp = dst.with_name(f".{dst.name}.partial")
        try:
            tmp.write_bytes(output)
            tmp.replace(dst)
        except OSError as ex:
            tmp.unlink(missing_ok=True)
            raise ArchiveIOError(f"failed to write: {ex}", dst) from ex
        return output
