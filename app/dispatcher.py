"""Per-item routing of archive items to the photo or video pipeline."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from loguru import logger

from core.errors import ArchiveError, ArchiveIOError
from core.exif.block import build_block, encode_block
from core.models import Album, ErrorPolicy, Item, MediaKind, RunOptions
from core.services.caption_service import caption_for
from core.services.interfaces import IPhotoWriter, IVideoRestorer, RunSummary
from infrastructure.photo_service import PhotoService
from infrastructure.utils import EmbeddedMetadata, read_embedded_metadata
from infrastructure.video_service import VideoService


class MediaDispatcher:
    """Routes each item by `MediaKind` and collects a `RunSummary`.

    Albums are processed one at a time and items in source order. Filesystem
    mutation is delegated to the photo writer and video restorer, which honor
    `RunOptions.dry_run`; directories are only created outside dry-run.
    """

    def __init__(
        self,
        options: RunOptions,
        photo_writer: IPhotoWriter | None = None,
        video_restorer: IVideoRestorer | None = None,
        metadata_reader: Callable[[Path], EmbeddedMetadata | None] = read_embedded_metadata,
    ) -> None:
        """Create a dispatcher.

        Args:
            options: Run-wide configuration.
            photo_writer: Photo output service (defaults to `PhotoService`).
            video_restorer: Video output service (defaults to `VideoService`).
            metadata_reader: Reads embedded metadata back when verifying.
        """
        self._options = options
        self._photos = photo_writer or PhotoService()
        self._videos = video_restorer or VideoService()
        self._read_metadata = metadata_reader
        self._created_dirs: set[Path] = set()
        self.summary = RunSummary()

    def run(self, albums: Iterable[Album], videos: Iterable[Item] = ()) -> RunSummary:
        """Process every album, then the video list."""
        logger.debug("Processing albums")
        for album in albums:
            self.process_album(album)
        self.process_videos(videos)
        logger.info(
            "Done: {} photos, {} videos, {} skipped, {} failed",
            len(self.summary.photos_written),
            len(self.summary.videos_restored),
            len(self.summary.skipped),
            len(self.summary.failed),
        )
        return self.summary

    def process_album(self, album: Album) -> None:
        """Create the album directory, then dispatch its items in order."""
        album_dir = self._options.album_dir(album.name)
        logger.info("Processing album {} ({} items)", album.name, len(album.items))
        self._ensure_dir(album_dir)
        for item in album.items:
            self.dispatch(item, album_dir)

    def process_videos(self, items: Iterable[Item]) -> None:
        """Dispatch items from the video list; photos there land in the videos dir."""
        for item in items:
            self.dispatch(item, self._options.videos_dir)

    def dispatch(self, item: Item, photo_dir: Path) -> None:
        """Route one item, applying the configured error policy."""
        kind = self._options.classify(item.path)
        if kind is MediaKind.UNRECOGNIZED:
            if item.path.suffix:
                logger.warning(
                    'Unrecognized file extension "{}"; skipping {}', item.path.suffix, item.path
                )
            else:
                logger.warning("Missing file extension; skipping {}", item.path)
            self.summary.skipped.append(item.path)
            return

        try:
            if kind is MediaKind.PHOTO:
                self.process_photo(item, photo_dir)
            else:
                self.process_video(item)
        except ArchiveError as ex:
            ex.with_path(item.path)
            if self._options.error_policy is ErrorPolicy.ABORT:
                raise
            logger.error("Failed to process {}: {}", item.path, ex)
            self.summary.failed.append((item.path, str(ex)))

    def process_photo(self, item: Item, album_dir: Path) -> None:
        """Combine the caption, encode the block and write the photo."""
        if not self._options.photos_enabled:
            logger.trace("Skipping photo {}", item.path)
            return

        caption = caption_for(item)
        block = build_block(caption, item.timestamp, self._options.profile)
        raw = encode_block(block, self._options.byte_order)
        logger.trace("Writing metadata for {}: {}", item.path, block)

        dst = album_dir / item.path.name
        self._ensure_dir(album_dir)
        self._photos.embed(item.path, dst, raw, dry_run=self._options.dry_run)
        self.summary.photos_written.append(dst)

        if self._options.verify and not self._options.dry_run:
            self._verify(dst, caption, item)

    def process_video(self, item: Item) -> None:
        """Copy the video and restore its timestamps."""
        if not self._options.videos_enabled:
            logger.trace("Skipping video {}", item.path)
            return
        if not self._options.capabilities.video_captions and (
            item.description or item.comments
        ):
            logger.debug("Captions are not embedded in videos; {} keeps only its time", item.path)

        videos_dir = self._options.videos_dir
        dst = videos_dir / item.path.name
        self._ensure_dir(videos_dir)
        self._videos.restore(item.path, dst, item.timestamp, dry_run=self._options.dry_run)
        self.summary.videos_restored.append(dst)

    def _ensure_dir(self, path: Path) -> None:
        if self._options.dry_run or path in self._created_dirs:
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise ArchiveIOError(f"failed to create directory: {ex}", path) from ex
        self._created_dirs.add(path)

    def _verify(self, dst: Path, caption: str, item: Item) -> None:
        meta = self._read_metadata(dst)
        if meta is None:
            logger.warning("Could not read back metadata of {}", dst)
        elif meta.caption != caption or meta.date_time != item.timestamp:
            logger.warning(
                "Embedded metadata of {} does not match: caption={!r} date={}",
                dst,
                meta.caption,
                meta.date_time,
            )
        else:
            logger.trace("Verified {}", dst)
