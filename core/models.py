"""Core domain models for archive albums, items, comments and run options."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from core.exif.block import EncodingProfile

PHOTO_EXTENSIONS = frozenset({".jpg", ".jpeg"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov"})


@dataclass(frozen=True)
class Comment:
    """A single comment left on an item."""

    timestamp: datetime
    author: str
    text: str | None = None


@dataclass(frozen=True)
class Item:
    """A photo or video described by the archive.

    `timestamp` is a naive datetime holding the UTC instant of creation and
    `path` is already resolved against the archive root.
    """

    timestamp: datetime
    path: Path
    description: str | None = None
    comments: tuple[Comment, ...] = ()


@dataclass(frozen=True)
class Album:
    """A named, ordered collection of items."""

    name: str
    description: str | None = None
    items: tuple[Item, ...] = ()


class MediaKind(Enum):
    """How an item is routed by the dispatcher."""

    PHOTO = "photo"
    VIDEO = "video"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def classify(
        cls,
        path: Path,
        photo_extensions: frozenset[str] = PHOTO_EXTENSIONS,
        video_extensions: frozenset[str] = VIDEO_EXTENSIONS,
    ) -> MediaKind:
        """Classify `path` by its (case-insensitive) extension."""
        ext = path.suffix.lower()
        if ext in photo_extensions:
            return cls.PHOTO
        if ext in video_extensions:
            return cls.VIDEO
        return cls.UNRECOGNIZED


class ErrorPolicy(Enum):
    """What to do when processing a single item fails."""

    ABORT = "abort"
    SKIP_ITEM = "skip-item"


@dataclass(frozen=True)
class Capabilities:
    """Features this build can perform, independent of user choices."""

    photos: bool = True
    videos: bool = True
    # Captions are never written into video containers.
    video_captions: bool = False


@dataclass(frozen=True)
class RunOptions:
    """Immutable run-wide configuration passed into every component."""

    input_root: Path = Path(".")
    output_root: Path = Path("./out")
    dry_run: bool = False
    skip_photos: bool = False
    skip_videos: bool = False
    profile: EncodingProfile = EncodingProfile.IMAGE_DESCRIPTION
    byte_order: str = "MM"
    error_policy: ErrorPolicy = ErrorPolicy.ABORT
    verify: bool = False
    photo_extensions: frozenset[str] = PHOTO_EXTENSIONS
    video_extensions: frozenset[str] = VIDEO_EXTENSIONS
    capabilities: Capabilities = field(default_factory=Capabilities)

    @property
    def photos_enabled(self) -> bool:
        """True when photos should be processed."""
        return self.capabilities.photos and not self.skip_photos

    @property
    def videos_enabled(self) -> bool:
        """True when videos should be processed."""
        return self.capabilities.videos and not self.skip_videos

    @property
    def videos_dir(self) -> Path:
        """Directory that receives every restored video."""
        return self.output_root / "videos"

    def album_dir(self, album_name: str) -> Path:
        """Directory that receives the photos of `album_name`."""
        return self.output_root / safe_dir_name(album_name)

    def classify(self, path: Path) -> MediaKind:
        """Classify `path` using the configured extension sets."""
        return MediaKind.classify(path, self.photo_extensions, self.video_extensions)


def safe_dir_name(name: str) -> str:
    """Turn an album name into a single path component."""
    cleaned = name.replace("/", "_").replace("\\", "_").replace("\x00", "").strip()
    if cleaned in {"", ".", ".."}:
        return cleaned.replace(".", "_") or "_"
    return cleaned
