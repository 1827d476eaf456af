"""Utilities for timestamp conversion and reading embedded metadata back.

Archive timestamps are epoch seconds. They are held as naive datetimes that
represent the UTC instant, so conversions here never consult the local
timezone. `read_embedded_metadata` uses Pillow to read an output photo the way
a photo library would.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from loguru import logger

from core.exif.block import Tag, parse_exif_datetime


def from_epoch_seconds(value: int) -> datetime:
    """Convert epoch seconds to a naive datetime holding the UTC instant."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def to_epoch_seconds(value: datetime) -> int:
    """Convert a naive UTC datetime back to epoch seconds."""
    return calendar.timegm(value.timetuple())


@dataclass(frozen=True)
class EmbeddedMetadata:
    """Caption and dates found in a photo's EXIF IFD0."""

    caption: str | None
    date_time: datetime | None
    date_time_original: datetime | None


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
    text = str(value)
    # Pillow decodes ASCII entries as latin-1
    try:
        return text.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return text


def _as_datetime(value: object) -> datetime | None:
    text = _as_text(value)
    if not text:
        return None
    try:
        return parse_exif_datetime(text)
    except ValueError:
        return None


def read_embedded_metadata(path: str | Path) -> EmbeddedMetadata | None:
    """Read caption and dates from the EXIF of `path` via Pillow.

    Returns None when the file cannot be opened as an image.
    """
    try:
        with Image.open(path) as im:
            data = im.getexif()
            caption = data.get(Tag.IMAGE_DESCRIPTION)
            if caption is None:
                caption = data.get(Tag.USER_COMMENT)
            return EmbeddedMetadata(
                caption=_as_text(caption),
                date_time=_as_datetime(data.get(Tag.DATE_TIME)),
                date_time_original=_as_datetime(data.get(Tag.DATE_TIME_ORIGINAL)),
            )
    except (OSError, UnidentifiedImageError, ValueError) as ex:
        logger.debug("EXIF read failed for {}: {}", path, ex)
        return None
