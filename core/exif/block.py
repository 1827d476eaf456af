"""Minimal EXIF (TIFF-structured) metadata block encoder and decoder.

Only what the converter needs is supported: a single image file directory
holding ASCII entries. The encoded layout is

    byte-order mark ("MM" or "II"), 0x002A, offset of IFD0 (always 8)
    entry count (16 bit)
    12-byte entry records: tag, type (2 = ASCII), count, value or offset
    next-IFD offset (always 0)
    value area for entries longer than four bytes, word aligned

Counts include the terminating NUL. The encoder never truncates: values that
do not fit the 32-bit count/offset fields raise `EncodeError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
import struct

from core.errors import EncodeError, ParseError

EXIF_DATETIME_FMT = "%Y:%m:%d %H:%M:%S"

TIFF_MAGIC = 0x002A
TYPE_ASCII = 2
HEADER_SIZE = 8
ENTRY_SIZE = 12
INLINE_SIZE = 4
MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF

_BYTE_ORDERS = {"MM": ">", "II": "<"}


class Tag(IntEnum):
    """Tags written by the converter."""

    IMAGE_DESCRIPTION = 0x010E
    DATE_TIME = 0x0132
    DATE_TIME_ORIGINAL = 0x9003
    USER_COMMENT = 0x9286


class EncodingProfile(Enum):
    """Which tags carry the caption and the capture time."""

    IMAGE_DESCRIPTION = "image-description"
    IMAGE_DESCRIPTION_WITH_ORIGINAL = "image-description+original"
    USER_COMMENT = "user-comment"

    @property
    def caption_tag(self) -> Tag:
        if self is EncodingProfile.USER_COMMENT:
            return Tag.USER_COMMENT
        return Tag.IMAGE_DESCRIPTION

    @property
    def date_tags(self) -> tuple[Tag, ...]:
        if self is EncodingProfile.IMAGE_DESCRIPTION:
            return (Tag.DATE_TIME,)
        return (Tag.DATE_TIME, Tag.DATE_TIME_ORIGINAL)


@dataclass(frozen=True)
class ExifEntry:
    """A tag with its ASCII text value."""

    tag: int
    value: str

    def to_bytes(self) -> bytes:
        """Return the NUL-terminated value bytes."""
        if "\x00" in self.value:
            raise EncodeError(f"tag 0x{self.tag:04X} value contains a NUL character")
        # ASCII text is stored as-is; other text is written as UTF-8 bytes
        try:
            return self.value.encode("utf-8") + b"\x00"
        except UnicodeEncodeError as ex:
            raise EncodeError(f"tag 0x{self.tag:04X} value is not encodable: {ex}") from ex


@dataclass(frozen=True)
class ExifIfd:
    """One image file directory."""

    entries: tuple[ExifEntry, ...] = ()

    def get(self, tag: int) -> str | None:
        """Return the value stored under `tag`, if any."""
        for entry in self.entries:
            if entry.tag == tag:
                return entry.value
        return None


@dataclass(frozen=True)
class ExifBlock:
    """A metadata block: a sequence of directories (the converter uses one)."""

    ifds: tuple[ExifIfd, ...] = ()

    def get(self, tag: int) -> str | None:
        """Return the value of `tag` in the first directory, if any."""
        return self.ifds[0].get(tag) if self.ifds else None


def format_exif_datetime(value: datetime) -> str:
    """Format `value` as `YYYY:MM:DD HH:MM:SS` (no timezone suffix)."""
    return (
        f"{value.year:04d}:{value.month:02d}:{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def parse_exif_datetime(value: str) -> datetime:
    """Parse an EXIF `YYYY:MM:DD HH:MM:SS` string."""
    return datetime.strptime(value.strip(), EXIF_DATETIME_FMT)


def build_block(
    caption: str,
    timestamp: datetime,
    profile: EncodingProfile = EncodingProfile.IMAGE_DESCRIPTION,
) -> ExifBlock:
    """Build the single-directory block for one photo under `profile`."""
    stamp = format_exif_datetime(timestamp)
    values: dict[int, str] = {profile.caption_tag: caption}
    for tag in profile.date_tags:
        values[tag] = stamp
    # TIFF readers expect ascending tag order
    entries = tuple(ExifEntry(int(tag), values[tag]) for tag in sorted(values))
    return ExifBlock(ifds=(ExifIfd(entries),))


def encode_block(block: ExifBlock, byte_order: str = "MM") -> bytes:
    """Serialize `block` into a standalone TIFF-structured byte buffer."""
    prefix = _struct_prefix(byte_order, EncodeError)
    if len(block.ifds) != 1:
        raise EncodeError(f"expected exactly one directory, got {len(block.ifds)}")
    entries = block.ifds[0].entries
    if len(entries) > MAX_U16:
        raise EncodeError(f"too many entries: {len(entries)}")
    tags = [entry.tag for entry in entries]
    if len(set(tags)) != len(tags):
        raise EncodeError(f"duplicate tags in directory: {tags}")

    value_base = HEADER_SIZE + 2 + ENTRY_SIZE * len(entries) + 4
    records: list[bytes] = []
    values = bytearray()
    for entry in entries:
        if not 0 <= entry.tag <= MAX_U16:
            raise EncodeError(f"tag out of range: {entry.tag}")
        raw = entry.to_bytes()
        count = len(raw)
        if count > MAX_U32:
            raise EncodeError(f"tag 0x{entry.tag:04X} value too long ({count} bytes)")
        if count <= INLINE_SIZE:
            field = raw.ljust(INLINE_SIZE, b"\x00")
        else:
            offset = value_base + len(values)
            if offset + count > MAX_U32:
                raise EncodeError(f"tag 0x{entry.tag:04X} value offset overflows 32 bits")
            field = struct.pack(prefix + "I", offset)
            values += raw
            if len(values) % 2:
                values += b"\x00"
        records.append(struct.pack(prefix + "HHI", entry.tag, TYPE_ASCII, count) + field)

    header = byte_order.encode("ascii") + struct.pack(prefix + "HI", TIFF_MAGIC, HEADER_SIZE)
    directory = (
        struct.pack(prefix + "H", len(entries)) + b"".join(records) + struct.pack(prefix + "I", 0)
    )
    return header + directory + bytes(values)


def decode_block(data: bytes) -> ExifBlock:
    """Parse a TIFF-structured block, keeping only ASCII entries."""
    if len(data) < HEADER_SIZE:
        raise ParseError("metadata block shorter than its header")
    prefix = _struct_prefix(data[:2].decode("latin-1"), ParseError)
    magic, offset = struct.unpack_from(prefix + "HI", data, 2)
    if magic != TIFF_MAGIC:
        raise ParseError(f"bad TIFF magic 0x{magic:04X}")

    ifds: list[ExifIfd] = []
    visited: set[int] = set()
    while offset:
        if offset in visited:
            raise ParseError(f"directory loop at offset {offset}")
        visited.add(offset)
        if offset + 2 > len(data):
            raise ParseError(f"directory offset {offset} past end of block")
        (count,) = struct.unpack_from(prefix + "H", data, offset)
        end = offset + 2 + ENTRY_SIZE * count + 4
        if end > len(data):
            raise ParseError(f"directory at {offset} is truncated")
        entries: list[ExifEntry] = []
        for index in range(count):
            pos = offset + 2 + ENTRY_SIZE * index
            tag, kind, length = struct.unpack_from(prefix + "HHI", data, pos)
            if kind != TYPE_ASCII:
                continue
            if length <= INLINE_SIZE:
                raw = data[pos + 8 : pos + 8 + length]
            else:
                (value_offset,) = struct.unpack_from(prefix + "I", data, pos + 8)
                if value_offset + length > len(data):
                    raise ParseError(f"tag 0x{tag:04X} value runs past end of block")
                raw = data[value_offset : value_offset + length]
            text = raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
            entries.append(ExifEntry(tag, text))
        ifds.append(ExifIfd(tuple(entries)))
        (offset,) = struct.unpack_from(prefix + "I", data, end - 4)
    return ExifBlock(tuple(ifds))


def _struct_prefix(byte_order: str, error: type[Exception]) -> str:
    try:
        return _BYTE_ORDERS[byte_order]
    except KeyError:
        raise error(f"unknown byte order {byte_order!r}") from None
