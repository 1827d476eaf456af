"""JPEG segment parser/writer used to swap the EXIF APP1 segment.

The container is split into segments that keep their exact source bytes
(fill bytes, length field, payload and, for SOS, the entropy-coded scan data
that follows). Writing the container back reproduces the input unless a
segment was replaced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import struct

from core.errors import EncodeError, ParseError

SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
APP0 = 0xE0
APP1 = 0xE1
TEM = 0x01
RST_MARKERS = frozenset(range(0xD0, 0xD8))
STANDALONE_MARKERS = RST_MARKERS | {TEM}

EXIF_HEADER = b"Exif\x00\x00"
MAX_SEGMENT_PAYLOAD = 0xFFFF - 2


@dataclass(frozen=True)
class JpegSegment:
    """One marker-delimited region of the stream.

    `payload` is None for standalone markers which carry no length field.
    """

    marker: int
    payload: bytes | None = None
    scan: bytes = b""
    fill: bytes = b""

    @property
    def is_exif(self) -> bool:
        return self.marker == APP1 and self.payload is not None and self.payload.startswith(
            EXIF_HEADER
        )

    def to_bytes(self) -> bytes:
        head = self.fill + bytes((0xFF, self.marker))
        if self.payload is None:
            return head + self.scan
        return head + struct.pack(">H", len(self.payload) + 2) + self.payload + self.scan


@dataclass
class JpegContainer:
    """A parsed JPEG: SOI, `segments` up to and including EOI, then `trailer`."""

    segments: list[JpegSegment] = field(default_factory=list)
    trailer: bytes = b""

    @classmethod
    def parse(cls, data: bytes) -> JpegContainer:
        """Split `data` into segments; raise `ParseError` if malformed."""
        if data[:2] != b"\xff\xd8":
            raise ParseError("missing JPEG start-of-image marker")
        segments: list[JpegSegment] = []
        pos = 2
        size = len(data)
        while True:
            start = pos
            if pos >= size:
                raise ParseError("truncated JPEG: no end-of-image marker")
            if data[pos] != 0xFF:
                raise ParseError(f"expected a marker at offset {pos}")
            while pos + 1 < size and data[pos + 1] == 0xFF:
                pos += 1
            if pos + 1 >= size:
                raise ParseError(f"truncated marker at offset {pos}")
            marker = data[pos + 1]
            fill = data[start:pos]
            pos += 2

            if marker == EOI:
                segments.append(JpegSegment(marker, fill=fill))
                return cls(segments, data[pos:])
            if marker in STANDALONE_MARKERS:
                segments.append(JpegSegment(marker, fill=fill))
                continue
            if marker in (0x00, SOI):
                raise ParseError(f"unexpected marker 0xFF{marker:02X} at offset {pos - 2}")

            if pos + 2 > size:
                raise ParseError(f"truncated length of segment 0xFF{marker:02X}")
            (length,) = struct.unpack_from(">H", data, pos)
            if length < 2:
                raise ParseError(f"invalid length {length} for segment 0xFF{marker:02X}")
            end = pos + length
            if end > size:
                raise ParseError(f"segment 0xFF{marker:02X} at offset {pos - 2} is truncated")
            payload = data[pos + 2 : end]
            pos = end

            scan = b""
            if marker == SOS:
                scan_end = _find_scan_end(data, pos)
                scan = data[pos:scan_end]
                pos = scan_end
            segments.append(JpegSegment(marker, payload, scan, fill))

    @property
    def exif(self) -> bytes | None:
        """Return the current EXIF block (without the `Exif` header), if any."""
        for segment in self.segments:
            if segment.is_exif:
                return segment.payload[len(EXIF_HEADER) :]
        return None

    def set_exif(self, block: bytes) -> None:
        """Replace every EXIF segment by a single APP1 carrying `block`.

        The new segment takes the place of the first old one or, when the
        stream had none, follows the leading APP0 (JFIF) segments.
        """
        payload = EXIF_HEADER + block
        if len(payload) > MAX_SEGMENT_PAYLOAD:
            raise EncodeError(
                f"metadata block of {len(block)} bytes does not fit a JPEG segment"
            )
        kept: list[JpegSegment] = []
        index: int | None = None
        for segment in self.segments:
            if segment.is_exif:
                if index is None:
                    index = len(kept)
                continue
            kept.append(segment)
        if index is None:
            index = 0
            while index < len(kept) and kept[index].marker == APP0:
                index += 1
        kept.insert(index, JpegSegment(APP1, payload))
        self.segments = kept

    def to_bytes(self) -> bytes:
        return b"\xff\xd8" + b"".join(s.to_bytes() for s in self.segments) + self.trailer


def _find_scan_end(data: bytes, pos: int) -> int:
    """Return the offset of the first marker after entropy-coded data at `pos`."""
    while True:
        pos = data.find(b"\xff", pos)
        if pos < 0 or pos + 1 >= len(data):
            raise ParseError("truncated JPEG: scan data has no terminating marker")
        following = data[pos + 1]
        if following == 0x00 or following in RST_MARKERS:
            pos += 2
            continue
        if following == 0xFF:
            # fill bytes belong to the next marker
            run = pos
            while run + 1 < len(data) and data[run + 1] == 0xFF:
                run += 1
            if run + 1 < len(data) and (data[run + 1] == 0x00 or data[run + 1] in RST_MARKERS):
                pos = run + 2
                continue
        return pos
