from __future__ import annotations

import json
from pathlib import Path
import struct

from PIL import Image
from loguru import logger
import pytest

APP0_JFIF = b"\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
DQT = b"\xff\xdb\x00\x05\x00\x01\x02"
SOS_WITH_SCAN = b"\xff\xda\x00\x04\x01\x02" + b"\x12\xff\x00\x34\xff\xd0\x56"
EOI = b"\xff\xd9"


def _app1(payload: bytes) -> bytes:
    return b"\xff\xe1" + struct.pack(">H", len(payload) + 2) + payload


@pytest.fixture
def minimal_jpeg() -> bytes:
    """SOI, APP0, DQT, SOS with scan data (stuffed byte and RST), EOI."""
    return b"\xff\xd8" + APP0_JFIF + DQT + SOS_WITH_SCAN + EOI


@pytest.fixture
def jpeg_with_exif():
    """Factory for a stream whose first APP1 after APP0 carries `block`."""

    def build(block: bytes, extra_app1: bytes | None = None) -> bytes:
        data = b"\xff\xd8" + APP0_JFIF + _app1(b"Exif\x00\x00" + block)
        if extra_app1 is not None:
            data += _app1(extra_app1)
        return data + DQT + SOS_WITH_SCAN + EOI

    return build


@pytest.fixture
def pillow_jpeg(tmp_path: Path):
    """Factory writing a small real JPEG via Pillow."""

    def build(name: str = "photo.jpg", color: str = "red") -> Path:
        path = tmp_path / "src" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (8, 8), color).save(path, "JPEG")
        return path

    return build


@pytest.fixture
def archive(tmp_path: Path):
    """Factory for an archive tree: album JSON files, a video list and media files.

    `albums` maps file stem to album JSON content; `media` maps a path
    relative to the archive root to its bytes.
    """

    def build(
        albums: dict[str, dict],
        media: dict[str, bytes] | None = None,
        videos: dict | None = None,
    ) -> Path:
        root = tmp_path / "archive"
        album_dir = root / "photos_and_videos" / "album"
        album_dir.mkdir(parents=True)
        for stem, content in albums.items():
            (album_dir / f"{stem}.json").write_text(json.dumps(content), encoding="utf-8")
        if videos is not None:
            (root / "photos_and_videos" / "your_videos.json").write_text(
                json.dumps(videos), encoding="utf-8"
            )
        for rel, data in (media or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return root

    return build


@pytest.fixture
def log_records():
    """Collect (level, message) tuples emitted through loguru."""
    records: list[tuple[str, str]] = []
    handler_id = logger.add(
        lambda m: records.append((m.record["level"].name, m.record["message"])), level="TRACE"
    )
    yield records
    logger.remove(handler_id)
