from __future__ import annotations

from datetime import datetime
from pathlib import Path

from PIL import Image
import pytest

from core.errors import ArchiveIOError, ParseError
from core.exif.block import EncodingProfile, build_block, encode_block
from core.exif.jpeg import JpegContainer
from infrastructure.photo_service import PhotoService
from infrastructure.utils import read_embedded_metadata

STAMP = datetime(2019, 7, 4, 21, 15, 0)


def test_embed_writes_readable_metadata(pillow_jpeg, tmp_path):
    src = pillow_jpeg()
    dst = tmp_path / "out.jpg"
    caption = 'Fireworks\n"Wow" -Ann (2019-07-05 01:00:00 AM)'
    block = encode_block(build_block(caption, STAMP))

    PhotoService().embed(src, dst, block)

    meta = read_embedded_metadata(dst)
    assert meta is not None
    assert meta.caption == caption
    assert meta.date_time == STAMP
    assert meta.date_time_original is None
    with Image.open(dst) as im:
        im.load()
        assert im.size == (8, 8)


def test_embed_with_original_date_and_little_endian(pillow_jpeg, tmp_path):
    src = pillow_jpeg()
    dst = tmp_path / "out.jpg"
    block = encode_block(
        build_block("caption", STAMP, EncodingProfile.IMAGE_DESCRIPTION_WITH_ORIGINAL), "II"
    )

    PhotoService().embed(src, dst, block)

    meta = read_embedded_metadata(dst)
    assert meta.date_time_original == STAMP
    assert meta.caption == "caption"


def test_user_comment_profile_is_read_as_caption(pillow_jpeg, tmp_path):
    src = pillow_jpeg()
    dst = tmp_path / "out.jpg"
    block = encode_block(build_block("hi", STAMP, EncodingProfile.USER_COMMENT))
    PhotoService().embed(src, dst, block)

    assert read_embedded_metadata(dst).caption == "hi"


def test_source_is_not_modified(pillow_jpeg, tmp_path):
    src = pillow_jpeg()
    before = src.read_bytes()

    PhotoService().embed(src, tmp_path / "out.jpg", encode_block(build_block("x", STAMP)))

    assert src.read_bytes() == before


def test_reembedding_output_keeps_one_segment(pillow_jpeg, tmp_path):
    service = PhotoService()
    first = tmp_path / "first.jpg"
    second = tmp_path / "second.jpg"
    service.embed(pillow_jpeg(), first, encode_block(build_block("one", STAMP)))
    service.embed(first, second, encode_block(build_block("two", STAMP)))

    jpeg = JpegContainer.parse(second.read_bytes())
    assert sum(1 for s in jpeg.segments if s.is_exif) == 1
    assert read_embedded_metadata(second).caption == "two"


def test_malformed_source_produces_no_output(tmp_path):
    src = tmp_path / "broken.jpg"
    src.write_bytes(b"GIF89a not a jpeg")
    dst = tmp_path / "out" / "broken.jpg"
    dst.parent.mkdir()

    with pytest.raises(ParseError) as excinfo:
        PhotoService().embed(src, dst, b"block")

    assert excinfo.value.path == src
    assert not dst.exists()


def test_missing_source(tmp_path):
    with pytest.raises(ArchiveIOError):
        PhotoService().embed(tmp_path / "nope.jpg", tmp_path / "out.jpg", b"block")


def test_dry_run_returns_bytes_without_writing(minimal_jpeg, tmp_path):
    src = tmp_path / "a.jpg"
    src.write_bytes(minimal_jpeg)
    dst = tmp_path / "out.jpg"

    output = PhotoService().embed(src, dst, b"block", dry_run=True)

    assert JpegContainer.parse(output).exif == b"block"
    assert not dst.exists()


def test_failed_write_leaves_no_partial_output(minimal_jpeg, tmp_path, monkeypatch):
    src = tmp_path / "a.jpg"
    src.write_bytes(minimal_jpeg)
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    dst = out_dir / "a.jpg"

    def fail_replace(self, target):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", fail_replace)
    with pytest.raises(ArchiveIOError) as excinfo:
        PhotoService().embed(src, dst, b"block")

    assert excinfo.value.path == dst
    assert list(out_dir.iterdir()) == []


def test_embed_replaces_existing_output(minimal_jpeg, tmp_path):
    src = tmp_path / "a.jpg"
    src.write_bytes(minimal_jpeg)
    dst = tmp_path / "out.jpg"
    dst.write_bytes(b"stale")

    PhotoService().embed(src, dst, b"block")

    assert JpegContainer.parse(dst.read_bytes()).exif == b"block"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["a.jpg", "out.jpg"]
