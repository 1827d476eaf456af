"""JSON loading for exported archives.

Reads album files and the video list into `Album`/`Item` records. Field
names are declared in a versioned `ArchiveSchema` so that export revisions
which renamed keys can be supported without touching the parsing code.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
import json
from pathlib import Path
from typing import Any

from loguru import logger

from core.errors import ArchiveIOError, ParseError, SchemaError
from core.models import Album, Comment, Item
from infrastructure.utils import from_epoch_seconds


@dataclass(frozen=True)
class ArchiveSchema:
    """Key names and locations of one archive export revision."""

    version: str
    albums_dir: tuple[str, ...] = ("photos_and_videos", "album")
    videos_file: tuple[str, ...] = ("photos_and_videos", "your_videos.json")
    items_key: str = "photos"
    videos_key: str = "videos"
    timestamp_keys: tuple[str, ...] = ("creation_timestamp",)
    path_key: str = "uri"
    description_key: str = "description"
    comments_key: str = "comments"
    comment_text_key: str = "comment"
    comment_timestamp_keys: tuple[str, ...] = ("creation_timestamp", "timestamp")
    author_key: str = "author"


DEFAULT_SCHEMA = ArchiveSchema(version="2020")


def _require(node: Mapping[str, Any], keys: tuple[str, ...] | str, what: str) -> Any:
    """Return the first present key of `keys` in `node` or raise `SchemaError`."""
    if isinstance(keys, str):
        keys = (keys,)
    for key in keys:
        if key in node:
            return node[key]
    raise SchemaError(f"{what} is missing required key {' / '.join(repr(k) for k in keys)}")


def _optional_text(node: Mapping[str, Any], key: str, what: str) -> str | None:
    value = node.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ParseError(f"{what} key {key!r} must be a string, got {type(value).__name__}")


def _timestamp(value: Any, what: str) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"{what} timestamp must be epoch seconds, got {value!r}")
    try:
        return from_epoch_seconds(int(value))
    except (OverflowError, OSError, ValueError) as ex:
        raise ParseError(f"{what} timestamp {value!r} is out of range") from ex


def _as_mapping(node: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(node, Mapping):
        raise ParseError(f"{what} must be a JSON object")
    return node


class ArchiveRepository:
    """Load albums and videos from an archive rooted at `root`."""

    def __init__(self, root: str | Path, schema: ArchiveSchema = DEFAULT_SCHEMA) -> None:
        self._root = Path(root)
        self._schema = schema
        logger.debug("Reading {} with archive schema {}", self._root, schema.version)

    @property
    def albums_dir(self) -> Path:
        return self._root.joinpath(*self._schema.albums_dir)

    @property
    def videos_file(self) -> Path:
        return self._root.joinpath(*self._schema.videos_file)

    def list_album_files(self) -> list[Path]:
        """Return the album JSON files in name order."""
        directory = self.albums_dir
        logger.debug("Finding albums in {}", directory)
        try:
            entries = sorted(directory.iterdir())
        except OSError as ex:
            raise ArchiveIOError(f"unable to list albums: {ex}", directory) from ex
        files: list[Path] = []
        for path in entries:
            if path.suffix != ".json" or not path.is_file():
                logger.trace("Skipping {}", path)
                continue
            logger.trace("Adding {}", path)
            files.append(path)
        return files

    def load_albums(self) -> Iterator[Album]:
        """Yield every album; the first failing album aborts iteration."""
        for path in self.list_album_files():
            yield self.load_album(path)

    def load_album(self, path: str | Path) -> Album:
        """Read one album JSON file."""
        data = self._read_json(path)
        try:
            raw = _as_mapping(data, "album")
            name = _require(raw, "name", "album")
            if not isinstance(name, str):
                raise ParseError("album name must be a string")
            items_raw = raw.get(self._schema.items_key) or []
            if not isinstance(items_raw, list):
                raise ParseError(f"album key {self._schema.items_key!r} must be a list")
            items = tuple(self._parse_item(node) for node in items_raw)
            return Album(
                name=name,
                description=_optional_text(raw, self._schema.description_key, "album"),
                items=items,
            )
        except (ParseError, SchemaError) as ex:
            raise ex.with_path(path)

    def load_videos(self) -> list[Item]:
        """Read the video list; a missing file means the archive has no videos."""
        path = self.videos_file
        if not path.exists():
            logger.info("No video list at {}; no videos to process", path)
            return []
        data = self._read_json(path)
        try:
            raw = _as_mapping(data, "video list")
            videos = _require(raw, self._schema.videos_key, "video list")
            if not isinstance(videos, list):
                raise ParseError(f"key {self._schema.videos_key!r} must be a list")
            return [self._parse_item(node) for node in videos]
        except (ParseError, SchemaError) as ex:
            raise ex.with_path(path)

    def _read_json(self, path: str | Path) -> Any:
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as ex:
            raise ParseError(f"invalid JSON: {ex}", path) from ex
        except OSError as ex:
            raise ArchiveIOError(f"failed to read: {ex}", path) from ex

    def _parse_item(self, node: Any) -> Item:
        s = self._schema
        node = _as_mapping(node, "item")
        uri = _require(node, s.path_key, "item")
        if not isinstance(uri, str):
            raise ParseError(f"item key {s.path_key!r} must be a string")
        comments_raw = node.get(s.comments_key) or []
        if not isinstance(comments_raw, list):
            raise ParseError(f"item key {s.comments_key!r} must be a list")
        return Item(
            timestamp=_timestamp(_require(node, s.timestamp_keys, "item"), "item"),
            path=self._root / uri,
            description=_optional_text(node, s.description_key, "item"),
            comments=tuple(self._parse_comment(c) for c in comments_raw),
        )

    def _parse_comment(self, node: Any) -> Comment:
        s = self._schema
        node = _as_mapping(node, "comment")
        author = _require(node, s.author_key, "comment")
        if not isinstance(author, str):
            raise ParseError("comment author must be a string")
        return Comment(
            timestamp=_timestamp(_require(node, s.comment_timestamp_keys, "comment"), "comment"),
            author=author,
            text=_optional_text(node, s.comment_text_key, "comment"),
        )
