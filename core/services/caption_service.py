"""Caption combining for photos.

Merges an item's description and its comments into the single text stored
in the photo's EXIF caption entry.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from core.models import Comment, Item

COMMENT_DT_FMT = "%Y-%m-%d %I:%M:%S"


def format_comment_time(value: datetime) -> str:
    """Format as `YYYY-MM-DD hh:MM:SS AM|PM` without relying on the locale."""
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value.strftime(COMMENT_DT_FMT)} {meridiem}"


def format_comment(comment: Comment) -> str | None:
    """Return the caption line for `comment`, or None when it has no text."""
    if comment.text is None:
        return None
    return f'"{comment.text}" -{comment.author} ({format_comment_time(comment.timestamp)})'


def combine_caption(description: str | None, comments: Iterable[Comment]) -> str:
    """Join the description and commented lines, keeping source order."""
    lines: list[str] = []
    if description is not None:
        lines.append(description)
    for comment in comments:
        line = format_comment(comment)
        if line is not None:
            lines.append(line)
    return "\n".join(lines)


def caption_for(item: Item) -> str:
    """Combined caption for `item`."""
    return combine_caption(item.description, item.comments)
