from __future__ import annotations

from datetime import datetime

from core.models import Comment, Item
from core.services.caption_service import (
    caption_for,
    combine_caption,
    format_comment,
    format_comment_time,
)


def test_description_and_comment():
    comment = Comment(timestamp=datetime(2020, 1, 2, 3, 4, 5), author="Bob", text="Nice!")
    assert combine_caption("Hello", [comment]) == 'Hello\n"Nice!" -Bob (2020-01-02 03:04:05 AM)'


def test_nothing_to_combine_gives_empty_string():
    comments = [
        Comment(timestamp=datetime(2020, 1, 2), author="Bob"),
        Comment(timestamp=datetime(2020, 1, 3), author="Ann", text=None),
    ]
    assert combine_caption(None, comments) == ""
    assert combine_caption(None, []) == ""


def test_comments_keep_source_order_and_drop_textless():
    comments = [
        Comment(timestamp=datetime(2021, 5, 1, 18, 0, 0), author="Zed", text="later"),
        Comment(timestamp=datetime(2021, 5, 1, 9, 0, 0), author="Ann"),
        Comment(timestamp=datetime(2020, 1, 1, 0, 0, 0), author="Amy", text="earlier"),
    ]
    assert combine_caption(None, comments).split("\n") == [
        '"later" -Zed (2021-05-01 06:00:00 PM)',
        '"earlier" -Amy (2020-01-01 12:00:00 AM)',
    ]


def test_twelve_hour_clock_edges():
    assert format_comment_time(datetime(2020, 1, 1, 0, 0, 0)) == "2020-01-01 12:00:00 AM"
    assert format_comment_time(datetime(2020, 1, 1, 12, 30, 1)) == "2020-01-01 12:30:01 PM"
    assert format_comment_time(datetime(2020, 1, 1, 23, 59, 59)) == "2020-01-01 11:59:59 PM"


def test_empty_text_is_still_a_line():
    comment = Comment(timestamp=datetime(2020, 1, 1, 1, 0, 0), author="Bob", text="")
    assert format_comment(comment) == '"" -Bob (2020-01-01 01:00:00 AM)'


def test_caption_for_item(tmp_path):
    item = Item(
        timestamp=datetime(2020, 1, 1),
        path=tmp_path / "a.jpg",
        description="Beach",
        comments=(Comment(timestamp=datetime(2020, 1, 1, 13, 0, 0), author="Al", text="wow"),),
    )
    assert caption_for(item) == 'Beach\n"wow" -Al (2020-01-01 01:00:00 PM)'
