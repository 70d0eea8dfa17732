import io

import pytest

from core.entities import FeedEntry, FeedView, RankedStory, ScoreBreakdown
from presentation.autoscroll import AutoScroller
from presentation.viewport import TextViewport, render_feed_lines
from services.scheduler import ManualFrameScheduler
from utils.time import format_time_ago

NOW = 1_700_000_000.0


@pytest.mark.parametrize(
    "age_seconds,expected",
    [
        (0, "0s"),
        (42, "42s"),
        (60, "1m"),
        (59 * 60, "59m"),
        (3 * 3600, "3h"),
        (2 * 86400, "2d"),
        (7 * 86400, "1w"),
        (30 * 86400, "4w"),
        (-100, "0s"),
    ],
)
def test_format_time_ago(age_seconds, expected):
    assert format_time_ago(NOW - age_seconds, NOW) == expected


def _view(make_story, saved_ids=()):
    stories = [
        make_story(1, "First", score=10, descendants=2, age_hours=2),
        make_story(2, "Second", score=5, url=None),
    ]
    entries = [
        FeedEntry(
            ranked=RankedStory(story=s, breakdown=ScoreBreakdown(0.5, 0.5, 0.5, 0.5)),
            saved=s.id in saved_ids,
        )
        for s in stories
    ]
    return FeedView(focus_keyword="", entries=entries)


def test_render_feed_lines(make_story):
    lines = render_feed_lines(_view(make_story, saved_ids={2}), now=NOW)

    assert lines[0] == "  1.  First"
    assert "10 pts | 2 comments | 2h | by pg | score 0.50" in lines[1]
    assert lines[2].strip() == "https://example.com/1"
    assert lines[3] == "  2.* Second"
    assert len(lines) == 5


def test_render_empty_feed():
    assert render_feed_lines(FeedView(focus_keyword="zig")) == ["No stories match your focus keyword"]


def test_text_viewport_redraws_on_line_change():
    out = io.StringIO()
    viewport = TextViewport([f"line {i}" for i in range(20)], height=5, output=out)

    viewport.scroll_to(0.4)
    assert viewport.redraws == 0

    viewport.scroll_to(1.2)
    assert viewport.offset == 1
    assert viewport.visible_lines() == ["line 1", "line 2", "line 3", "line 4", "line 5"]
    assert viewport.redraws == 1
    assert "line 5" in out.getvalue()


def test_text_viewport_clamps_offset_when_content_shrinks():
    viewport = TextViewport([str(i) for i in range(20)], height=5, output=io.StringIO())
    viewport.scroll_to(12)

    viewport.set_lines(["a", "b", "c"])

    assert viewport.offset == 0
    assert viewport.visible_lines() == ["a", "b", "c"]


def test_autoscroll_over_text_viewport_wraps():
    viewport = TextViewport([str(i) for i in range(8)], height=5, output=io.StringIO())
    scheduler = ManualFrameScheduler()
    scroller = AutoScroller(viewport, scheduler, speed=100)
    scroller.start()

    scheduler.tick(5)
    assert viewport.offset == 2

    scheduler.tick()
    assert scroller.position == 0.0
    assert viewport.offset == 0
