"""
Plain-text rendering of a feed and a line-based viewport over it
"""
import sys
from typing import List, Optional, TextIO

from core.entities import FeedView
from utils.time import format_time_ago


def render_feed_lines(view: FeedView, now: Optional[float] = None) -> List[str]:
    if not view.entries:
        return ["No stories match your focus keyword"]

    lines = []
    for rank, entry in enumerate(view.entries, start=1):
        story = entry.ranked.story
        marker = "*" if entry.saved else " "
        lines.append(f"{rank:>3}.{marker} {story.title}")
        lines.append(
            f"      {story.score} pts | {story.descendants or 0} comments | "
            f"{format_time_ago(story.time, now)} | by {story.by} | "
            f"score {entry.ranked.total:.2f}"
        )
        if story.url:
            lines.append(f"      {story.url}")
    return lines


class TextViewport:
    """
    Fixed-height window over rendered lines. One layout unit is one line;
    the window is redrawn whenever the first visible line changes.
    """

    def __init__(self, lines: List[str], height: int, output: Optional[TextIO] = None):
        self.lines = lines
        self.height = max(1, height)
        self.output = output or sys.stdout
        self.offset = 0
        self.redraws = 0

    @property
    def content_extent(self) -> float:
        return float(len(self.lines))

    @property
    def viewport_extent(self) -> float:
        return float(self.height)

    def set_lines(self, lines: List[str]) -> None:
        self.lines = lines
        self.offset = min(self.offset, max(0, len(lines) - self.height))
        self.draw()

    def visible_lines(self) -> List[str]:
        return self.lines[self.offset:self.offset + self.height]

    def scroll_to(self, position: float) -> None:
        offset = int(position)
        if offset != self.offset:
            self.offset = offset
            self.draw()

    def draw(self) -> None:
        self.output.write("\n".join(self.visible_lines()) + "\n\n")
        self.output.flush()
        self.redraws += 1
