from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ingestion.base import Story


@dataclass(frozen=True)
class ScoreBreakdown:
    """
    Per-story ranking factors, each in [0, 1], and their weighted total.
    Only comparable within a single ranking pass.
    """
    relevance: float
    popularity: float
    recency: float
    total: float


@dataclass(frozen=True)
class RankedStory:
    """
    A story augmented with its score for one ranking pass.
    """
    story: Story
    breakdown: ScoreBreakdown

    @property
    def id(self) -> int:
        return self.story.id

    @property
    def total(self) -> float:
        return self.breakdown.total


@dataclass(frozen=True)
class FeedSnapshot:
    """
    Stories served by the cache, with when they were captured and whether
    they are past their TTL.
    """
    stories: List[Story]
    fetched_at: Optional[float]
    stale: bool


@dataclass(frozen=True)
class FeedEntry:
    ranked: RankedStory
    saved: bool


@dataclass(frozen=True)
class FeedView:
    """
    Final presentation-ready result of one ranking pass.
    """
    focus_keyword: str
    entries: List[FeedEntry] = field(default_factory=list)
    stale: bool = False
    fetched_at: Optional[float] = None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Identity:
    """
    Authenticated identity supplied by the external auth layer.
    """
    key: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class SavedStory:
    """
    Display fields of a saved story, kept so the entry stays listable after
    the story drops out of the source window.
    """
    id: int
    title: str = ""
    url: Optional[str] = None
    by: str = ""
    time: Optional[int] = None
    saved_at: float = 0.0


class ToggleOutcome(str, Enum):
    SAVED = "saved"
    UNSAVED = "unsaved"
    AUTH_REQUIRED = "auth_required"
    UNKNOWN_STORY = "unknown_story"


@dataclass(frozen=True)
class ScrollState:
    position: float
    running: bool
    speed: int
