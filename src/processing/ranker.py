"""
Rank stories by their composite score
"""
import time
from typing import Iterable, List, Optional

from core.entities import RankedStory
from core.scoring import score
from ingestion.base import Story


def rank(
    stories: Iterable[Story],
    focus_keyword: str = "",
    reference_time: Optional[float] = None,
) -> List[RankedStory]:
    """
    Score every story against one reference time and sort by total, highest first.
    The sort is stable, so exact ties keep their input order.
    """
    now = time.time() if reference_time is None else reference_time

    ranked = [
        RankedStory(story=story, breakdown=score(story, focus_keyword, now))
        for story in stories
    ]
    ranked.sort(key=lambda entry: entry.total, reverse=True)
    return ranked
