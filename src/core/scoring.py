"""
Module to score every story
"""

import math

from core.entities import ScoreBreakdown
from ingestion.base import Story

RELEVANCE_WEIGHT = 0.3
POPULARITY_WEIGHT = 0.4
RECENCY_WEIGHT = 0.3

NEUTRAL_RELEVANCE = 0.5
MATCH_BOOST = 0.5
POPULARITY_SATURATION = 1000
RECENCY_WINDOW_HOURS = 24


def relevance_score(title: str, focus_keyword: str) -> float:
    """
    Keyword relevance of a title.
    A blank keyword is neutral so that having no focus does not penalize anything.
    """
    keyword = focus_keyword.strip().lower()
    if not keyword:
        return NEUTRAL_RELEVANCE

    matches = title.lower().count(keyword)
    if matches == 0:
        return 0.0
    return min(matches * MATCH_BOOST, 1.0)


def popularity_score(points: int, comments: int = 0) -> float:
    """
    Log-compressed engagement; comments count double.
    Saturates at 1.0 around 1000 raw units.
    """
    raw = max(points, 0) + max(comments, 0) * 2
    return min(math.log(raw + 1) / math.log(POPULARITY_SATURATION), 1.0)


def recency_score(created_at: float, reference_time: float) -> float:
    """
    Linear decay from 1.0 at age zero to 0.0 at 24 hours.
    """
    age_hours = (reference_time - created_at) / 3600
    return min(max(0.0, 1 - age_hours / RECENCY_WINDOW_HOURS), 1.0)


def score(story: Story, focus_keyword: str, reference_time: float) -> ScoreBreakdown:
    relevance = relevance_score(story.title, focus_keyword)
    popularity = popularity_score(story.score, story.descendants or 0)
    recency = recency_score(story.time, reference_time)

    total = (
        relevance * RELEVANCE_WEIGHT
        + popularity * POPULARITY_WEIGHT
        + recency * RECENCY_WEIGHT
    )

    return ScoreBreakdown(
        relevance=relevance,
        popularity=popularity,
        recency=recency,
        total=total,
    )
