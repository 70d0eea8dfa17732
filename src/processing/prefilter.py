import logging
from typing import Iterable, List

from core.entities import RankedStory

logger = logging.getLogger(__name__)


def keyword_match(text: str, keywords: Iterable[str]) -> bool:
    text = text.lower()
    return any(k.lower() in text for k in keywords)


def display_filter(ranked: List[RankedStory], focus_keyword: str) -> List[RankedStory]:
    """
    Hard include/exclude gate on the title, applied after ranking.
    A blank keyword lets everything through.
    """
    keyword = focus_keyword.strip()
    if not keyword:
        return list(ranked)

    kept = [entry for entry in ranked if keyword_match(entry.story.title, [keyword])]
    logger.debug(f"Display filter '{keyword}': {len(ranked)} -> {len(kept)} stories")
    return kept
