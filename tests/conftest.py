import asyncio
from typing import List, Optional

import pytest

from ingestion.base import SourceAdapter, Story

NOW = 1_700_000_000.0


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(SourceAdapter):
    def __init__(self, stories: Optional[List[Story]] = None) -> None:
        self.stories = list(stories or [])
        self.calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def fetch_items(self) -> List[Story]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.stories)


def _make_story(
    id: int,
    title: str = "A story",
    score: int = 10,
    descendants: Optional[int] = 0,
    age_hours: float = 1.0,
    now: float = NOW,
    **extra,
) -> Story:
    return Story(
        id=id,
        title=title,
        score=score,
        descendants=descendants,
        time=int(now - age_hours * 3600),
        by=extra.pop("by", "pg"),
        url=extra.pop("url", f"https://example.com/{id}"),
        type=extra.pop("type", "story"),
    )


@pytest.fixture
def make_story():
    return _make_story


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_adapter(make_story):
    return FakeAdapter([
        make_story(1, "Rust compiler news: rustc gets faster", score=120, descendants=40),
        make_story(2, "Show HN: A tiny database", score=30, descendants=5, age_hours=5),
        make_story(3, "Why Rust?", score=5, descendants=0, age_hours=20),
    ])


@pytest.fixture
def make_adapter():
    return FakeAdapter
