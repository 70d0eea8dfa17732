"""
StoryCache - read-through cache in front of a story source.
Serves fresh data inside the TTL, stale data when the source fails,
and nothing when the source fails on a cold start.
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from core.entities import FeedSnapshot
from core.errors import SourceUnavailableError, StoreError
from ingestion.base import SourceAdapter, Story
from services.database import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "stories-cache"
SCHEMA_VERSION = 1
DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class CacheEntry:
    stories: Tuple[Story, ...]
    timestamp: float


class StoryCache:
    """
    Holds exactly one live CacheEntry. Entries are replaced on every
    successful fetch, never mutated.
    """

    def __init__(
        self,
        adapter: SourceAdapter,
        store: Optional[KeyValueStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        cache_key: str = CACHE_KEY,
    ):
        self.adapter = adapter
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.cache_key = cache_key

        self._entry: Optional[CacheEntry] = None
        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Task] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    async def get_stories(self) -> List[Story]:
        snapshot = await self.get_snapshot()
        return snapshot.stories

    async def get_snapshot(self) -> FeedSnapshot:
        await self._load_persisted()

        entry = self._entry
        if entry is not None and self._is_fresh(entry):
            return self._snapshot(entry, stale=False)

        return await self._refresh_shared()

    async def refresh(self) -> FeedSnapshot:
        """Refetch regardless of TTL, with the same fallbacks as a normal read."""
        await self._load_persisted()
        return await self._refresh_shared()

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp < self.ttl_seconds

    @staticmethod
    def _snapshot(entry: CacheEntry, stale: bool) -> FeedSnapshot:
        return FeedSnapshot(stories=list(entry.stories), fetched_at=entry.timestamp, stale=stale)

    async def _refresh_shared(self) -> FeedSnapshot:
        # Concurrent callers share one in-flight refresh
        if self._inflight is None:
            self._inflight = asyncio.get_running_loop().create_task(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _refresh(self) -> FeedSnapshot:
        try:
            stories = await self.adapter.fetch_items()
        except SourceUnavailableError as e:
            logger.error(f"Story refresh failed: {e}")
            return self._fallback()
        except Exception as e:
            logger.exception(f"Unexpected error refreshing stories: {e}")
            return self._fallback()

        entry = CacheEntry(stories=tuple(stories), timestamp=self.clock())
        self._entry = entry
        await self._persist(entry)
        logger.info(f"Cached {len(entry.stories)} stories")
        return self._snapshot(entry, stale=False)

    def _fallback(self) -> FeedSnapshot:
        if self._entry is not None:
            logger.warning(f"Serving stale stories from {self._entry.timestamp:.0f}")
            return self._snapshot(self._entry, stale=True)
        logger.warning("No cached stories available")
        return FeedSnapshot(stories=[], fetched_at=None, stale=True)

    async def _load_persisted(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            try:
                await self._read_persisted()
            finally:
                self._loaded = True

    async def _read_persisted(self) -> None:
        if self.store is None or self._entry is not None:
            return

        try:
            raw = await self.store.get(self.cache_key)
        except StoreError as e:
            logger.warning(f"Could not read cached stories: {e}")
            return

        if raw is None:
            return

        try:
            payload = json.loads(raw)
            if payload.get("version") != SCHEMA_VERSION:
                logger.warning(f"Ignoring cached stories with version {payload.get('version')!r}")
                return
            stories = tuple(Story.model_validate(s) for s in payload["stories"])
            timestamp = float(payload["timestamp"])
        except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning(f"Ignoring corrupt story cache: {e}")
            return

        self._entry = CacheEntry(stories=stories, timestamp=timestamp)
        logger.info(f"Loaded {len(stories)} cached stories from store")

    async def _persist(self, entry: CacheEntry) -> None:
        if self.store is None:
            return

        payload = {
            "version": SCHEMA_VERSION,
            "timestamp": entry.timestamp,
            "stories": [story.model_dump() for story in entry.stories],
        }
        try:
            await self.store.set(self.cache_key, json.dumps(payload).encode("utf-8"))
        except StoreError as e:
            logger.warning(f"Could not persist story cache: {e}")
