"""
Ingest stories from Hacker News
"""

import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from core.errors import SourceUnavailableError
from ingestion.base import SourceAdapter, Story

logger = logging.getLogger(__name__)


class HackerNewsAdapter(SourceAdapter):
    BASE_URL = "https://hacker-news.firebaseio.com/v0"

    def __init__(
        self,
        base_url: str = BASE_URL,
        index: str = "topstories",
        top_n: int = 50,
        max_concurrency: int = 10,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.top_n = top_n
        self.max_concurrency = max(1, max_concurrency)
        self.timeout = timeout
        self.transport = transport

    async def fetch_items(self) -> List[Story]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            story_ids = await self._fetch_index(client)

            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def fetch_one(sid: int) -> Optional[Story]:
                async with semaphore:
                    return await self._fetch_story(client, sid)

            results = await asyncio.gather(*(fetch_one(sid) for sid in story_ids))

        stories = [story for story in results if story is not None and story.is_story]
        logger.info(f"Fetched {len(stories)} stories from {len(story_ids)} ids")
        return stories

    async def _fetch_index(self, client: httpx.AsyncClient) -> List[int]:
        try:
            resp = await client.get(f"{self.base_url}/{self.index}.json")
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SourceUnavailableError(f"Index fetch failed: {e}") from e

        if not isinstance(payload, list):
            raise SourceUnavailableError(f"Unexpected index payload: {type(payload).__name__}")

        ids = []
        for raw in payload[:self.top_n]:
            # bool is an int subclass; floats such as 1.7 are not ids either
            if isinstance(raw, int) and not isinstance(raw, bool):
                ids.append(raw)
            else:
                logger.warning(f"Skipping malformed story id: {raw!r}")
        return ids

    async def _fetch_story(self, client: httpx.AsyncClient, sid: int) -> Optional[Story]:
        try:
            resp = await client.get(f"{self.base_url}/item/{sid}.json")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error fetching story {sid}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Story {sid} returned no data")
            return None

        try:
            return Story.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed story {sid}: {e.error_count()} validation errors")
            return None
