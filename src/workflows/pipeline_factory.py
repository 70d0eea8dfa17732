"""
Pipeline Factory - Wires the feed pipeline from configuration.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from ingestion.hackernews import HackerNewsAdapter
from services.config import Config
from services.database import KeyValueStore, SQLiteKeyValueStore
from services.identity import IdentityProvider
from services.saved_ledger import SavedLedger
from services.story_cache import StoryCache
from workflows.feed import FeedPipeline

logger = logging.getLogger(__name__)


@dataclass
class FeedServices:
    """Shared services for one process."""
    store: KeyValueStore
    cache: StoryCache
    pipeline: FeedPipeline


def create_store(config: Config) -> KeyValueStore:
    db_dir = os.path.dirname(config.DATABASE_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    return SQLiteKeyValueStore(config.DATABASE_PATH)


def create_adapter(config: Config) -> HackerNewsAdapter:
    return HackerNewsAdapter(
        base_url=config.HN_BASE_URL,
        index=config.HN_INDEX,
        top_n=config.TOP_N,
        max_concurrency=config.MAX_CONCURRENCY,
        timeout=config.REQUEST_TIMEOUT,
    )


def create_feed_services(
    config: Config,
    store: Optional[KeyValueStore] = None,
    adapter: Optional[HackerNewsAdapter] = None,
) -> FeedServices:
    """
    Build the store, cache and pipeline described by *config*.

    Args:
        config: Loaded configuration
        store: Keyed store to use instead of the configured SQLite file
        adapter: Source adapter to use instead of the configured one

    Returns:
        FeedServices sharing one cache instance
    """
    store = store or create_store(config)
    cache = StoryCache(
        adapter=adapter or create_adapter(config),
        store=store,
        ttl_seconds=config.CACHE_TTL_SECONDS,
    )
    logger.info(f"Created feed pipeline for {config.HN_BASE_URL}/{config.HN_INDEX} (top {config.TOP_N})")
    return FeedServices(store=store, cache=cache, pipeline=FeedPipeline(cache))


def create_ledger(services: FeedServices, identity_provider: IdentityProvider) -> SavedLedger:
    return SavedLedger(services.store, identity_provider)
