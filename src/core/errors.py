"""
Exception types shared across the feed pipeline
"""


class FeedError(Exception):
    """Base class for feed errors."""


class SourceUnavailableError(FeedError):
    """
    The story index could not be fetched or parsed.
    Terminal for a single refresh attempt; the cache falls back to stale data.
    """


class StoreError(FeedError):
    """Persistent keyed store could not be read or written."""
