"""
Workflows module - Pipeline orchestration for the ranked story feed.
"""
from workflows.base import FeedWorkflow
from workflows.feed import FeedPipeline, FeedSession
from workflows.pipeline_factory import create_feed_services, create_ledger

__all__ = [
    "FeedWorkflow",
    "FeedPipeline",
    "FeedSession",
    "create_feed_services",
    "create_ledger",
]
