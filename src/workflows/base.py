"""
Contains base class for feed pipelines
"""
from abc import ABC, abstractmethod

from core.entities import FeedView


class FeedWorkflow(ABC):
    """
    Orchestrates fetch → score → sort → filter for one feed.
    """

    name: str

    @abstractmethod
    async def run(self, focus_keyword: str = "") -> FeedView:
        """
        Execute the pipeline and return the presentation-ready feed.
        Must never raise uncaught exceptions.
        """
        raise NotImplementedError
