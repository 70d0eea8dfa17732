"""
Base classes for Ingestion
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Story(BaseModel):
    """
    A single story record as returned by the source API.
    Validated at the ingestion boundary; malformed records never get past it.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url: Optional[str] = None
    score: int = Field(default=0, ge=0)
    by: str = ""
    time: int
    descendants: Optional[int] = Field(default=None, ge=0)
    type: str

    @property
    def is_story(self) -> bool:
        return self.type == "story"


class SourceAdapter(ABC):
    """
    Base interface for story sources.
    """

    @abstractmethod
    async def fetch_items(self) -> List[Story]:
        """
        Fetch the current story window.
        Individual item failures must be swallowed; only a failure of the
        index itself may raise (SourceUnavailableError).
        """
        raise NotImplementedError
