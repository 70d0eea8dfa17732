import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from core.entities import FeedEntry, FeedSnapshot, FeedView, Identity, ToggleOutcome
from ingestion.base import Story
from processing.prefilter import display_filter
from processing.ranker import rank
from services.identity import IdentityProvider
from services.saved_ledger import SavedLedger
from services.story_cache import StoryCache
from workflows.base import FeedWorkflow

logger = logging.getLogger(__name__)

ViewListener = Callable[[FeedView], None]


class FeedPipeline(FeedWorkflow):
    """
    Cache → rank → display filter → saved marking.
    Holds no per-reader state; the saved ledger is passed per call.
    """

    name = "hackernews"

    def __init__(self, cache: StoryCache):
        self.cache = cache

    async def run(
        self,
        focus_keyword: str = "",
        ledger: Optional[SavedLedger] = None,
        force_refresh: bool = False,
    ) -> FeedView:
        if force_refresh:
            snapshot = await self.cache.refresh()
        else:
            snapshot = await self.cache.get_snapshot()
        return self.build_view(snapshot, focus_keyword, ledger)

    def build_view(
        self,
        snapshot: FeedSnapshot,
        focus_keyword: str = "",
        ledger: Optional[SavedLedger] = None,
        reference_time: Optional[float] = None,
    ) -> FeedView:
        ranked = rank(snapshot.stories, focus_keyword, reference_time)
        visible = display_filter(ranked, focus_keyword)

        logger.info(
            f"[{self.name}] Ranked {len(ranked)} stories, {len(visible)} visible "
            f"for '{focus_keyword}'{' (stale)' if snapshot.stale else ''}"
        )

        return FeedView(
            focus_keyword=focus_keyword,
            entries=[FeedEntry(ranked=r, saved=_is_saved(ledger, r.id)) for r in visible],
            stale=snapshot.stale,
            fetched_at=snapshot.fetched_at,
        )

    @staticmethod
    def mark_saved(view: FeedView, ledger: Optional[SavedLedger]) -> FeedView:
        """Refresh saved flags without re-ranking."""
        return replace(
            view,
            entries=[replace(entry, saved=_is_saved(ledger, entry.ranked.id)) for entry in view.entries],
        )


def _is_saved(ledger: Optional[SavedLedger], item_id: int) -> bool:
    return ledger is not None and ledger.is_saved(item_id)


class FeedSession:
    """
    Live state of one reader: focus keyword, current feed and saved partition.
    Re-ranks when the keyword changes or the cache hands back a new snapshot.
    """

    def __init__(
        self,
        pipeline: FeedPipeline,
        ledger: SavedLedger,
        identity_provider: IdentityProvider,
        focus_keyword: str = "",
    ):
        self.pipeline = pipeline
        self.ledger = ledger
        self.identity_provider = identity_provider
        self.focus_keyword = focus_keyword
        self.view: Optional[FeedView] = None

        self._stories: Dict[int, Story] = {}
        self._listeners: List[ViewListener] = []
        self._unsubscribe = identity_provider.subscribe(self._on_identity_change)

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    async def start(self, force_refresh: bool = False) -> FeedView:
        await self.ledger.load()
        return await self.refresh(force=force_refresh)

    def close(self) -> None:
        self._unsubscribe()

    async def refresh(self, force: bool = False) -> FeedView:
        if force:
            snapshot = await self.pipeline.cache.refresh()
        else:
            snapshot = await self.pipeline.cache.get_snapshot()
        return self._publish(snapshot)

    async def poll(self) -> bool:
        """Re-rank if the underlying stories were replaced; True when they were."""
        snapshot = await self.pipeline.cache.get_snapshot()
        if self.view is not None and snapshot.fetched_at == self.view.fetched_at:
            return False
        self._publish(snapshot)
        return True

    async def set_focus_keyword(self, focus_keyword: str) -> FeedView:
        if self.view is not None and focus_keyword == self.focus_keyword:
            return self.view
        self.focus_keyword = focus_keyword
        return await self.refresh()

    async def toggle_saved(self, item_id: int) -> ToggleOutcome:
        outcome = await self.ledger.toggle(item_id, self._stories.get(item_id))
        if outcome in (ToggleOutcome.SAVED, ToggleOutcome.UNSAVED) and self.view is not None:
            self._set_view(self.pipeline.mark_saved(self.view, self.ledger))
        return outcome

    def _publish(self, snapshot: FeedSnapshot) -> FeedView:
        self._stories = {story.id: story for story in snapshot.stories}
        view = self.pipeline.build_view(snapshot, self.focus_keyword, self.ledger)
        self._set_view(view)
        return view

    def _set_view(self, view: FeedView) -> None:
        self.view = view
        for listener in list(self._listeners):
            listener(view)

    async def _on_identity_change(self, identity: Optional[Identity]) -> None:
        await self.ledger.activate(identity)
        if self.view is not None:
            self._set_view(self.pipeline.mark_saved(self.view, self.ledger))
