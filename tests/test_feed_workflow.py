import pytest

from core.entities import Identity, ToggleOutcome
from core.errors import SourceUnavailableError
from services.database import MemoryKeyValueStore
from services.identity import IdentityProvider
from services.saved_ledger import SavedLedger
from services.story_cache import StoryCache
from workflows.feed import FeedPipeline, FeedSession

pytestmark = pytest.mark.anyio


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def cache(fake_adapter, store, clock):
    return StoryCache(fake_adapter, store=store, clock=clock)


def _session(cache, store, identity=None, focus=""):
    provider = IdentityProvider(identity)
    ledger = SavedLedger(store, provider)
    return FeedSession(FeedPipeline(cache), ledger, provider, focus_keyword=focus), provider


async def test_pipeline_run_ranks_and_filters(cache):
    pipeline = FeedPipeline(cache)

    everything = await pipeline.run("")
    rust = await pipeline.run("rust")

    assert [e.ranked.id for e in everything.entries][0] == 1
    assert len(everything) == 3
    assert {e.ranked.id for e in rust.entries} == {1, 3}
    assert rust.focus_keyword == "rust"
    assert rust.stale is False
    assert all(not e.saved for e in rust.entries)


async def test_pipeline_reports_stale_snapshot(cache, fake_adapter, clock):
    pipeline = FeedPipeline(cache)
    await pipeline.run()

    fake_adapter.error = SourceUnavailableError("down")
    clock.advance(600)
    view = await pipeline.run()

    assert view.stale is True
    assert len(view) == 3


async def test_session_reranks_on_keyword_change(cache, store, fake_adapter):
    session, _ = _session(cache, store)
    seen = []
    session.add_listener(seen.append)

    await session.start()
    view = await session.set_focus_keyword("database")

    assert [e.ranked.id for e in view.entries] == [2]
    assert len(seen) == 2
    assert fake_adapter.calls == 1

    same = await session.set_focus_keyword("database")
    assert same is view
    assert len(seen) == 2


async def test_session_toggle_requires_identity(cache, store):
    session, _ = _session(cache, store)
    await session.start()

    assert await session.toggle_saved(1) is ToggleOutcome.AUTH_REQUIRED
    assert not any(e.saved for e in session.view.entries)


async def test_session_toggle_marks_entry_saved(cache, store):
    session, _ = _session(cache, store, Identity(key="alice"))
    await session.start()

    assert await session.toggle_saved(2) is ToggleOutcome.SAVED

    saved_flags = {e.ranked.id: e.saved for e in session.view.entries}
    assert saved_flags == {1: False, 2: True, 3: False}
    assert session.ledger.list_saved()[0].title == "Show HN: A tiny database"


async def test_identity_change_swaps_saved_flags(cache, store):
    session, provider = _session(cache, store, Identity(key="alice"))
    await session.start()
    await session.toggle_saved(1)

    await provider.set_identity(Identity(key="bob"))
    assert not any(e.saved for e in session.view.entries)

    await provider.set_identity(Identity(key="alice"))
    assert {e.ranked.id for e in session.view.entries if e.saved} == {1}


async def test_poll_reranks_only_when_stories_replaced(cache, store, clock, fake_adapter, make_story):
    session, _ = _session(cache, store)
    await session.start()

    clock.advance(60)
    assert await session.poll() is False

    fake_adapter.stories = [make_story(50, "Replacement")]
    clock.advance(300)
    assert await session.poll() is True
    assert [e.ranked.id for e in session.view.entries] == [50]


async def test_forced_refresh_bypasses_ttl(cache, store, fake_adapter):
    session, _ = _session(cache, store)
    await session.start()

    await session.refresh(force=True)

    assert fake_adapter.calls == 2


async def test_closed_session_ignores_identity_changes(cache, store):
    session, provider = _session(cache, store, Identity(key="alice"))
    await session.start()
    session.close()

    await provider.set_identity(Identity(key="bob"))

    assert session.ledger.active_partition == "saved-alice"


async def test_session_rejects_saving_story_not_in_feed(cache, store):
    session, _ = _session(cache, store, Identity(key="alice"))
    await session.start()
    seen = []
    session.add_listener(seen.append)

    assert await session.toggle_saved(987654321) is ToggleOutcome.UNKNOWN_STORY

    assert session.ledger.saved_ids == frozenset()
    assert await store.get("saved-alice") is None
    assert seen == []


async def test_forced_start_fetches_once_when_cache_expired(cache, store, clock, fake_adapter):
    await cache.get_stories()
    clock.advance(600)
    session, _ = _session(cache, store)

    await session.start(force_refresh=True)

    assert fake_adapter.calls == 2
