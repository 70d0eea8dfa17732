import asyncio

import httpx
import pytest

from core.errors import SourceUnavailableError
from ingestion.hackernews import HackerNewsAdapter

BASE = "https://hn.test/v0"


def _item(sid, **overrides):
    data = {
        "id": sid,
        "type": "story",
        "title": f"Story {sid}",
        "by": "dang",
        "score": sid * 10,
        "time": 1_700_000_000 - sid,
        "descendants": sid,
        "url": f"https://example.com/{sid}",
        "kids": [sid * 100],
    }
    data.update(overrides)
    return data


def make_transport(index, items, failing=()):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/topstories.json"):
            return httpx.Response(200, json=index)
        sid = int(path.rsplit("/", 1)[-1].removesuffix(".json"))
        if sid in failing:
            return httpx.Response(500)
        return httpx.Response(200, json=items.get(sid))

    return httpx.MockTransport(handler)


@pytest.mark.anyio
async def test_fetch_items_keeps_only_valid_stories():
    items = {
        1: _item(1),
        2: _item(2, type="comment"),
        3: _item(3),
        4: {"id": 4, "type": "story", "time": 1},  # no title
        5: None,
        6: _item(6, type="job"),
        7: _item(7, url=None, descendants=None),
        9: {"id": 9, "title": "No discriminator", "time": 1},
    }
    adapter = HackerNewsAdapter(
        base_url=BASE,
        transport=make_transport([1, 2, 3, 4, 5, 6, 7, 8, 9], items, failing={3}),
    )

    stories = await adapter.fetch_items()

    assert [story.id for story in stories] == [1, 7]
    assert stories[0].title == "Story 1"
    assert stories[0].score == 10
    assert stories[1].url is None
    assert stories[1].descendants is None


@pytest.mark.anyio
async def test_fetch_items_bounds_to_top_n():
    index = list(range(1, 81))
    items = {sid: _item(sid) for sid in index}
    adapter = HackerNewsAdapter(base_url=BASE, top_n=50, transport=make_transport(index, items))

    stories = await adapter.fetch_items()

    assert len(stories) == 50
    assert {story.id for story in stories} == set(range(1, 51))


@pytest.mark.anyio
async def test_fetch_items_caps_concurrency():
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        if request.url.path.endswith("/topstories.json"):
            return httpx.Response(200, json=list(range(1, 31)))
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        sid = int(request.url.path.rsplit("/", 1)[-1].removesuffix(".json"))
        return httpx.Response(200, json=_item(sid))

    adapter = HackerNewsAdapter(base_url=BASE, max_concurrency=4, transport=httpx.MockTransport(handler))

    stories = await adapter.fetch_items()

    assert len(stories) == 30
    assert 1 < peak <= 4


@pytest.mark.anyio
async def test_transport_error_on_item_is_soft():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/topstories.json"):
            return httpx.Response(200, json=[1, 2])
        if request.url.path.endswith("/1.json"):
            raise httpx.ConnectError("boom", request=request)
        return httpx.Response(200, json=_item(2))

    adapter = HackerNewsAdapter(base_url=BASE, transport=httpx.MockTransport(handler))

    stories = await adapter.fetch_items()

    assert [story.id for story in stories] == [2]


@pytest.mark.anyio
async def test_index_failure_is_terminal():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    adapter = HackerNewsAdapter(base_url=BASE, transport=httpx.MockTransport(handler))

    with pytest.raises(SourceUnavailableError):
        await adapter.fetch_items()


@pytest.mark.anyio
async def test_index_with_unexpected_shape_is_terminal():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "nope"})

    adapter = HackerNewsAdapter(base_url=BASE, transport=httpx.MockTransport(handler))

    with pytest.raises(SourceUnavailableError):
        await adapter.fetch_items()


@pytest.mark.anyio
async def test_empty_subset_is_returned_not_raised():
    adapter = HackerNewsAdapter(base_url=BASE, transport=make_transport([1, 2], {}, failing={1, 2}))

    assert await adapter.fetch_items() == []


@pytest.mark.anyio
async def test_index_entries_must_be_integers():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/topstories.json"):
            return httpx.Response(200, json=[True, 1.7, "3", None, 4])
        requested.append(request.url.path)
        sid = int(request.url.path.rsplit("/", 1)[-1].removesuffix(".json"))
        return httpx.Response(200, json=_item(sid))

    adapter = HackerNewsAdapter(base_url=BASE, transport=httpx.MockTransport(handler))

    stories = await adapter.fetch_items()

    assert [story.id for story in stories] == [4]
    assert requested == ["/v0/item/4.json"]
