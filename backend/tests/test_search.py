"""
Tests for the Google Custom Search adapter.

The Custom Search API is replaced by httpx.MockTransport.
Run with: pytest tests/test_search.py -v
"""

import httpx
import pytest

from app.services.cache import TTLCacheService
from app.services.search import CUSTOM_SEARCH_URL, GoogleSourceSearcher


def make_handler(calls: list, failing_query: str = ""):
    """Each query returns five hits; two of them are shared between all queries."""

    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params["q"]
        calls.append(query)
        assert str(request.url).startswith(CUSTOM_SEARCH_URL)
        assert request.url.params["num"] == "5"
        if query == failing_query:
            return httpx.Response(500)
        items = [
            {"title": "Shared A", "link": "https://shared.org/a", "snippet": "a"},
            {"title": "Shared B", "link": "https://shared.org/b", "snippet": "b"},
            {"title": "No link"},
        ] + [
            {"title": f"{query} {i}", "link": f"https://{query.replace(' ', '-')}.org/{i}", "snippet": "s"}
            for i in range(3)
        ]
        return httpx.Response(200, json={"items": items})

    return handler


def make_searcher(calls: list, failing_query: str = "", cache=None) -> GoogleSourceSearcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(make_handler(calls, failing_query)))
    return GoogleSourceSearcher(api_key="key", engine_id="cx", client=client, cache=cache)


@pytest.mark.asyncio
async def test_disabled_without_credentials():
    searcher = GoogleSourceSearcher(api_key="", engine_id="")
    assert await searcher.search(["anything"], "text") == []
    await searcher.close()


@pytest.mark.asyncio
async def test_results_are_deduplicated_and_capped():
    calls = []
    searcher = make_searcher(calls)

    try:
        results = await searcher.search(["alpha", "beta", "gamma"], "text")
    finally:
        await searcher.close()

    urls = [r.url for r in results]
    assert len(results) == 8
    assert len(set(urls)) == 8
    assert urls[:2] == ["https://shared.org/a", "https://shared.org/b"]
    assert calls == ["alpha", "beta"], "Stops once eight hits are collected"


@pytest.mark.asyncio
async def test_failing_query_is_skipped():
    calls = []
    searcher = make_searcher(calls, failing_query="alpha")

    try:
        results = await searcher.search(["alpha", "beta"], "text")
    finally:
        await searcher.close()

    assert calls == ["alpha", "beta"]
    assert [r.title for r in results] == ["Shared A", "Shared B", "beta 0", "beta 1", "beta 2"]


@pytest.mark.asyncio
async def test_queries_are_deduplicated_and_capped_at_five():
    calls = []
    searcher = make_searcher(calls)
    searcher.max_results = 100

    try:
        await searcher.search(["q1", "q1", "q2", "q3", "q4", "q5", "q6"], "text")
    finally:
        await searcher.close()

    assert calls == ["q1", "q2", "q3", "q4", "q5"]


@pytest.mark.asyncio
async def test_empty_queries_fall_back_to_text_excerpt():
    calls = []
    searcher = make_searcher(calls)

    try:
        await searcher.search([], "  France   population  ")
    finally:
        await searcher.close()

    assert calls == ["France population"]


@pytest.mark.asyncio
async def test_results_are_cached_per_query_tuple():
    calls = []
    searcher = make_searcher(calls, cache=TTLCacheService(maxsize=10, ttl_seconds=60))

    try:
        first = await searcher.search(["alpha"], "text")
        second = await searcher.search(["alpha"], "text")
    finally:
        await searcher.close()

    assert first == second
    assert calls == ["alpha"]
