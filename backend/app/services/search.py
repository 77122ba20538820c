"""
Source Retrieval Adapter (Google Custom Search).

WHAT THIS DOES:
Runs the built search queries against Google's Custom Search JSON API and
returns raw hits (title, url, snippet). Enrichment (domain, credibility,
relevance) happens later in the SourceEnricher.

HOW IT WORKS:
1. Queries are deduplicated and capped at 5
2. Each query is sent in turn with num=5
3. Hits without a link are skipped, duplicates by URL are dropped
4. Stops as soon as max_results hits are collected (default 8)

FAILURE MODEL:
Missing API key or engine id → [] without any network call.
A failing query is logged and skipped; the others still run.
The searcher never raises.

USAGE:
    searcher = GoogleSourceSearcher(api_key=..., engine_id=...)
    raw_sources = await searcher.search(queries, original_text)
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from app.models.schemas import RawSource
from app.services.cache import TTLCacheService
from app.services.text_normalizer import collapse_whitespace

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

MAX_QUERIES = 5
RESULTS_PER_QUERY = 5
DEFAULT_MAX_RESULTS = 8
FALLBACK_QUERY_CHARS = 140


class SourceSearcher(ABC):
    """Abstract base class for source-retrieval collaborators."""

    @abstractmethod
    async def search(self, queries: list[str], original_text: str) -> list[RawSource]:
        """
        Find external sources for the given queries.

        Args:
            queries: Built search queries, most specific first
            original_text: The normalized text (used when queries is empty)

        Returns:
            At most max_results RawSource objects; [] on any failure
        """
        pass

    async def close(self) -> None:
        return None


class GoogleSourceSearcher(SourceSearcher):
    """
    Async client for the Google Custom Search JSON API.

    Results are memoized per query tuple when a cache is supplied.
    """

    def __init__(
        self,
        api_key: str = "",
        engine_id: str = "",
        timeout_seconds: float = 10.0,
        max_results: int = DEFAULT_MAX_RESULTS,
        cache: Optional[TTLCacheService] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.engine_id = engine_id
        self.timeout_seconds = timeout_seconds
        self.max_results = max_results
        self.cache = cache
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def search(self, queries: list[str], original_text: str) -> list[RawSource]:
        if not self.enabled:
            logger.info("Search skipped: GOOGLE_API_KEY / SEARCH_ENGINE_ID not configured")
            return []

        unique_queries = [q for q in dict.fromkeys(queries) if q][:MAX_QUERIES]
        if not unique_queries:
            fallback = collapse_whitespace(original_text)[:FALLBACK_QUERY_CHARS]
            unique_queries = [fallback] if fallback else []
        if not unique_queries:
            return []

        cache_key = tuple(unique_queries)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Search cache hit for {len(unique_queries)} queries")
                return list(cached)

        results: list[RawSource] = []
        seen_urls: set[str] = set()

        for query in unique_queries:
            for item in await self._run_query(query):
                link = item.get("link")
                if not link or link in seen_urls:
                    continue
                seen_urls.add(link)
                results.append(
                    RawSource(
                        title=item.get("title") or "",
                        url=link,
                        snippet=item.get("snippet") or "",
                    )
                )
            if len(results) >= self.max_results:
                break

        results = results[:self.max_results]
        logger.info(f"Search returned {len(results)} sources for {len(unique_queries)} queries")

        if self.cache is not None and results:
            self.cache.set(cache_key, tuple(results))
        return results

    async def _run_query(self, query: str) -> list[dict]:
        """Run one query. Returns the raw 'items' list, [] on failure."""
        client = await self._get_client()
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": RESULTS_PER_QUERY,
        }
        try:
            response = await client.get(CUSTOM_SEARCH_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Search query '{query[:60]}' failed: {e}")
            return []

        items = data.get("items", []) if isinstance(data, dict) else []
        return [item for item in items if isinstance(item, dict)]

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
