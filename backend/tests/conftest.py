"""
Shared fixtures: scripted collaborators and a fully wired pipeline.

Nothing here touches the network. The fake text generator answers by
recognizing which agent is asking from its system prompt, and the fake
searcher returns a fixed list of hits.
"""

import json
from datetime import date
from typing import Optional

import pytest
import pytest_asyncio

from app.config import Settings
from app.models.schemas import RawSource
from app.services.container import ServiceContainer
from app.services.llm import TextGenerator
from app.services.quota.store import InMemoryQuotaStore
from app.services.search import SourceSearcher
from app.services.similarity import TokenOverlapSimilarity

# Substrings of each system prompt, used to route scripted answers
FACT = "expert fact-checker"
SOURCES = "source credibility analyst"
CONTEXT = "context analysis expert"
FRESHNESS = "data freshness analyst"
META = "Otto"

SAMPLE_TEXT = (
    "In 2023 France had 68 million inhabitants, according to INSEE. "
    "Unemployment fell to 7.3% in 2022."
)

GOOD_ANSWERS = {
    FACT: json.dumps({
        "score": 80,
        "verified_claims": [
            {"claim": "68 million inhabitants", "status": "verified", "source": "INSEE"}
        ],
        "unverified_claims": [],
        "summary": "Population figure matches INSEE",
    }),
    SOURCES: json.dumps({
        "score": 70,
        "real_sources": [
            {"citation": "INSEE", "status": "verified", "url": "https://www.insee.fr/", "credibility": "high"}
        ],
        "fake_sources": [],
        "summary": "Sources are official",
    }),
    CONTEXT: json.dumps({
        "context_score": 30,
        "omissions": [{"type": "temporal", "description": "No month given", "importance": "minor"}],
        "manipulation_detected": False,
        "summary": "Little context missing",
    }),
    FRESHNESS: json.dumps({
        "freshness_score": 60,
        "recent_data": [{"data_point": "2023 population", "age": "recent", "source": "INSEE"}],
        "outdated_data": [{"data_point": "2022 unemployment", "age": "1 year", "concern": "superseded"}],
        "summary": "Mostly recent data",
    }),
}


class FakeTextGenerator(TextGenerator):
    """
    Scripted text generator.

    answers maps a system-prompt substring to a string, None, an exception
    instance (raised) or a callable taking the user prompt.
    """

    def __init__(self, answers: Optional[dict] = None, default: Optional[str] = None):
        self.answers = answers or {}
        self.default = default
        self.calls: list[tuple[str, str, int]] = []

    async def generate(self, system_prompt: str, user_prompt: str, max_tokens: int) -> Optional[str]:
        self.calls.append((system_prompt, user_prompt, max_tokens))
        for key, answer in self.answers.items():
            if key in system_prompt:
                if isinstance(answer, BaseException):
                    raise answer
                if callable(answer):
                    return answer(user_prompt)
                return answer
        return self.default

    def calls_for(self, key: str) -> list[tuple[str, str, int]]:
        return [call for call in self.calls if key in call[0]]


class FakeSearcher(SourceSearcher):
    """Returns the same hits for every search and counts calls."""

    def __init__(self, hits: Optional[list[RawSource]] = None, error: Optional[Exception] = None):
        self.hits = hits or []
        self.error = error
        self.calls: list[list[str]] = []

    async def search(self, queries: list[str], original_text: str) -> list[RawSource]:
        self.calls.append(list(queries))
        if self.error is not None:
            raise self.error
        return list(self.hits)


class FixedClock:
    """Injectable `today` for the quota gatekeeper."""

    def __init__(self, today: date):
        self.value = today

    def __call__(self) -> date:
        return self.value


def sample_hits() -> list[RawSource]:
    return [
        RawSource(
            title="France population 2023",
            url="https://www.insee.fr/en/statistiques/population",
            snippet="France had 68 million inhabitants in 2023",
        ),
        RawSource(title="Unrelated cooking blog", url="https://example.com/recipes", snippet="Pasta recipes"),
    ]


def build_container(
    settings: Settings,
    store: InMemoryQuotaStore,
    generator: TextGenerator,
    searcher: SourceSearcher,
) -> ServiceContainer:
    return ServiceContainer.build(
        settings,
        store,
        generator=generator,
        searcher=searcher,
        similarity=TokenOverlapSimilarity(),
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        quota_backend="memory",
        openai_api_key="",
        google_api_key="",
        search_engine_id="",
        fetch_trusted_content=False,
        similarity_backend="token",
    )


@pytest.fixture
def store() -> InMemoryQuotaStore:
    return InMemoryQuotaStore()


@pytest_asyncio.fixture
async def free_account(store):
    return await store.create_account("free@example.com", plan="free")


@pytest.fixture
def generator() -> FakeTextGenerator:
    return FakeTextGenerator(dict(GOOD_ANSWERS), default="Otto Summary: Reliable overall.")


@pytest.fixture
def searcher() -> FakeSearcher:
    return FakeSearcher(sample_hits())


@pytest_asyncio.fixture
async def container(settings, store, generator, searcher):
    services = build_container(settings, store, generator, searcher)
    yield services
    await services.close()
