"""
Service Container — builds every collaborator once per process.

WHAT THIS DOES:
Reads Settings and wires the pipeline:

    Settings
      ├── OpenAITextGenerator ──┬── AgentPanel → SegmentAnalyzer
      │                         └── MetaSummaryGenerator
      ├── GoogleSourceSearcher (+ search TTLCacheService)
      ├── SourceEnricher (+ TextSimilarity chosen by SIMILARITY_BACKEND)
      ├── QuotaStore (QUOTA_BACKEND: sql | memory) → QuotaGatekeeper
      └── response TTLCacheService
    → VerificationPipeline

The FastAPI lifespan calls `await ServiceContainer.start(settings)` on
startup, stores the container on app.state.services, and calls
`await container.close()` on shutdown (closes HTTP clients, clears caches,
disposes the database engine).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

import app.models  # noqa: F401  (registers Account on Base.metadata)
from app.config import Settings
from app.database import build_engine, build_sessionmaker, create_tables
from app.services.agents.panel import AgentPanel
from app.services.analysis.meta_summary import MetaSummaryGenerator
from app.services.analysis.scoring import ScoringPolicy
from app.services.analysis.segmenter import SegmentAnalyzer
from app.services.cache import TTLCacheService
from app.services.llm import OpenAITextGenerator, TextGenerator
from app.services.pipeline import VerificationPipeline
from app.services.quota.gatekeeper import QuotaGatekeeper
from app.services.quota.sql_store import SqlQuotaStore
from app.services.quota.store import InMemoryQuotaStore, QuotaStore
from app.services.search import GoogleSourceSearcher, SourceSearcher
from app.services.similarity import TextSimilarity, build_similarity
from app.services.sources import SourceEnricher

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler needs, built once."""

    settings: Settings
    generator: TextGenerator
    searcher: SourceSearcher
    similarity: TextSimilarity
    enricher: SourceEnricher
    quota_store: QuotaStore
    gatekeeper: QuotaGatekeeper
    pipeline: VerificationPipeline
    search_cache: TTLCacheService
    response_cache: TTLCacheService
    engine: Optional[AsyncEngine] = None

    @classmethod
    async def start(cls, settings: Settings) -> "ServiceContainer":
        """Build all services; creates the accounts table for the SQL backend."""
        engine = None
        if settings.quota_backend == "memory":
            quota_store: QuotaStore = InMemoryQuotaStore()
        else:
            if settings.quota_backend != "sql":
                logger.warning(f"Unknown QUOTA_BACKEND '{settings.quota_backend}', using sql")
            engine = build_engine(settings.database_url, echo=settings.sql_echo)
            await create_tables(engine)
            quota_store = SqlQuotaStore(build_sessionmaker(engine))

        container = cls.build(settings, quota_store, engine=engine)
        logger.info(
            f"Services ready (quota={settings.quota_backend}, similarity={settings.similarity_backend}, "
            f"search={'on' if settings.google_api_key and settings.search_engine_id else 'off'}, "
            f"llm={'on' if settings.openai_api_key else 'off'})"
        )
        return container

    @classmethod
    def build(
        cls,
        settings: Settings,
        quota_store: QuotaStore,
        generator: Optional[TextGenerator] = None,
        searcher: Optional[SourceSearcher] = None,
        similarity: Optional[TextSimilarity] = None,
        engine: Optional[AsyncEngine] = None,
    ) -> "ServiceContainer":
        """
        Wire the pipeline around the given collaborators.

        Anything not passed in is built from settings.
        """
        search_cache = TTLCacheService(
            maxsize=settings.search_cache_maxsize,
            ttl_seconds=settings.search_cache_ttl_seconds,
            name="search cache",
        )
        response_cache = TTLCacheService(
            maxsize=settings.response_cache_maxsize,
            ttl_seconds=settings.response_cache_ttl_seconds,
            name="response cache",
        )

        generator = generator or OpenAITextGenerator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )
        searcher = searcher or GoogleSourceSearcher(
            api_key=settings.google_api_key,
            engine_id=settings.search_engine_id,
            timeout_seconds=settings.search_timeout_seconds,
            max_results=settings.search_max_results,
            cache=search_cache,
        )
        similarity = similarity or build_similarity(
            settings.similarity_backend,
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
        )
        enricher = SourceEnricher(
            similarity=similarity,
            fetch_trusted_content=settings.fetch_trusted_content,
            timeout_seconds=settings.search_timeout_seconds,
        )
        gatekeeper = QuotaGatekeeper(quota_store)

        analyzer = SegmentAnalyzer(
            AgentPanel.default(generator),
            max_chunk_size=settings.segment_max_chars,
            long_text_threshold=settings.long_text_threshold,
            concurrency=settings.segment_concurrency,
        )
        pipeline = VerificationPipeline(
            settings=settings,
            searcher=searcher,
            enricher=enricher,
            analyzer=analyzer,
            meta_summary=MetaSummaryGenerator(generator),
            gatekeeper=gatekeeper,
            policy=ScoringPolicy.from_settings(settings),
            response_cache=response_cache,
        )

        return cls(
            settings=settings,
            generator=generator,
            searcher=searcher,
            similarity=similarity,
            enricher=enricher,
            quota_store=quota_store,
            gatekeeper=gatekeeper,
            pipeline=pipeline,
            search_cache=search_cache,
            response_cache=response_cache,
            engine=engine,
        )

    async def close(self) -> None:
        """Release network clients, clear caches, dispose the engine."""
        await self.searcher.close()
        await self.enricher.close()
        await self.similarity.close()
        await self.generator.close()
        await self.quota_store.close()
        self.search_cache.clear()
        self.response_cache.clear()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Services shut down")
