"""
Verification Pipeline — Orchestrates the full reliability-scoring flow.

WHAT THIS DOES:
Coordinates all services to turn a piece of text (or an uploaded PDF's
text) into a VerificationResponse: one 0-100 reliability score, the
per-agent breakdown, the sources, and a localized summary.

WHY THIS EXISTS:
- Keeps API routes thin and focused on HTTP concerns
- Makes the pipeline testable in isolation (every collaborator is injected)
- Single place to understand the full flow

PIPELINE STAGES:
0. Gate: validate input → quota admission (reserves one unit)
1. Extraction: claims → keywords → search queries
2. Sources: search → enrich (domain, credibility, relevance, trusted content)
3. Agents: segment if long (or a file) → four agents per segment → aggregate
4. Scoring: global score → meta-summary → key points → assessment
5. Settle: confirm the quota unit (or refund it if a stage raised)

OUTCOMES:
- VerificationResponse (status "ok")
- VerificationRefusal (status "refused"): invalid_input, limit_reached,
  account_not_found. Invalid input is refused before any collaborator or
  quota call.

USAGE:
    pipeline = container.pipeline
    outcome = await pipeline.verify(text, account_id=1, lang="fr")
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from app.config import Settings
from app.models.schemas import (
    AggregatedResult,
    Claim,
    RefusalReason,
    ReliabilityScore,
    Source,
    VerificationMode,
    VerificationRefusal,
    VerificationResponse,
)
from app.services.analysis.aggregator import aggregate_segments
from app.services.analysis.locales import resolve_locale, t
from app.services.analysis.meta_summary import MetaSummaryGenerator, build_assessment, extract_key_points
from app.services.analysis.scoring import ScoringPolicy, compute_reliability
from app.services.analysis.segmenter import SegmentAnalyzer
from app.services.cache import TTLCacheService, response_cache_key
from app.services.claim_extractor import ClaimExtractor
from app.services.errors import AccountNotFoundError, InvalidInputError
from app.services.query_builder import build_search_queries
from app.services.quota.gatekeeper import QuotaGatekeeper
from app.services.search import SourceSearcher
from app.services.sources import SourceEnricher
from app.services.text_normalizer import normalize_text

logger = logging.getLogger(__name__)

VerificationOutcome = Union[VerificationResponse, VerificationRefusal]


@dataclass
class PipelineResult:
    """Intermediate result tracking through the pipeline."""

    # Input
    text: str
    lang: str
    mode: VerificationMode
    from_file: bool

    # Extraction stage
    claims: list[Claim] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)

    # Sources stage
    sources: list[Source] = field(default_factory=list)

    # Agents stage
    aggregated: Optional[AggregatedResult] = None

    # Scoring stage
    reliability: Optional[ReliabilityScore] = None
    summary: str = ""
    key_points: list[str] = field(default_factory=list)
    assessment: str = ""

    @property
    def force_segmentation(self) -> bool:
        return self.from_file or self.mode == VerificationMode.AGENT_ANALYSIS


class VerificationPipeline:
    """
    Orchestrates the pipeline from raw text to VerificationResponse.

    All collaborators are passed in; the ServiceContainer wires the real ones.
    """

    def __init__(
        self,
        settings: Settings,
        searcher: SourceSearcher,
        enricher: SourceEnricher,
        analyzer: SegmentAnalyzer,
        meta_summary: MetaSummaryGenerator,
        gatekeeper: QuotaGatekeeper,
        policy: Optional[ScoringPolicy] = None,
        response_cache: Optional[TTLCacheService] = None,
        extractor: Optional[ClaimExtractor] = None,
    ):
        self.settings = settings
        self.searcher = searcher
        self.enricher = enricher
        self.analyzer = analyzer
        self.meta_summary = meta_summary
        self.gatekeeper = gatekeeper
        self.policy = policy or ScoringPolicy.from_settings(settings)
        self.response_cache = response_cache
        self.extractor = extractor or ClaimExtractor()

    async def verify(
        self,
        text: str,
        account_id: int,
        *,
        lang: str = "en",
        mode: VerificationMode = VerificationMode.STANDARD,
        from_file: bool = False,
    ) -> VerificationOutcome:
        """
        Run the full pipeline for one account.

        Args:
            text: Raw text (direct input or extracted from a file)
            account_id: Account whose quota is charged
            lang: Locale for summaries ("en" / "fr", others fall back to "en")
            mode: STANDARD counts verifications, AGENT_ANALYSIS counts agent analyses
            from_file: Text came from an uploaded document (larger budget, always segmented)

        Returns:
            VerificationResponse or VerificationRefusal
        """
        lang = resolve_locale(lang)

        # Stage 0: input validation (no collaborator or quota call before this passes)
        try:
            normalized = self._validate_input(text, from_file, lang)
        except InvalidInputError as e:
            logger.info(f"Refused invalid input for account {account_id}: {e}")
            return VerificationRefusal(reason=RefusalReason.INVALID_INPUT, message=str(e))

        # Stage 0: quota admission
        try:
            admission = await self.gatekeeper.admit(account_id, mode)
        except AccountNotFoundError:
            return VerificationRefusal(
                reason=RefusalReason.ACCOUNT_NOT_FOUND,
                message=t(lang, "refusal_account_not_found"),
            )
        if not admission.admitted:
            return VerificationRefusal(
                reason=RefusalReason.LIMIT_REACHED,
                message=t(lang, "refusal_limit_reached", plan=admission.plan),
                quota=admission.snapshot,
            )

        logger.info(
            f"Pipeline starting: {len(normalized)} chars, mode={mode.value}, "
            f"lang={lang}, from_file={from_file}, account={account_id}"
        )

        try:
            response = await self._run(PipelineResult(normalized, lang, mode, from_file))
        except BaseException:
            await self.gatekeeper.settle(admission, succeeded=False)
            raise

        snapshot = await self.gatekeeper.settle(admission, succeeded=True)
        return response.model_copy(update={"quota": snapshot})

    def _validate_input(self, text: str, from_file: bool, lang: str) -> str:
        """Normalize text or raise InvalidInputError."""
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError(t(lang, "refusal_invalid_input", min_chars=self.settings.min_text_chars))
        if len(text) > self.settings.max_raw_input_chars:
            raise InvalidInputError(t(lang, "refusal_too_long"))

        budget = self.settings.max_document_chars if from_file else self.settings.max_text_chars
        normalized = normalize_text(text, budget)
        if len(normalized) < self.settings.min_text_chars:
            raise InvalidInputError(t(lang, "refusal_invalid_input", min_chars=self.settings.min_text_chars))
        return normalized

    async def _run(self, result: PipelineResult) -> VerificationResponse:
        cache_key = None
        if self.response_cache is not None:
            cache_key = response_cache_key(
                result.text, f"{result.mode.value}:{int(result.from_file)}", result.lang
            )
            cached = self.response_cache.get(cache_key)
            if cached is not None:
                logger.info("Response cache hit")
                return cached

        # Stage 1: Extraction
        self._stage_extraction(result)

        # Stage 2: Sources
        await self._stage_sources(result)

        # Stage 3: Agents
        await self._stage_agents(result)

        # Stage 4: Scoring
        await self._stage_scoring(result)

        response = self._build_response(result)
        logger.info(
            f"Pipeline complete: score={response.score}, risk={response.risk_level.value}, "
            f"segments={response.segment_count}, sources={len(response.sources)}"
        )

        if cache_key is not None:
            self.response_cache.set(cache_key, response)
        return response

    # =========================================================================
    # STAGE 1: EXTRACTION
    # =========================================================================

    def _stage_extraction(self, result: PipelineResult) -> None:
        result.claims = self.extractor.extract_claims(result.text)
        result.keywords = self.extractor.extract_keywords(result.text)
        result.queries = build_search_queries(result.text, result.claims, result.keywords)
        logger.info(f"Built {len(result.queries)} queries from {len(result.claims)} claims")

    # =========================================================================
    # STAGE 2: SOURCES
    # =========================================================================

    async def _stage_sources(self, result: PipelineResult) -> None:
        raw_sources = await self.searcher.search(result.queries, result.text)
        result.sources = await self.enricher.enrich(raw_sources, result.text)

    # =========================================================================
    # STAGE 3: AGENTS
    # =========================================================================

    async def _stage_agents(self, result: PipelineResult) -> None:
        segments = await self.analyzer.analyze(
            result.text, result.sources, force=result.force_segmentation
        )
        result.aggregated = aggregate_segments(segments)

    # =========================================================================
    # STAGE 4: SCORING
    # =========================================================================

    async def _stage_scoring(self, result: PipelineResult) -> None:
        result.reliability = compute_reliability(result.aggregated, self.policy, result.lang)
        result.summary = await self.meta_summary.generate(result.aggregated, result.lang)
        result.key_points = extract_key_points(result.aggregated, result.keywords)
        result.assessment = build_assessment(result.lang, result.reliability.value, result.key_points)

    # =========================================================================
    # BUILD RESPONSE
    # =========================================================================

    def _build_response(self, result: PipelineResult) -> VerificationResponse:
        return VerificationResponse(
            mode=result.mode,
            lang=result.lang,
            score=result.reliability.value,
            risk_level=result.reliability.risk_level,
            summary=result.summary,
            assessment=result.assessment,
            breakdown=result.reliability.breakdown,
            agents=result.aggregated.agents,
            manipulation_detected=result.aggregated.manipulation_detected,
            segment_count=len(result.aggregated.segments),
            sources=result.sources,
            claims=result.claims,
            keywords=result.keywords,
            queries=result.queries,
            key_points=result.key_points,
        )
