"""
End-to-end tests for the verification pipeline.

Every collaborator is a scripted fake (see conftest.py); quota lives in
the in-memory store.
Run with: pytest tests/test_pipeline.py -v
"""

import pytest

from app.models.schemas import (
    AgentName,
    RefusalReason,
    RiskLevel,
    VerificationMode,
    VerificationRefusal,
    VerificationResponse,
)
from conftest import GOOD_ANSWERS, META, SAMPLE_TEXT, FakeSearcher, FakeTextGenerator, build_container, sample_hits


def long_document(paragraphs: int = 20) -> str:
    return "\n\n".join(
        f"Paragraph {i} reports that the city population grew in {2000 + i}. " + "More details follow here. " * 36
        for i in range(paragraphs)
    )


# =============================================================================
# HAPPY PATH
# =============================================================================

@pytest.mark.asyncio
async def test_full_run(container, free_account, generator, searcher):
    outcome = await container.pipeline.verify(SAMPLE_TEXT, free_account.account_id)

    assert isinstance(outcome, VerificationResponse), f"Unexpected refusal: {outcome}"
    assert outcome.status == "ok"
    assert outcome.score == 73
    assert outcome.risk_level == RiskLevel.MEDIUM
    assert outcome.summary == "Otto Summary: Reliable overall."
    assert outcome.assessment.startswith("The text achieves a global reliability score of 73/100.")
    assert outcome.breakdown[AgentName.CONTEXT_GUARDIAN].score == 70
    assert outcome.segment_count == 1
    assert outcome.key_points == ["68 million inhabitants", "INSEE"]

    # Extraction
    assert outcome.claims[0].text == "68 million"
    assert outcome.keywords[0] == "France"
    assert outcome.queries == searcher.calls[0]

    # Sources ranked by relevance, enriched
    assert [s.url for s in outcome.sources] == [
        "https://www.insee.fr/en/statistiques/population",
        "https://example.com/recipes",
    ]
    assert outcome.sources[0].relevance_score > outcome.sources[1].relevance_score

    # Four agents + one meta-summary
    assert len(generator.calls) == 5

    # Quota charged once
    assert outcome.quota.usage.verifications_used == 1
    assert outcome.quota.remaining.verifications == 2


@pytest.mark.asyncio
async def test_all_collaborators_unavailable(settings, store, free_account):
    """No generator answers and no sources: every agent is neutral, score 50."""
    services = build_container(settings, store, FakeTextGenerator(), FakeSearcher())

    try:
        outcome = await services.pipeline.verify(SAMPLE_TEXT, free_account.account_id)
    finally:
        await services.close()

    assert isinstance(outcome, VerificationResponse)
    assert outcome.score == 50
    assert all(not result.available for result in outcome.agents.values())
    assert all(result.score == 50 for result in outcome.agents.values())
    assert outcome.summary.startswith("Otto Summary:")
    assert outcome.sources == []


@pytest.mark.asyncio
async def test_failing_meta_summary_falls_back(settings, store, free_account):
    generator = FakeTextGenerator({**GOOD_ANSWERS, META: ConnectionError("provider down")})
    services = build_container(settings, store, generator, FakeSearcher(sample_hits()))

    try:
        outcome = await services.pipeline.verify(SAMPLE_TEXT, free_account.account_id)
    finally:
        await services.close()

    assert isinstance(outcome, VerificationResponse)
    assert outcome.score == 73
    assert outcome.summary.startswith("Otto Summary: Segment 1:")
    assert "Population figure matches INSEE" in outcome.summary
    assert outcome.quota.usage.verifications_used == 1


@pytest.mark.asyncio
async def test_french_output(settings, store, free_account):
    generator = FakeTextGenerator({**GOOD_ANSWERS, META: "Le texte est globalement fiable."})
    services = build_container(settings, store, generator, FakeSearcher(sample_hits()))

    try:
        outcome = await services.pipeline.verify(SAMPLE_TEXT, free_account.account_id, lang="fr-FR")
    finally:
        await services.close()

    assert outcome.lang == "fr"
    assert outcome.summary == "Synthèse Otto : Le texte est globalement fiable."
    assert outcome.assessment.startswith("Le texte obtient une fiabilité globale de 73/100.")


@pytest.mark.asyncio
async def test_uploaded_document_is_segmented(container, store, generator):
    account = await store.create_account("docs@example.com", plan="starter")
    document = long_document()
    assert len(document) > 18_000

    outcome = await container.pipeline.verify(
        document, account.account_id, mode=VerificationMode.AGENT_ANALYSIS, from_file=True
    )

    assert isinstance(outcome, VerificationResponse)
    assert outcome.mode == VerificationMode.AGENT_ANALYSIS
    assert outcome.segment_count >= 2
    assert len(generator.calls) == 4 * outcome.segment_count + 1
    fact_findings = outcome.agents[AgentName.FACT_CHECKER].findings
    assert {f.segment_index for f in fact_findings} == set(range(outcome.segment_count))
    assert outcome.quota.usage.agent_analyses_used == 1
    assert outcome.quota.usage.verifications_used == 0


@pytest.mark.asyncio
async def test_response_cache_still_counts_quota(container, free_account, generator):
    first = await container.pipeline.verify(SAMPLE_TEXT, free_account.account_id)
    calls_after_first = len(generator.calls)
    second = await container.pipeline.verify(SAMPLE_TEXT, free_account.account_id)

    assert second.score == first.score
    assert len(generator.calls) == calls_after_first
    assert second.quota.usage.verifications_used == 2


# =============================================================================
# REFUSALS
# =============================================================================

@pytest.mark.asyncio
async def test_short_text_is_refused_before_any_call(container, store, free_account, generator, searcher):
    outcome = await container.pipeline.verify("Hi", free_account.account_id)

    assert isinstance(outcome, VerificationRefusal)
    assert outcome.reason == RefusalReason.INVALID_INPUT
    assert outcome.message == "Text must contain at least 10 characters."
    assert generator.calls == []
    assert searcher.calls == []
    quota = await store.get(free_account.account_id)
    assert quota.daily_verifications_used == 0
    assert quota.last_reset_date is None, "The quota store is not touched either"


@pytest.mark.asyncio
async def test_blank_and_markup_only_text_is_refused(container, free_account):
    for text in ("", "   \n\n  ", "<script>alert('this is long enough')</script>"):
        outcome = await container.pipeline.verify(text, free_account.account_id)
        assert outcome.reason == RefusalReason.INVALID_INPUT, f"Not refused: {text!r}"


@pytest.mark.asyncio
async def test_oversized_input_is_refused(container, free_account):
    outcome = await container.pipeline.verify("x" * 500_001, free_account.account_id, lang="fr")
    assert outcome.reason == RefusalReason.INVALID_INPUT
    assert outcome.message == "Le texte dépasse la taille maximale acceptée."


@pytest.mark.asyncio
async def test_limit_reached_after_three(container, free_account, generator):
    for i in range(3):
        outcome = await container.pipeline.verify(f"{SAMPLE_TEXT} Run {i}.", free_account.account_id)
        assert isinstance(outcome, VerificationResponse)

    calls_before = len(generator.calls)
    refused = await container.pipeline.verify(SAMPLE_TEXT, free_account.account_id)

    assert isinstance(refused, VerificationRefusal)
    assert refused.reason == RefusalReason.LIMIT_REACHED
    assert refused.message == "Daily limit reached for the free plan."
    assert refused.quota.remaining.verifications == 0
    assert len(generator.calls) == calls_before


@pytest.mark.asyncio
async def test_unknown_account(container, generator):
    outcome = await container.pipeline.verify(SAMPLE_TEXT, 424242)

    assert outcome.reason == RefusalReason.ACCOUNT_NOT_FOUND
    assert outcome.message == "Account not found."
    assert generator.calls == []


# =============================================================================
# FAILURES
# =============================================================================

@pytest.mark.asyncio
async def test_failing_stage_refunds_the_unit(settings, store, free_account):
    services = build_container(
        settings, store, FakeTextGenerator(dict(GOOD_ANSWERS)), FakeSearcher(error=RuntimeError("search exploded"))
    )

    try:
        with pytest.raises(RuntimeError, match="search exploded"):
            await services.pipeline.verify(SAMPLE_TEXT, free_account.account_id)
    finally:
        await services.close()

    quota = await store.get(free_account.account_id)
    assert quota.daily_verifications_used == 0
