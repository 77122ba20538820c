"""
Fact Checker Agent.

WHAT THIS DOES:
Identifies specific factual claims (statistics, dates, names, events) in
the text and checks each one against the top 3 sources.

OUTPUT:
- score: overall support for the text's claims (0-100)
- verified_claim findings (with the supporting source)
- unverified_claim findings (with the reason)

BUDGETS: first 1,200 chars of text, 3 sources (800 chars of content each),
700 completion tokens.
"""

from app.models.schemas import AgentName, AgentResult, Finding, FindingKind, Source
from app.services.agents.base import BaseAgent, source_block
from app.services.agents.payloads import FactCheckPayload

TEXT_BUDGET = 1200
SOURCE_BUDGET = 3
CONTENT_BUDGET = 800

SYSTEM_PROMPT = """You are an expert fact-checker. Analyze the text and identify:
1. VERIFIED claims (with proof from sources)
2. UNVERIFIED/FALSE claims (with explanation why)
3. Overall confidence score (0-100)

Return ONLY valid JSON:
{
  "score": 75,
  "verified_claims": [
    {"claim": "exact quote", "status": "verified", "source": "source name"}
  ],
  "unverified_claims": [
    {"claim": "exact quote", "status": "false", "reason": "why it's false or unverified"}
  ],
  "summary": "brief overall assessment"
}"""


class FactCheckerAgent(BaseAgent):
    """Claim-by-claim verification against the retrieved sources."""

    name = AgentName.FACT_CHECKER
    system_prompt = SYSTEM_PROMPT
    max_tokens = 700
    payload_model = FactCheckPayload

    def build_prompt(self, text: str, sources: list[Source]) -> str:
        sources_text = "\n\n---\n\n".join(
            source_block(s, CONTENT_BUDGET) for s in sources[:SOURCE_BUDGET]
        ) or "(no sources found)"

        return f"""Analyze this text and extract specific claims:

TEXT TO VERIFY:
"{text[:TEXT_BUDGET]}"

SOURCES AVAILABLE:
{sources_text}

Identify specific factual claims (statistics, dates, names, events) and verify each one against the sources. Return JSON only."""

    def to_result(self, payload: FactCheckPayload, sources: list[Source]) -> AgentResult:
        findings = [
            Finding(
                kind=FindingKind.VERIFIED_CLAIM,
                text=claim.claim,
                detail=claim.source,
                status=claim.status or "verified",
            )
            for claim in payload.verified_claims
            if claim.claim
        ]
        findings += [
            Finding(
                kind=FindingKind.UNVERIFIED_CLAIM,
                text=claim.claim,
                detail=claim.reason,
                status=claim.status or "unverified",
            )
            for claim in payload.unverified_claims
            if claim.claim
        ]

        return AgentResult(
            agent=self.name,
            score=payload.score,
            findings=findings,
            summary=payload.summary,
        )
