"""
Source Analyst Agent.

WHAT THIS DOES:
Judges the retrieved sources themselves: do they exist, are they credible,
do they actually support the text? Sees every source, but only 400 chars
of fetched content per source and the first 600 chars of the text.

OUTPUT:
- score: quality of the source pool (0-100)
- real_source findings (status, URL, credibility)
- fake_source findings (reason)

UNAVAILABLE:
Unlike the other agents, an unavailable analyst still lists every input
source as a real_source with status "unknown", so the caller can show
what was retrieved even without a verdict.
"""

from app.models.schemas import AgentName, AgentResult, Finding, FindingKind, Source
from app.services.agents.base import BaseAgent
from app.services.agents.payloads import SourceAnalysisPayload

TEXT_BUDGET = 600
CONTENT_BUDGET = 400

SYSTEM_PROMPT = """You are a source credibility analyst. For each source provided, determine:
1. If it's a REAL source (exists and is credible)
2. If it's a FAKE/INVENTED source (doesn't exist or is unreliable)
3. Overall source quality score (0-100)

Return ONLY valid JSON:
{
  "score": 80,
  "real_sources": [
    {"citation": "source name", "status": "verified", "url": "url", "credibility": "high/medium/low"}
  ],
  "fake_sources": [
    {"citation": "source name", "status": "not_found", "reason": "why it's fake"}
  ],
  "summary": "brief assessment"
}"""


class SourceAnalystAgent(BaseAgent):
    """Credibility review of the whole source pool."""

    name = AgentName.SOURCE_ANALYST
    system_prompt = SYSTEM_PROMPT
    max_tokens = 600
    payload_model = SourceAnalysisPayload

    def build_prompt(self, text: str, sources: list[Source]) -> str:
        blocks = []
        for s in sources:
            block = f"Title: {s.title}\nURL: {s.url}\nSnippet: {s.snippet}"
            if s.credibility_tier:
                block += f"\nDomain tier: {s.credibility_tier.value}"
            if s.content:
                block += f"\nContent: {s.content[:CONTENT_BUDGET]}"
            blocks.append(block)
        sources_text = "\n\n---\n\n".join(blocks) or "(no sources found)"

        return f"""Analyze these sources and determine if they are real and credible:

TEXT CONTEXT:
"{text[:TEXT_BUDGET]}"

SOURCES TO ANALYZE:
{sources_text}

Check if sources actually exist, are credible, and support the claims. Return JSON only."""

    def to_result(self, payload: SourceAnalysisPayload, sources: list[Source]) -> AgentResult:
        findings = [
            Finding(
                kind=FindingKind.REAL_SOURCE,
                text=item.citation,
                detail=item.credibility,
                status=item.status or "verified",
                url=item.url or None,
            )
            for item in payload.real_sources
            if item.citation or item.url
        ]
        findings += [
            Finding(
                kind=FindingKind.FAKE_SOURCE,
                text=item.citation,
                detail=item.reason,
                status=item.status or "not_found",
                url=item.url or None,
            )
            for item in payload.fake_sources
            if item.citation or item.url
        ]

        return AgentResult(
            agent=self.name,
            score=payload.score,
            findings=findings,
            summary=payload.summary,
        )

    def unavailable_result(self, sources: list[Source]) -> AgentResult:
        result = super().unavailable_result(sources)
        listed = [
            Finding(
                kind=FindingKind.REAL_SOURCE,
                text=s.title,
                detail="unknown",
                status="unknown",
                url=s.url,
            )
            for s in sources
        ]
        return result.model_copy(update={"findings": result.findings + listed})
