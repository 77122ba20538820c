"""
Freshness Detector Agent.

WHAT THIS DOES:
Separates recent data points (< 6 months) from outdated ones (> 18 months)
and scores how current the text is overall (100 = very recent).

BUDGETS: first 800 chars of text, 3 sources (title + 400 chars of content
or the snippet), 500 completion tokens.
"""

from app.models.schemas import AgentName, AgentResult, Finding, FindingKind, Source
from app.services.agents.base import BaseAgent
from app.services.agents.payloads import FreshnessPayload

TEXT_BUDGET = 800
SOURCE_BUDGET = 3
CONTENT_BUDGET = 400

SYSTEM_PROMPT = """You are a data freshness analyst. Identify:
1. Recent data (< 6 months old)
2. Outdated data (> 18 months old)
3. Freshness score (0-100, where 100 = very recent)

Return ONLY valid JSON:
{
  "freshness_score": 60,
  "recent_data": [
    {"data_point": "what is recent", "age": "how recent", "source": "which source"}
  ],
  "outdated_data": [
    {"data_point": "what is outdated", "age": "how old", "concern": "why it matters"}
  ],
  "summary": "brief assessment"
}"""


class FreshnessDetectorAgent(BaseAgent):
    """Recency review of the data points in the text."""

    name = AgentName.FRESHNESS_DETECTOR
    system_prompt = SYSTEM_PROMPT
    max_tokens = 500
    payload_model = FreshnessPayload

    def build_prompt(self, text: str, sources: list[Source]) -> str:
        sources_text = "\n\n".join(
            f"{s.title}\n{s.content[:CONTENT_BUDGET] if s.content else s.snippet}"
            for s in sources[:SOURCE_BUDGET]
        ) or "(no sources found)"

        return f"""Determine how recent and relevant the data is in this text:

TEXT:
"{text[:TEXT_BUDGET]}"

SOURCES:
{sources_text}

List fresh vs outdated data. Return JSON only."""

    def to_result(self, payload: FreshnessPayload, sources: list[Source]) -> AgentResult:
        findings = [
            Finding(
                kind=FindingKind.RECENT_DATA,
                text=point.data_point,
                detail=point.source,
                status=point.age,
            )
            for point in payload.recent_data
            if point.data_point
        ]
        findings += [
            Finding(
                kind=FindingKind.OUTDATED_DATA,
                text=point.data_point,
                detail=point.concern,
                status=point.age,
            )
            for point in payload.outdated_data
            if point.data_point
        ]

        return AgentResult(
            agent=self.name,
            score=payload.freshness_score,
            findings=findings,
            summary=payload.summary,
        )
