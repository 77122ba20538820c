"""
Context Guardian Agent.

WHAT THIS DOES:
Looks for what the text leaves out: missing timeframes, missing
geography, omitted facts that change the picture.

OUTPUT:
- score: the context score. HIGHER = MORE MISSING CONTEXT
  (0 = complete, 100 = heavily manipulated). The global scorer inverts it.
- omission findings (detail = temporal/geographic/fact, status = importance)
- manipulation_detected flag

BUDGETS: first 1,200 chars of text, 3 sources (400 chars of content or the
snippet), 500 completion tokens.
"""

from app.models.schemas import AgentName, AgentResult, Finding, FindingKind, Source
from app.services.agents.base import BaseAgent
from app.services.agents.payloads import ContextPayload

TEXT_BUDGET = 1200
SOURCE_BUDGET = 3
CONTENT_BUDGET = 400

SYSTEM_PROMPT = """You are a context analysis expert. Identify what important information is MISSING or OMITTED from the text:
1. Missing temporal context (dates, timeframes)
2. Missing geographic context
3. Missing important facts
4. Context manipulation score (0-100, where 0 = complete, 100 = heavily manipulated)

Return ONLY valid JSON:
{
  "context_score": 25,
  "omissions": [
    {"type": "temporal/geographic/fact", "description": "what's missing", "importance": "critical/important/minor"}
  ],
  "manipulation_detected": false,
  "summary": "brief assessment"
}"""


class ContextGuardianAgent(BaseAgent):
    """Omission and framing review."""

    name = AgentName.CONTEXT_GUARDIAN
    system_prompt = SYSTEM_PROMPT
    max_tokens = 500
    payload_model = ContextPayload

    def build_prompt(self, text: str, sources: list[Source]) -> str:
        sources_text = "\n".join(
            (s.content[:CONTENT_BUDGET] if s.content else s.snippet) for s in sources[:SOURCE_BUDGET]
        ) or "(no sources found)"

        return f"""Analyze what's MISSING from this text:

TEXT:
"{text[:TEXT_BUDGET]}"

SOURCES FOR CONTEXT:
{sources_text}

What important information is omitted? What context is missing? Return JSON only."""

    def to_result(self, payload: ContextPayload, sources: list[Source]) -> AgentResult:
        findings = [
            Finding(
                kind=FindingKind.OMISSION,
                text=omission.description,
                detail=omission.type,
                status=omission.importance,
            )
            for omission in payload.omissions
            if omission.description
        ]

        return AgentResult(
            agent=self.name,
            score=payload.context_score,
            findings=findings,
            summary=payload.summary,
            manipulation_detected=payload.manipulation_detected,
        )
