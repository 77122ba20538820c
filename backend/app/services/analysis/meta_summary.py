"""
Meta-Summary Generator.

WHAT THIS DOES:
Writes the human-readable synthesis shown above the score. With a working
text generator it asks the model to merge every segment's agent verdicts
into one text under 250 words. Without one (or when the model returns
nothing) it falls back to a deterministic summary built from the agent
summaries.

Either way the result starts with the localized prefix:
    en: "Otto Summary: ..."
    fr: "Synthèse Otto : ..."

ALSO HERE:
- extract_key_points: short labels for the verdict card
- build_assessment: localized verdict sentence by score band

USAGE:
    generator = MetaSummaryGenerator(text_generator)
    summary = await generator.generate(aggregated, lang="fr")
"""

import logging
import re
from typing import Optional

from app.models.schemas import AgentName, AggregatedResult, FindingKind
from app.services.analysis.locales import t
from app.services.llm import TextGenerator
from app.services.text_normalizer import collapse_whitespace

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 350
MAX_TOKENS = 1200
MAX_KEY_POINTS = 8
MAX_SUMMARY_FRAGMENTS = 5

AGENT_LABELS = {
    AgentName.FACT_CHECKER: "Fact-checker",
    AgentName.SOURCE_ANALYST: "Source analyst",
    AgentName.CONTEXT_GUARDIAN: "Context guardian",
    AgentName.FRESHNESS_DETECTOR: "Freshness detector",
}

HIGH_BAND = 85
MEDIUM_BAND = 65


class MetaSummaryGenerator:
    """
    Produces the final synthesis text.

    Pipeline position:
    Aggregator → Scorer → [MetaSummaryGenerator] → response
    """

    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator

    async def generate(self, aggregated: AggregatedResult, lang: str = "en") -> str:
        """
        Summarize the aggregated analysis.

        Returns:
            Text starting with the localized prefix (never empty)
        """
        prefix = t(lang, "summary_prefix")

        text = None
        if self.generator is not None and aggregated.segments:
            try:
                text = await self.generator.generate(
                    t(lang, "meta_system_prompt"),
                    self.build_prompt(aggregated),
                    MAX_TOKENS,
                )
            except Exception as e:
                logger.warning(f"Meta-summary generation failed: {e}")
                text = None

        if text and text.strip():
            text = text.strip()
            if not text.lower().startswith(prefix.lower()):
                text = f"{prefix} {text}"
            return text

        logger.info("Meta-summary unavailable, using deterministic fallback")
        return self.fallback(aggregated, lang)

    def build_prompt(self, aggregated: AggregatedResult) -> str:
        """Compact description of every segment plus the global averages."""
        descriptions = []
        for segment in aggregated.segments:
            lines = [
                f"Segment {segment.index + 1}:",
                f'Excerpt: "{collapse_whitespace(segment.text)[:EXCERPT_CHARS]}"',
            ]
            for agent, label in AGENT_LABELS.items():
                result = segment.agent_results.get(agent)
                score = result.score if result else "n/a"
                summary = (result.summary if result else "") or "No summary"
                lines.append(f"{label} score {score} - {summary}")
            descriptions.append("\n".join(lines))

        overview = "Global averages - " + ", ".join(
            f"{label}: {aggregated.score(agent)}" for agent, label in AGENT_LABELS.items()
        ) + "."

        return "\n\n".join([
            f"We analysed a document split into {len(aggregated.segments)} segment(s).",
            overview,
            "Note: the context guardian score measures MISSING context (higher is worse).",
            "Detailed segment insights:",
            "\n\n".join(descriptions),
            "Merge these findings into a coherent global synthesis highlighting convergence, "
            "contradictions, and level of reliability.",
        ])

    def fallback(self, aggregated: AggregatedResult, lang: str = "en") -> str:
        """
        "{prefix} Segment 1: ... Segment 2: ..." from the agent summaries.

        Without any summary at all: "{prefix} Analysis unavailable. ..."
        """
        prefix = t(lang, "summary_prefix")
        label = t(lang, "segment_label")

        parts = []
        for segment in aggregated.segments:
            summaries = [
                segment.agent_results[agent].summary
                for agent in AgentName
                if agent in segment.agent_results and segment.agent_results[agent].summary
            ]
            if summaries:
                parts.append(f"{label} {segment.index + 1}: {' '.join(summaries)}")

        if not parts:
            return f"{prefix} {t(lang, 'analysis_unavailable')}"
        return f"{prefix} {' '.join(parts)}"


# =============================================================================
# KEY POINTS & ASSESSMENT
# =============================================================================

def extract_key_points(aggregated: AggregatedResult, keywords: Optional[list[str]] = None) -> list[str]:
    """
    Short labels summarizing what the agents found.

    Order of preference:
    1. Verified claim texts and real source labels
    2. Fragments of the agent summaries (when no claim/source was found)
    3. The extracted keywords (when the summaries are empty too)

    Returns:
        At most 8 distinct labels
    """
    points: list[str] = []

    fact = aggregated.agents.get(AgentName.FACT_CHECKER)
    if fact:
        points += [f.text.strip() for f in fact.findings_of(FindingKind.VERIFIED_CLAIM)]
    sources = aggregated.agents.get(AgentName.SOURCE_ANALYST)
    if sources and sources.available:
        points += [f.text.strip() for f in sources.findings_of(FindingKind.REAL_SOURCE)]
    points = [p for p in points if p]

    if not points:
        joined = "\n".join(
            r.summary for r in aggregated.agents.values() if r.available and r.summary
        )
        fragments = [part.strip() for part in re.split(r"[,;\n.|]", joined)]
        points = [part for part in fragments if len(part) > 3][:MAX_SUMMARY_FRAGMENTS]

    if not points and keywords:
        points = list(keywords)

    return list(dict.fromkeys(points))[:MAX_KEY_POINTS]


def build_assessment(lang: str, reliability: int, key_points: list[str]) -> str:
    """
    Localized verdict: intro sentence, band sentence, optional key points.

    Bands: > 85 well supported, > 65 mostly reliable, otherwise needs verification.
    """
    if reliability > HIGH_BAND:
        verdict = t(lang, "verdict_high")
    elif reliability > MEDIUM_BAND:
        verdict = t(lang, "verdict_medium")
    else:
        verdict = t(lang, "verdict_low")

    parts = [t(lang, "assessment_intro", score=reliability), verdict]
    if key_points:
        parts.append(f"{t(lang, 'key_points_label')} {', '.join(key_points)}.")
    return " ".join(parts)
