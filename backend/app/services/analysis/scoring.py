"""
Global Reliability Scorer.

THE FORMULA:
    reliability = round(0.4 × fact_checker
                      + 0.3 × source_analyst
                      + 0.2 × (100 − context_guardian)
                      + 0.1 × freshness_detector)

The context guardian reports MISSING context (higher = worse), so its
contribution is inverted. Every input is clamped to [0, 100] first and the
result is clamped too.

EXAMPLE:
    fact 80, source 70, context 30, freshness 60
    → 32 + 21 + 14 + 6 = 73

RISK LEVEL:
    ≥ 75 → low, ≥ 50 → medium, otherwise high

Weights come from a ScoringPolicy (settings-driven, defaults above).
"""

import logging
from dataclasses import dataclass, field

from app.config import Settings
from app.models.schemas import (
    AgentName,
    AggregatedResult,
    BreakdownEntry,
    ReliabilityScore,
    RiskLevel,
    clamp_score,
    round_half_up,
)
from app.services.analysis.locales import t

logger = logging.getLogger(__name__)

LOW_RISK_THRESHOLD = 75
MEDIUM_RISK_THRESHOLD = 50

# Agents whose score measures a defect rather than a quality
INVERTED_AGENTS = {AgentName.CONTEXT_GUARDIAN}

DEFAULT_WEIGHTS = {
    AgentName.FACT_CHECKER: 0.4,
    AgentName.SOURCE_ANALYST: 0.3,
    AgentName.CONTEXT_GUARDIAN: 0.2,
    AgentName.FRESHNESS_DETECTOR: 0.1,
}


@dataclass(frozen=True)
class ScoringPolicy:
    """Weight per agent dimension."""

    weights: dict[AgentName, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoringPolicy":
        return cls(weights={
            AgentName.FACT_CHECKER: settings.weight_fact_checker,
            AgentName.SOURCE_ANALYST: settings.weight_source_analyst,
            AgentName.CONTEXT_GUARDIAN: settings.weight_context_guardian,
            AgentName.FRESHNESS_DETECTOR: settings.weight_freshness_detector,
        })


def risk_level(score: int) -> RiskLevel:
    if score >= LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def compute_reliability(
    aggregated: AggregatedResult,
    policy: ScoringPolicy | None = None,
    lang: str = "en",
) -> ReliabilityScore:
    """
    Combine the four aggregated agent scores into one 0-100 reliability score.

    Args:
        aggregated: Output of aggregate_segments
        policy: Weights (defaults to 0.4 / 0.3 / 0.2 / 0.1)
        lang: Locale of the one-line summary

    Returns:
        ReliabilityScore with breakdown, summary and risk level
    """
    policy = policy or ScoringPolicy()

    breakdown: dict[AgentName, BreakdownEntry] = {}
    total = 0.0
    for agent in AgentName:
        raw = clamp_score(aggregated.score(agent))
        contribution = 100 - raw if agent in INVERTED_AGENTS else raw
        weight = policy.weights.get(agent, 0.0)
        total += weight * contribution
        breakdown[agent] = BreakdownEntry(weight=weight, score=contribution, raw_score=raw)

    # Float products like 0.2 × 70 carry tiny errors; settle them before rounding
    value = max(0, min(100, round_half_up(round(total, 6))))
    logger.info(f"Reliability {value} ({', '.join(f'{a.value}={e.raw_score}' for a, e in breakdown.items())})")

    return ReliabilityScore(
        value=value,
        breakdown=breakdown,
        summary=t(lang, "reliability_sentence", score=value),
        risk_level=risk_level(value),
    )
