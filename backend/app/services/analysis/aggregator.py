"""
Segment Aggregator — folds per-segment agent results into one per agent.

HOW IT WORKS (per agent):
    score    = round(Σ score_i × len_i / Σ len_i),  len_i = max(1, len(segment text))
    findings = every segment's findings, in segment order, tagged with segment_index
    summary  = non-empty segment summaries joined with " | "
    manipulation_detected = any segment flagged it
    available = any segment had the collaborator available

An agent missing from every segment gets the neutral score (50).

EXAMPLE:
    Segment 0: 12,000 chars, fact_checker 80
    Segment 1:  8,000 chars, fact_checker 50
    → (80×12000 + 50×8000) / 20000 = 68

A single segment aggregates to itself (same score, same flags).
"""

from app.models.schemas import (
    NEUTRAL_SCORE,
    AgentName,
    AgentResult,
    AggregatedResult,
    Segment,
    round_half_up,
)

SUMMARY_SEPARATOR = " | "


def _aggregate_agent(agent: AgentName, segments: list[Segment]) -> AgentResult:
    weighted = 0
    total_weight = 0
    findings = []
    summaries = []
    manipulation = False
    available = False

    for segment in segments:
        result = segment.agent_results.get(agent)
        if result is None:
            continue
        weighted += result.score * segment.weight
        total_weight += segment.weight
        findings.extend(
            finding.model_copy(update={"segment_index": segment.index})
            for finding in result.findings
        )
        if result.summary:
            summaries.append(result.summary)
        manipulation = manipulation or result.manipulation_detected
        available = available or result.available

    score = round_half_up(weighted / total_weight) if total_weight else NEUTRAL_SCORE

    return AgentResult(
        agent=agent,
        score=score,
        findings=findings,
        summary=SUMMARY_SEPARATOR.join(summaries),
        manipulation_detected=manipulation,
        available=available,
    )


def aggregate_segments(segments: list[Segment]) -> AggregatedResult:
    """
    Combine segment results into one AgentResult per agent.

    Segments are ordered by index first, so the result does not depend on
    the order in which they finished.
    """
    ordered = sorted(segments, key=lambda s: s.index)
    agents = {agent: _aggregate_agent(agent, ordered) for agent in AgentName}
    return AggregatedResult(agents=agents, segments=ordered)
