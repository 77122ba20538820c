"""
Pydantic schemas for the verification pipeline and the API.

These define the shape of data flowing between pipeline stages and out of
the API. The VerificationResponse is the core output of the entire system.

FLOW OVERVIEW:
==============
1. Caller sends text (or a PDF) with an account id
2. Extractor produces Claim[] and keywords → Query Builder → search queries
3. Searcher returns RawSource[] → Enricher produces Source[]
4. Agents produce one AgentResult per (agent, Segment)
5. Aggregator folds segments into an AggregatedResult
6. Scorer produces a ReliabilityScore → VerificationResponse
"""

import math
from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NEUTRAL_SCORE = 50


def round_half_up(value: float) -> int:
    """Round halves up (72.5 → 73); round() would give 72."""
    return int(math.floor(value + 0.5))


def clamp_score(value, default: int = NEUTRAL_SCORE) -> int:
    """
    Coerce anything an LLM might return into an int in [0, 100].

    Numbers and numeric strings are rounded and clamped; everything else
    (None, "", "high", NaN) becomes the default.
    """
    if isinstance(value, bool):
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(numeric):
        return default
    return max(0, min(100, round_half_up(numeric)))


# =============================================================================
# CLAIMS & SOURCES
# =============================================================================
#
# WHEN USED:
# - Claim: Created by the Extractor, consumed by the Query Builder
# - RawSource: Returned by the search collaborator, untouched
# - Source: Created by the Enricher, passed to every agent
#

class ClaimType(str, Enum):
    QUANTITATIVE = "QUANTITATIVE"
    DATE = "DATE"
    HISTORICAL = "HISTORICAL"
    GEOGRAPHIC = "GEOGRAPHIC"
    SCIENTIFIC = "SCIENTIFIC"


class Claim(BaseModel):
    """
    A typed fragment of text that looks like a checkable assertion.

    Example:
        Text: "Paris had 2.1 million inhabitants in 2020."
        Claims: [QUANTITATIVE "2.1 million", DATE "2020"]
    """
    model_config = ConfigDict(frozen=True)

    type: ClaimType
    text: str
    verifiable: bool = True


class CredibilityTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


class RawSource(BaseModel):
    """A search hit exactly as the retrieval collaborator returned it."""
    title: str = ""
    url: str = ""
    snippet: str = ""


class Source(BaseModel):
    """
    An external reference used as evidence for or against the text.

    USED BY: Every agent (prompt context) and the final response
    LIFECYCLE: Built once by the SourceEnricher, then only filtered/ranked
    """
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str = ""
    domain: Optional[str] = None
    credibility_tier: CredibilityTier = CredibilityTier.UNKNOWN
    relevance_score: int = Field(default=0, ge=0, le=100)
    # Page text, only filled for trusted domains
    content: str = ""


# =============================================================================
# AGENT SCHEMAS
# =============================================================================
#
# PIPELINE:
# AgentPanel → {agent: AgentResult} per Segment → Aggregator → AggregatedResult
#

class AgentName(str, Enum):
    FACT_CHECKER = "fact_checker"
    SOURCE_ANALYST = "source_analyst"
    CONTEXT_GUARDIAN = "context_guardian"
    FRESHNESS_DETECTOR = "freshness_detector"


class FindingKind(str, Enum):
    VERIFIED_CLAIM = "verified_claim"
    UNVERIFIED_CLAIM = "unverified_claim"
    REAL_SOURCE = "real_source"
    FAKE_SOURCE = "fake_source"
    OMISSION = "omission"
    RECENT_DATA = "recent_data"
    OUTDATED_DATA = "outdated_data"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class Finding(BaseModel):
    """
    One tagged entry produced by an agent.

    Examples:
        Finding(kind=VERIFIED_CLAIM, text="2.1 million inhabitants", detail="INSEE", status="verified")
        Finding(kind=OMISSION, text="No timeframe given", status="critical", detail="temporal")
    """
    model_config = ConfigDict(frozen=True)

    kind: FindingKind
    text: str = ""
    detail: str = ""
    status: str = ""
    url: Optional[str] = None
    # Set by the Aggregator so long-document findings can be traced back
    segment_index: Optional[int] = None


class AgentResult(BaseModel):
    """
    Output of one agent over one piece of text.

    The score is always an int in [0, 100]. For the context guardian a
    HIGHER score means MORE missing context; the scorer inverts it.
    """
    agent: AgentName
    score: int = Field(default=NEUTRAL_SCORE, ge=0, le=100)
    findings: list[Finding] = Field(default_factory=list)
    summary: str = ""
    manipulation_detected: bool = False
    available: bool = True

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value):
        return clamp_score(value)

    def findings_of(self, kind: FindingKind) -> list[Finding]:
        return [f for f in self.findings if f.kind == kind]


class Segment(BaseModel):
    """A contiguous, paragraph-respecting chunk of the input and its agent results."""
    index: int
    text: str
    agent_results: dict[AgentName, AgentResult] = Field(default_factory=dict)

    @property
    def weight(self) -> int:
        """Aggregation weight: character length, never zero."""
        return max(1, len(self.text))


class AggregatedResult(BaseModel):
    """
    Per-agent results combined across all segments.

    A short text produces a single segment, so this is also the shape
    of a non-segmented analysis.
    """
    agents: dict[AgentName, AgentResult]
    segments: list[Segment] = Field(default_factory=list)

    def score(self, agent: AgentName) -> int:
        result = self.agents.get(agent)
        return result.score if result else NEUTRAL_SCORE

    @property
    def manipulation_detected(self) -> bool:
        return any(r.manipulation_detected for r in self.agents.values())


# =============================================================================
# SCORING SCHEMAS
# =============================================================================

class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BreakdownEntry(BaseModel):
    weight: float
    # Contribution score (context is already inverted here)
    score: int
    # What the agent actually returned
    raw_score: int


class ReliabilityScore(BaseModel):
    """The single 0-100 figure plus how it was obtained."""
    value: int = Field(ge=0, le=100)
    breakdown: dict[AgentName, BreakdownEntry]
    summary: str
    risk_level: RiskLevel


# =============================================================================
# QUOTA SCHEMAS
# =============================================================================
#
# None in a limit/remaining field means "unlimited".
#

class UsageQuota(BaseModel):
    """Stored per-account counters, as read from the quota store."""
    account_id: int
    plan: str
    role: str = "user"
    daily_verifications_used: int = 0
    daily_agent_analyses_used: int = 0
    last_reset_date: Optional[date] = None


class QuotaLimits(BaseModel):
    daily_verifications: Optional[int]
    daily_agent_analyses: Optional[int]


class QuotaUsage(BaseModel):
    verifications_used: int
    agent_analyses_used: int


class QuotaRemaining(BaseModel):
    verifications: Optional[int]
    agent_analyses: Optional[int]


class QuotaSnapshot(BaseModel):
    """What the caller sees about their quota after (or instead of) a run."""
    plan: str
    limits: QuotaLimits
    usage: QuotaUsage
    remaining: QuotaRemaining
    period: str = "daily"
    reset_at_utc: str


# =============================================================================
# PIPELINE OUTPUT
# =============================================================================

class VerificationMode(str, Enum):
    # Counts against daily_verifications
    STANDARD = "standard"
    # Counts against daily_agent_analyses, always segmented
    AGENT_ANALYSIS = "agent_analysis"


class RefusalReason(str, Enum):
    INVALID_INPUT = "invalid_input"
    LIMIT_REACHED = "limit_reached"
    ACCOUNT_NOT_FOUND = "account_not_found"


class VerificationRefusal(BaseModel):
    """
    The pipeline declined to run. Not an error: a normal outcome.

    quota is set for limit_reached.
    """
    status: Literal["refused"] = "refused"
    reason: RefusalReason
    message: str
    quota: Optional[QuotaSnapshot] = None


class VerificationResponse(BaseModel):
    """
    The main output of the pipeline.

    FRONTEND MAPPING:
    - score / risk_level → reliability gauge
    - summary → meta-summary panel ("Otto Summary: ...")
    - assessment + key_points → verdict card
    - breakdown / agents → per-dimension drill-down
    - sources → evidence list
    - quota → usage badge
    """
    status: Literal["ok"] = "ok"
    mode: VerificationMode
    lang: str
    score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    summary: str
    assessment: str
    breakdown: dict[AgentName, BreakdownEntry]
    agents: dict[AgentName, AgentResult]
    manipulation_detected: bool = False
    segment_count: int = 1
    sources: list[Source] = Field(default_factory=list)
    claims: list[Claim] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    quota: Optional[QuotaSnapshot] = None


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class VerifyRequest(BaseModel):
    """
    Request body for POST /api/verify.

    Example:
        {"text": "France had 68 million inhabitants in 2023.", "account_id": 1, "lang": "en"}
    """
    text: str = Field(description="The text to verify")
    account_id: int
    lang: str = Field(default="en", description="Locale for summaries: en or fr")
