"""
Agent Payloads — Pydantic schemas for the JSON the agents ask the model for.

Models answer "mostly" in the requested shape. These schemas absorb the
usual drift instead of failing the whole agent:
- missing fields → defaults
- scores as strings, floats or garbage → clamped int, or 50
- a list item given as a bare string → item with that text
- a list given as a single object or a string → [] / [item]

Unknown keys are ignored.
"""

from typing import Annotated, Any, ClassVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from app.models.schemas import NEUTRAL_SCORE, clamp_score


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _to_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (dict, str)):
        return [value] if value else []
    return []


def _to_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "oui", "1")
    return bool(value)


Text = Annotated[str, BeforeValidator(_to_text)]
Score = Annotated[int, BeforeValidator(clamp_score)]
Flag = Annotated[bool, BeforeValidator(_to_flag)]


class LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PayloadItem(LenientModel):
    """An entry in one of the payload lists. A bare string fills text_field."""

    text_field: ClassVar[str] = ""

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {cls.text_field: data}
        if not isinstance(data, dict):
            return {}
        return data


# =============================================================================
# FACT CHECKER
# =============================================================================

class CheckedClaim(PayloadItem):
    text_field: ClassVar[str] = "claim"

    claim: Text = ""
    status: Text = ""
    source: Text = ""
    reason: Text = ""


class FactCheckPayload(LenientModel):
    """
    {"score": 75, "verified_claims": [...], "unverified_claims": [...], "summary": "..."}
    """
    score: Score = NEUTRAL_SCORE
    verified_claims: Annotated[list[CheckedClaim], BeforeValidator(_to_list)] = Field(default_factory=list)
    unverified_claims: Annotated[list[CheckedClaim], BeforeValidator(_to_list)] = Field(default_factory=list)
    summary: Text = ""


# =============================================================================
# SOURCE ANALYST
# =============================================================================

class AnalysedSource(PayloadItem):
    text_field: ClassVar[str] = "citation"

    citation: Text = ""
    status: Text = ""
    url: Text = ""
    credibility: Text = ""
    reason: Text = ""


class SourceAnalysisPayload(LenientModel):
    """
    {"score": 80, "real_sources": [...], "fake_sources": [...], "summary": "..."}
    """
    score: Score = NEUTRAL_SCORE
    real_sources: Annotated[list[AnalysedSource], BeforeValidator(_to_list)] = Field(default_factory=list)
    fake_sources: Annotated[list[AnalysedSource], BeforeValidator(_to_list)] = Field(default_factory=list)
    summary: Text = ""


# =============================================================================
# CONTEXT GUARDIAN
# =============================================================================

class Omission(PayloadItem):
    text_field: ClassVar[str] = "description"

    type: Text = ""
    description: Text = ""
    importance: Text = ""


class ContextPayload(LenientModel):
    """
    {"context_score": 25, "omissions": [...], "manipulation_detected": false, "summary": "..."}

    context_score: 0 = complete context, 100 = heavily manipulated.
    """
    context_score: Score = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("context_score", "score"),
    )
    omissions: Annotated[list[Omission], BeforeValidator(_to_list)] = Field(default_factory=list)
    manipulation_detected: Flag = False
    summary: Text = ""


# =============================================================================
# FRESHNESS DETECTOR
# =============================================================================

class DataPoint(PayloadItem):
    text_field: ClassVar[str] = "data_point"

    data_point: Text = ""
    age: Text = ""
    source: Text = ""
    concern: Text = ""


class FreshnessPayload(LenientModel):
    """
    {"freshness_score": 60, "recent_data": [...], "outdated_data": [...], "summary": "..."}
    """
    freshness_score: Score = Field(
        default=NEUTRAL_SCORE,
        validation_alias=AliasChoices("freshness_score", "score"),
    )
    recent_data: Annotated[list[DataPoint], BeforeValidator(_to_list)] = Field(default_factory=list)
    outdated_data: Annotated[list[DataPoint], BeforeValidator(_to_list)] = Field(default_factory=list)
    summary: Text = ""
