# Database models and API schemas
from app.models.account import Account
from app.models.schemas import (
    AgentResult,
    AggregatedResult,
    Claim,
    QuotaSnapshot,
    ReliabilityScore,
    Source,
    VerificationRefusal,
    VerificationResponse,
)

__all__ = [
    "Account",
    "AgentResult",
    "AggregatedResult",
    "Claim",
    "QuotaSnapshot",
    "ReliabilityScore",
    "Source",
    "VerificationRefusal",
    "VerificationResponse",
]
