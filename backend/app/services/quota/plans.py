"""
Subscription plans and their daily limits.

    plan       verifications   agent analyses
    free             3               1
    starter         10               5
    pro             30           unlimited
    business    unlimited        unlimited

None means unlimited. Unknown plans resolve to free, except for admin and
business roles, which always get business limits.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from app.models.schemas import (
    QuotaLimits,
    QuotaRemaining,
    QuotaSnapshot,
    QuotaUsage,
    UsageQuota,
    VerificationMode,
)

DEFAULT_PLAN = "free"
PRIVILEGED_ROLES = {"admin", "business"}


@dataclass(frozen=True)
class PlanLimits:
    daily_verifications: Optional[int]
    daily_agent_analyses: Optional[int]

    def limit_for(self, mode: VerificationMode) -> Optional[int]:
        if mode == VerificationMode.AGENT_ANALYSIS:
            return self.daily_agent_analyses
        return self.daily_verifications


PLAN_LIMITS: dict[str, PlanLimits] = {
    "free": PlanLimits(daily_verifications=3, daily_agent_analyses=1),
    "starter": PlanLimits(daily_verifications=10, daily_agent_analyses=5),
    "pro": PlanLimits(daily_verifications=30, daily_agent_analyses=None),
    "business": PlanLimits(daily_verifications=None, daily_agent_analyses=None),
}


def resolve_plan(plan: Optional[str], role: Optional[str] = None) -> str:
    """
    Map a stored plan / role pair onto a known plan name.

    Examples:
        resolve_plan("Pro")               → "pro"
        resolve_plan("gold")              → "free"
        resolve_plan("gold", "admin")     → "business"
    """
    raw_plan = (plan or "").strip().lower()
    if raw_plan in PLAN_LIMITS:
        return raw_plan
    if (role or "").strip().lower() in PRIVILEGED_ROLES:
        return "business"
    return DEFAULT_PLAN


def limits_for(plan: Optional[str], role: Optional[str] = None) -> PlanLimits:
    return PLAN_LIMITS[resolve_plan(plan, role)]


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def next_reset_at(today: date) -> str:
    """ISO timestamp of the next UTC midnight after `today`."""
    midnight = datetime.combine(today + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return midnight.isoformat().replace("+00:00", "Z")


def _remaining(limit: Optional[int], used: int) -> Optional[int]:
    return None if limit is None else max(0, limit - used)


def build_snapshot(quota: UsageQuota, today: date) -> QuotaSnapshot:
    """
    What the caller sees about their quota.

    Counters from an earlier day read as zero (they are reset on the next write).
    """
    plan = resolve_plan(quota.plan, quota.role)
    limits = PLAN_LIMITS[plan]

    fresh = quota.last_reset_date == today
    verifications_used = max(0, quota.daily_verifications_used) if fresh else 0
    agent_analyses_used = max(0, quota.daily_agent_analyses_used) if fresh else 0

    return QuotaSnapshot(
        plan=plan,
        limits=QuotaLimits(
            daily_verifications=limits.daily_verifications,
            daily_agent_analyses=limits.daily_agent_analyses,
        ),
        usage=QuotaUsage(
            verifications_used=verifications_used,
            agent_analyses_used=agent_analyses_used,
        ),
        remaining=QuotaRemaining(
            verifications=_remaining(limits.daily_verifications, verifications_used),
            agent_analyses=_remaining(limits.daily_agent_analyses, agent_analyses_used),
        ),
        reset_at_utc=next_reset_at(today),
    )
