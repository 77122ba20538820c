"""
Quota — per-account daily usage limits.

    QuotaGatekeeper (admit / settle / snapshot)
        └── QuotaStore
              ├── SqlQuotaStore       (QUOTA_BACKEND=sql)
              └── InMemoryQuotaStore  (QUOTA_BACKEND=memory)
"""

from app.services.quota.gatekeeper import Admission, QuotaGatekeeper
from app.services.quota.plans import PLAN_LIMITS, PlanLimits, build_snapshot, resolve_plan
from app.services.quota.sql_store import SqlQuotaStore
from app.services.quota.store import InMemoryQuotaStore, QuotaStore

__all__ = [
    "Admission",
    "InMemoryQuotaStore",
    "PLAN_LIMITS",
    "PlanLimits",
    "QuotaGatekeeper",
    "QuotaStore",
    "SqlQuotaStore",
    "build_snapshot",
    "resolve_plan",
]
