"""
Quota Store — where the per-account daily counters live.

PROTOCOL (QuotaStore):
    get(account_id)                         → UsageQuota | None
    create_account(email, plan, role)       → UsageQuota
    reset_if_stale(account_id, today)       → UsageQuota | None (None = no such account)
    try_consume(account_id, mode, limit, today) → UsageQuota | None (None = at limit or not on today)
    release(account_id, mode, day)          → refund one unit of `day`, never below 0
    reset_all(today)                        → number of accounts reset

ATOMICITY:
reset_if_stale and try_consume are each a single atomic step: two callers
racing for the last unit cannot both get it, and only one of two callers
racing past midnight performs the reset.

DAYS:
A record only moves forward in time. reset_if_stale ignores a `today` older
than the record (a request that read the clock before midnight), and
try_consume / release only touch a record that is on the given day, so a late
request can neither stamp yesterday onto today's counters nor refund a unit
from the new day.

IMPLEMENTATIONS:
- InMemoryQuotaStore (here): per-account asyncio.Lock. Dev and tests.
- SqlQuotaStore (sql_store.py): conditional UPDATE ... RETURNING.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Optional

from app.models.schemas import UsageQuota, VerificationMode

logger = logging.getLogger(__name__)


def counter_field(mode: VerificationMode) -> str:
    """Name of the UsageQuota / Account counter a mode consumes."""
    if mode == VerificationMode.AGENT_ANALYSIS:
        return "daily_agent_analyses_used"
    return "daily_verifications_used"


class QuotaStore(ABC):
    """Abstract base class for quota persistence."""

    @abstractmethod
    async def get(self, account_id: int) -> Optional[UsageQuota]:
        pass

    @abstractmethod
    async def create_account(self, email: str, plan: str = "free", role: str = "user") -> UsageQuota:
        pass

    @abstractmethod
    async def reset_if_stale(self, account_id: int, today: date) -> Optional[UsageQuota]:
        """Zero both counters if the record is from an earlier day. Returns the current record."""
        pass

    @abstractmethod
    async def try_consume(
        self,
        account_id: int,
        mode: VerificationMode,
        limit: Optional[int],
        today: date,
    ) -> Optional[UsageQuota]:
        """
        Increment the mode's counter if the record is on `today` and the
        counter is below limit (None = unlimited).

        Returns:
            The updated record, or None when the limit is reached or the
            record is on another day
        """
        pass

    @abstractmethod
    async def release(self, account_id: int, mode: VerificationMode, day: date) -> None:
        """Undo one try_consume made on `day` (floor 0). No-op once the record has moved on."""
        pass

    @abstractmethod
    async def reset_all(self, today: date) -> int:
        pass

    async def close(self) -> None:
        return None


class InMemoryQuotaStore(QuotaStore):
    """
    Process-local quota store.

    Counters are lost on restart; use the SQL store in production.
    """

    def __init__(self):
        self._accounts: dict[int, UsageQuota] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._next_id = 1

    async def get(self, account_id: int) -> Optional[UsageQuota]:
        return self._accounts.get(account_id)

    async def create_account(self, email: str, plan: str = "free", role: str = "user") -> UsageQuota:
        account_id = self._next_id
        self._next_id += 1
        quota = UsageQuota(account_id=account_id, plan=plan, role=role)
        self._accounts[account_id] = quota
        logger.info(f"Created in-memory account {account_id} ({email}, plan={plan})")
        return quota

    async def reset_if_stale(self, account_id: int, today: date) -> Optional[UsageQuota]:
        async with self._locks[account_id]:
            quota = self._accounts.get(account_id)
            if quota is None:
                return None
            if quota.last_reset_date is None or quota.last_reset_date < today:
                quota = quota.model_copy(update={
                    "daily_verifications_used": 0,
                    "daily_agent_analyses_used": 0,
                    "last_reset_date": today,
                })
                self._accounts[account_id] = quota
                logger.info(f"Daily quota reset for account {account_id}")
            return quota

    async def try_consume(
        self,
        account_id: int,
        mode: VerificationMode,
        limit: Optional[int],
        today: date,
    ) -> Optional[UsageQuota]:
        field = counter_field(mode)
        async with self._locks[account_id]:
            quota = self._accounts.get(account_id)
            if quota is None or quota.last_reset_date != today:
                return None
            used = getattr(quota, field)
            if limit is not None and used >= limit:
                return None
            quota = quota.model_copy(update={field: used + 1})
            self._accounts[account_id] = quota
            return quota

    async def release(self, account_id: int, mode: VerificationMode, day: date) -> None:
        field = counter_field(mode)
        async with self._locks[account_id]:
            quota = self._accounts.get(account_id)
            if quota is None or quota.last_reset_date != day:
                return
            self._accounts[account_id] = quota.model_copy(
                update={field: max(0, getattr(quota, field) - 1)}
            )

    async def reset_all(self, today: date) -> int:
        for account_id in list(self._accounts):
            async with self._locks[account_id]:
                self._accounts[account_id] = self._accounts[account_id].model_copy(update={
                    "daily_verifications_used": 0,
                    "daily_agent_analyses_used": 0,
                    "last_reset_date": today,
                })
        return len(self._accounts)
