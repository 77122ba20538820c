"""
Quota Gatekeeper — decides whether an account may run the pipeline now.

STATE MACHINE (per account):
    Stale  (last_reset_date < today UTC) ──first touch──▶ Fresh (counters = 0)
    Fresh  ──admit (used < limit)──▶ Fresh (used + 1, reserved)
    Fresh  ──admit (used ≥ limit)──▶ refused, nothing changes

The record's day only moves forward. A request whose clock is behind the
record (it read the time just before midnight) is charged to the record's
day, and a refund only returns a unit to the day it was taken from.

FLOW:
    admission = await gatekeeper.admit(account_id, mode)
    if not admission.admitted:
        return refusal(admission.snapshot)
    try:
        result = await run_pipeline()
    except BaseException:
        await gatekeeper.settle(admission, succeeded=False)   # refund
        raise
    snapshot = await gatekeeper.settle(admission, succeeded=True)

The unit is reserved at admission (atomic compare-and-increment), so two
concurrent requests can never both take the last unit. A run that raises
gets its unit back. The gatekeeper never looks inside the pipeline.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from app.models.schemas import QuotaSnapshot, UsageQuota, VerificationMode
from app.services.errors import AccountNotFoundError
from app.services.quota.plans import build_snapshot, limits_for, today_utc
from app.services.quota.store import QuotaStore

logger = logging.getLogger(__name__)

# One retry covers a single midnight crossing between reset and consume
CONSUME_ATTEMPTS = 2


@dataclass
class Admission:
    """Outcome of admit(). snapshot reflects the reservation when admitted."""

    account_id: int
    mode: VerificationMode
    admitted: bool
    snapshot: QuotaSnapshot
    plan: str
    # Quota day the unit was taken from; a refund only applies to that day
    day: date


def _quota_day(quota: UsageQuota, today: date) -> date:
    """The later of the caller's clock and the record's day."""
    if quota.last_reset_date is not None and quota.last_reset_date > today:
        return quota.last_reset_date
    return today


class QuotaGatekeeper:
    """
    Enforces daily plan limits on top of a QuotaStore.

    `today` is injectable so tests can cross midnight without waiting.
    """

    def __init__(self, store: QuotaStore, today: Callable[[], date] = today_utc):
        self.store = store
        self.today = today

    async def _fresh_quota(self, account_id: int, today: date) -> UsageQuota:
        quota = await self.store.reset_if_stale(account_id, today)
        if quota is None:
            raise AccountNotFoundError(account_id)
        return quota

    async def admit(self, account_id: int, mode: VerificationMode) -> Admission:
        """
        Reserve one unit of the mode's counter if the plan allows it.

        A request that crossed midnight between the reset and the consume
        finds the record on a newer day; it retries once against that day.

        Raises:
            AccountNotFoundError: no quota record for account_id
        """
        today = self.today()
        for _ in range(CONSUME_ATTEMPTS):
            quota = await self._fresh_quota(account_id, today)
            day = _quota_day(quota, today)
            limit = limits_for(quota.plan, quota.role).limit_for(mode)

            consumed = await self.store.try_consume(account_id, mode, limit, day)
            if consumed is not None:
                snapshot = build_snapshot(consumed, day)
                logger.info(f"Account {account_id} admitted for {mode.value} ({snapshot.plan})")
                return Admission(account_id, mode, admitted=True, snapshot=snapshot, plan=snapshot.plan, day=day)

            quota = await self.store.get(account_id) or quota
            if quota.last_reset_date == day:
                break
            logger.warning(f"Quota day of account {account_id} moved during admission, retrying")
            today = max(self.today(), day)

        snapshot = build_snapshot(quota, day)
        logger.info(f"Account {account_id} refused: {mode.value} limit {limit} reached ({snapshot.plan})")
        return Admission(account_id, mode, admitted=False, snapshot=snapshot, plan=snapshot.plan, day=day)

    async def settle(self, admission: Admission, succeeded: bool) -> QuotaSnapshot:
        """
        Confirm (succeeded=True) or refund (succeeded=False) an admitted run.

        Returns:
            The quota snapshot after settlement
        """
        if not admission.admitted:
            return admission.snapshot

        if not succeeded:
            await self.store.release(admission.account_id, admission.mode, admission.day)
            logger.info(f"Refunded {admission.mode.value} unit for account {admission.account_id}")

        quota = await self.store.get(admission.account_id)
        if quota is None:
            return admission.snapshot
        return build_snapshot(quota, _quota_day(quota, self.today()))

    async def snapshot(self, account_id: int) -> QuotaSnapshot:
        """
        Current quota for an account (reset first if stale).

        Raises:
            AccountNotFoundError: no quota record for account_id
        """
        today = self.today()
        quota = await self._fresh_quota(account_id, today)
        return build_snapshot(quota, _quota_day(quota, today))
