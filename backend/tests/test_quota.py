"""
Tests for plans, the in-memory quota store and the gatekeeper.

The gatekeeper's clock is injected, so crossing UTC midnight is instant.
Run with: pytest tests/test_quota.py -v
"""

import asyncio
from datetime import date, timedelta

import pytest

from app.models.schemas import UsageQuota, VerificationMode
from app.services.errors import AccountNotFoundError
from app.services.quota import InMemoryQuotaStore, QuotaGatekeeper, build_snapshot, resolve_plan
from app.services.quota.plans import next_reset_at
from conftest import FixedClock

DAY_ONE = date(2026, 1, 15)
STANDARD = VerificationMode.STANDARD
AGENT = VerificationMode.AGENT_ANALYSIS


# =============================================================================
# PLANS
# =============================================================================

def test_resolve_plan():
    assert resolve_plan("Pro") == "pro"
    assert resolve_plan("gold") == "free"
    assert resolve_plan(None) == "free"
    assert resolve_plan("gold", "admin") == "business"
    assert resolve_plan("starter", "admin") == "starter"


def test_reset_is_next_utc_midnight():
    assert next_reset_at(DAY_ONE) == "2026-01-16T00:00:00Z"


def test_stale_counters_read_as_zero():
    quota = UsageQuota(
        account_id=1, plan="free", daily_verifications_used=3, last_reset_date=DAY_ONE - timedelta(days=1)
    )
    snapshot = build_snapshot(quota, DAY_ONE)

    assert snapshot.usage.verifications_used == 0
    assert snapshot.remaining.verifications == 3


# =============================================================================
# GATEKEEPER
# =============================================================================

@pytest.mark.asyncio
async def test_free_plan_allows_three_verifications():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    for expected_remaining in (2, 1, 0):
        admission = await gatekeeper.admit(account.account_id, STANDARD)
        assert admission.admitted
        assert admission.snapshot.remaining.verifications == expected_remaining

    refused = await gatekeeper.admit(account.account_id, STANDARD)
    assert not refused.admitted
    assert refused.plan == "free"
    assert refused.snapshot.remaining.verifications == 0
    assert refused.snapshot.usage.verifications_used == 3


@pytest.mark.asyncio
async def test_agent_analysis_has_its_own_counter():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    assert (await gatekeeper.admit(account.account_id, AGENT)).admitted
    assert not (await gatekeeper.admit(account.account_id, AGENT)).admitted
    assert (await gatekeeper.admit(account.account_id, STANDARD)).admitted


@pytest.mark.asyncio
async def test_counters_reset_after_utc_midnight():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")
    clock = FixedClock(DAY_ONE)
    gatekeeper = QuotaGatekeeper(store, today=clock)

    for _ in range(3):
        await gatekeeper.admit(account.account_id, STANDARD)
    assert not (await gatekeeper.admit(account.account_id, STANDARD)).admitted

    clock.value = DAY_ONE + timedelta(days=1)
    admission = await gatekeeper.admit(account.account_id, STANDARD)

    assert admission.admitted
    assert admission.snapshot.usage.verifications_used == 1
    assert admission.snapshot.reset_at_utc == "2026-01-17T00:00:00Z"


@pytest.mark.asyncio
async def test_reset_happens_once_per_day():
    """A second touch on the same day must not wipe units consumed since the reset."""
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")

    await store.reset_if_stale(account.account_id, DAY_ONE)
    await store.try_consume(account.account_id, STANDARD, 3, DAY_ONE)
    again = await store.reset_if_stale(account.account_id, DAY_ONE)

    assert again.daily_verifications_used == 1


@pytest.mark.asyncio
async def test_business_and_admin_are_unlimited():
    store = InMemoryQuotaStore()
    business = await store.create_account("b@example.com", plan="business")
    admin = await store.create_account("admin@example.com", plan="legacy", role="admin")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    for _ in range(50):
        assert (await gatekeeper.admit(business.account_id, STANDARD)).admitted
        assert (await gatekeeper.admit(admin.account_id, AGENT)).admitted

    snapshot = await gatekeeper.snapshot(business.account_id)
    assert snapshot.remaining.verifications is None
    assert snapshot.limits.daily_verifications is None
    assert snapshot.usage.verifications_used == 50


@pytest.mark.asyncio
async def test_concurrent_admissions_never_exceed_the_limit():
    """Ten simultaneous requests on a 3/day plan: exactly three get in."""
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    admissions = await asyncio.gather(
        *(gatekeeper.admit(account.account_id, STANDARD) for _ in range(10))
    )

    assert sum(1 for a in admissions if a.admitted) == 3
    quota = await store.get(account.account_id)
    assert quota.daily_verifications_used == 3


@pytest.mark.asyncio
async def test_failed_run_is_refunded():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="free")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    admission = await gatekeeper.admit(account.account_id, STANDARD)
    snapshot = await gatekeeper.settle(admission, succeeded=False)

    assert snapshot.usage.verifications_used == 0
    assert snapshot.remaining.verifications == 3


@pytest.mark.asyncio
async def test_successful_run_keeps_the_unit():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="starter")
    gatekeeper = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))

    admission = await gatekeeper.admit(account.account_id, STANDARD)
    snapshot = await gatekeeper.settle(admission, succeeded=True)

    assert snapshot.usage.verifications_used == 1
    assert snapshot.remaining.verifications == 9


@pytest.mark.asyncio
async def test_refund_never_goes_below_zero():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com")
    await store.reset_if_stale(account.account_id, DAY_ONE)

    await store.release(account.account_id, STANDARD, DAY_ONE)

    assert (await store.get(account.account_id)).daily_verifications_used == 0


@pytest.mark.asyncio
async def test_unknown_account():
    gatekeeper = QuotaGatekeeper(InMemoryQuotaStore(), today=FixedClock(DAY_ONE))

    with pytest.raises(AccountNotFoundError):
        await gatekeeper.admit(999, STANDARD)
    with pytest.raises(AccountNotFoundError):
        await gatekeeper.snapshot(999)


@pytest.mark.asyncio
async def test_reset_all():
    store = InMemoryQuotaStore()
    first = await store.create_account("a@example.com")
    await store.create_account("b@example.com")
    await store.reset_if_stale(first.account_id, DAY_ONE)
    await store.try_consume(first.account_id, STANDARD, None, DAY_ONE)

    assert await store.reset_all(DAY_ONE) == 2
    assert (await store.get(first.account_id)).daily_verifications_used == 0


# =============================================================================
# CROSSING MIDNIGHT
# =============================================================================

class PausingStore(InMemoryQuotaStore):
    """Holds the first try_consume until `resume` is set."""

    def __init__(self):
        super().__init__()
        self.consume_reached = asyncio.Event()
        self.resume = asyncio.Event()
        self._paused = False

    async def try_consume(self, account_id, mode, limit, today):
        if not self._paused:
            self._paused = True
            self.consume_reached.set()
            await self.resume.wait()
        return await super().try_consume(account_id, mode, limit, today)


@pytest.mark.asyncio
async def test_late_request_from_yesterday_does_not_reset_today_twice():
    store = PausingStore()
    account = await store.create_account("a@example.com", plan="starter")
    day_two = DAY_ONE + timedelta(days=1)
    before_midnight = QuotaGatekeeper(store, today=FixedClock(DAY_ONE))
    after_midnight = QuotaGatekeeper(store, today=FixedClock(day_two))

    late = asyncio.create_task(before_midnight.admit(account.account_id, STANDARD))
    await store.consume_reached.wait()
    assert (await after_midnight.admit(account.account_id, STANDARD)).admitted
    store.resume.set()
    late_admission = await late

    assert late_admission.admitted
    assert late_admission.day == day_two
    quota = await store.get(account.account_id)
    assert quota.last_reset_date == day_two
    assert quota.daily_verifications_used == 2

    third = await after_midnight.admit(account.account_id, STANDARD)
    assert third.snapshot.usage.verifications_used == 3


@pytest.mark.asyncio
async def test_refund_after_midnight_leaves_the_new_day_alone():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com", plan="starter")
    clock = FixedClock(DAY_ONE)
    gatekeeper = QuotaGatekeeper(store, today=clock)

    admission = await gatekeeper.admit(account.account_id, STANDARD)
    clock.value = DAY_ONE + timedelta(days=1)
    assert (await gatekeeper.admit(account.account_id, STANDARD)).admitted

    snapshot = await gatekeeper.settle(admission, succeeded=False)

    assert snapshot.usage.verifications_used == 1
    assert (await store.get(account.account_id)).daily_verifications_used == 1


@pytest.mark.asyncio
async def test_store_never_moves_back_a_day():
    store = InMemoryQuotaStore()
    account = await store.create_account("a@example.com")
    day_two = DAY_ONE + timedelta(days=1)
    await store.reset_if_stale(account.account_id, day_two)
    await store.try_consume(account.account_id, STANDARD, 3, day_two)

    again = await store.reset_if_stale(account.account_id, DAY_ONE)

    assert again.last_reset_date == day_two
    assert again.daily_verifications_used == 1
    assert await store.try_consume(account.account_id, STANDARD, 3, DAY_ONE) is None
