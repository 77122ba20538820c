"""
SQL Quota Store (SQLAlchemy async).

Every mutating operation is ONE conditional UPDATE ... RETURNING statement,
so the database does the compare-and-set:

    UPDATE accounts
       SET daily_verifications_used = daily_verifications_used + 1
     WHERE id = :id AND last_reset_date = :today
       AND daily_verifications_used < :limit
    RETURNING ...

No row back means "refused": at the limit, or the record has moved to
another day since reset_if_stale (the gatekeeper then retries). A missing
account was already ruled out by reset_if_stale.

Works on PostgreSQL (asyncpg) and SQLite ≥ 3.35 (aiosqlite, tests).
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.account import Account
from app.models.schemas import UsageQuota, VerificationMode
from app.services.quota.store import QuotaStore, counter_field

logger = logging.getLogger(__name__)

QUOTA_COLUMNS = (
    Account.id,
    Account.plan,
    Account.role,
    Account.daily_verifications_used,
    Account.daily_agent_analyses_used,
    Account.last_reset_date,
)

# Sessions here are short-lived and hold no Account objects to refresh
NO_SYNC = {"synchronize_session": False}


def _to_quota(row) -> UsageQuota:
    return UsageQuota(
        account_id=row.id,
        plan=row.plan or "free",
        role=row.role or "user",
        daily_verifications_used=row.daily_verifications_used or 0,
        daily_agent_analyses_used=row.daily_agent_analyses_used or 0,
        last_reset_date=row.last_reset_date,
    )


class SqlQuotaStore(QuotaStore):
    """Quota counters stored on the accounts table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, account_id: int) -> Optional[UsageQuota]:
        async with self.session_factory() as session:
            result = await session.execute(select(*QUOTA_COLUMNS).where(Account.id == account_id))
            row = result.first()
        return _to_quota(row) if row else None

    async def create_account(self, email: str, plan: str = "free", role: str = "user") -> UsageQuota:
        async with self.session_factory() as session:
            account = Account(
                email=email,
                plan=plan,
                role=role,
                daily_verifications_used=0,
                daily_agent_analyses_used=0,
            )
            session.add(account)
            await session.commit()
            logger.info(f"Created account {account.id} ({email}, plan={plan})")
            return UsageQuota(account_id=account.id, plan=plan, role=role)

    async def reset_if_stale(self, account_id: int, today: date) -> Optional[UsageQuota]:
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                or_(Account.last_reset_date.is_(None), Account.last_reset_date < today),
            )
            .values(
                daily_verifications_used=0,
                daily_agent_analyses_used=0,
                last_reset_date=today,
                updated_at=datetime.utcnow(),
            )
            .returning(*QUOTA_COLUMNS)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt, execution_options=NO_SYNC)
            row = result.first()
            await session.commit()

        if row:
            logger.info(f"Daily quota reset for account {account_id}")
            return _to_quota(row)
        # Already fresh (or missing)
        return await self.get(account_id)

    async def try_consume(
        self,
        account_id: int,
        mode: VerificationMode,
        limit: Optional[int],
        today: date,
    ) -> Optional[UsageQuota]:
        column = getattr(Account, counter_field(mode))
        conditions = [Account.id == account_id, Account.last_reset_date == today]
        if limit is not None:
            conditions.append(column < limit)

        stmt = (
            update(Account)
            .where(*conditions)
            .values({column: column + 1, Account.updated_at: datetime.utcnow()})
            .returning(*QUOTA_COLUMNS)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt, execution_options=NO_SYNC)
            row = result.first()
            await session.commit()
        return _to_quota(row) if row else None

    async def release(self, account_id: int, mode: VerificationMode, day: date) -> None:
        column = getattr(Account, counter_field(mode))
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.last_reset_date == day, column > 0)
            .values({column: column - 1})
        )
        async with self.session_factory() as session:
            await session.execute(stmt, execution_options=NO_SYNC)
            await session.commit()

    async def reset_all(self, today: date) -> int:
        stmt = update(Account).values(
            daily_verifications_used=0,
            daily_agent_analyses_used=0,
            last_reset_date=today,
            updated_at=datetime.utcnow(),
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt, execution_options=NO_SYNC)
            await session.commit()
        logger.info(f"Reset daily counters for {result.rowcount} accounts")
        return result.rowcount
