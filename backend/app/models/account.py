"""
SQLAlchemy model for the accounts table.

Only the fields the quota gatekeeper needs live here. Credentials, billing
identifiers and profile data belong to the account service, not this core.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Account(Base):
    """
    An account and its daily usage counters.

    Counters start at zero when the account is created, are incremented on
    every admitted pipeline run, and are reset the first time the account is
    touched after UTC midnight (last_reset_date != today).
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    # Subscription tier: free / starter / pro / business
    plan: Mapped[str] = mapped_column(String(50), default="free", index=True)
    role: Mapped[str] = mapped_column(String(50), default="user")

    daily_verifications_used: Mapped[int] = mapped_column(Integer, default=0)
    daily_agent_analyses_used: Mapped[int] = mapped_column(Integer, default=0)

    # UTC calendar day of the last reset. NULL means "never reset" (stale).
    last_reset_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email} plan={self.plan}>"
