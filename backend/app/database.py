"""
Database connection using SQLAlchemy async.

The only durable state this service owns is the per-account usage quota
(see app/models/account.py). Everything else is recomputed per request.

The engine is built once by the service container at startup and disposed
on shutdown, so importing this module never opens a connection.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the connection pool.

    echo=True logs all SQL statements (useful for debugging, disable in production).
    """
    return create_async_engine(database_url, echo=echo)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Factory that creates database sessions.

    expire_on_commit=False keeps objects usable after commit (needed for async).
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables defined on Base. Safe to run repeatedly."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
