"""
Engine and session factory for the ledger database.

One engine per process. Every request gets its own AsyncSession from
get_db(); services never open sessions themselves.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from account_ledger.config import settings
from account_ledger.db.models import Base


def _engine_options(database_url: str) -> Dict[str, Any]:
    if database_url.startswith("sqlite"):
        # Single shared connection so an in-memory or file database is seen
        # by every session in the process (development and the test suite)
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    # PostgreSQL: the conditional debit and the subscription compare-and-swap
    # each hold a connection only for one short statement sequence
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "connect_args": {"command_timeout": settings.db_command_timeout},
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# Objects stay readable after commit. Refused debits and lost
# compare-and-swap rounds commit instead of rolling back, so nothing expires
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency yielding the request's ledger session"""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create the users, credits, packages and transactions tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drop every ledger table (test teardown)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
