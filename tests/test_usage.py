"""
Tests for the Transaction Log, Usage Reporter and purchases
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.db import init_db, drop_db, async_session_maker, Package, Transaction
from account_ledger.exceptions import PackageNotFoundError, UserNotFoundError
from account_ledger.services import (
    CreditLedger, PurchaseService, TransactionLog, UsageReporter, UserDirectory
)


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create a fresh database for each test"""
    await init_db()
    yield
    await drop_db()


@pytest_asyncio.fixture
async def db_session():
    """Get a database session"""
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession):
    user, _ = await UserDirectory(db_session).resolve_or_create("usage-test-pubkey")
    return user


@pytest_asyncio.fixture
async def packages(db_session: AsyncSession):
    """Seed the pricing catalog"""
    catalog = [
        Package(id=1, name="Starter", price_usdc=Decimal("10.00"), requests=100),
        Package(id=2, name="Mini", price_usdc=Decimal("5.00"), requests=40),
        Package(id=3, name="Odd", price_usdc=Decimal("0.10"), requests=1),
    ]
    db_session.add_all(catalog)
    await db_session.commit()
    return catalog


# ============ Transaction Log ============

@pytest.mark.asyncio
async def test_record_appends(db_session: AsyncSession, test_user, packages):
    log = TransactionLog(db_session)
    first = await log.record(test_user.id, 1)
    second = await log.record(test_user.id, 2)

    assert second.id > first.id
    assert first.created_at is not None
    count = await db_session.execute(select(func.count()).select_from(Transaction))
    assert count.scalar_one() == 2


@pytest.mark.asyncio
async def test_record_unknown_package(db_session: AsyncSession, test_user, packages):
    with pytest.raises(PackageNotFoundError):
        await TransactionLog(db_session).record(test_user.id, 999)


@pytest.mark.asyncio
async def test_latest_for_orders_by_timestamp(db_session: AsyncSession, test_user, packages):
    log = TransactionLog(db_session)
    now = datetime.utcnow()
    later = await log.record(test_user.id, 2, created_at=now)
    await log.record(test_user.id, 1, created_at=now - timedelta(hours=1))

    latest = await log.latest_for(test_user.id)
    assert latest.id == later.id
    assert latest.package_id == 2
    assert latest.amount_usdc == Decimal("5.00")


@pytest.mark.asyncio
async def test_latest_for_none(db_session: AsyncSession, test_user):
    assert await TransactionLog(db_session).latest_for(test_user.id) is None


@pytest.mark.asyncio
async def test_total_spent_is_exact(db_session: AsyncSession, test_user, packages):
    log = TransactionLog(db_session)
    for _ in range(3):
        await log.record(test_user.id, 3)
    total = await log.total_spent_for(test_user.id)
    assert isinstance(total, Decimal)
    assert total == Decimal("0.30")


# ============ Usage Reporter ============

@pytest.mark.asyncio
async def test_summarize_aggregates(db_session: AsyncSession, test_user, packages):
    log = TransactionLog(db_session)
    now = datetime.utcnow()
    await log.record(test_user.id, 1, created_at=now - timedelta(minutes=5))
    second = await log.record(test_user.id, 2, created_at=now)
    await CreditLedger(db_session).credit(test_user.id, 42)

    summary = await UsageReporter(db_session).summarize(test_user.pubkey)

    assert summary.remaining_credits == 42
    assert summary.total_spent_usdc == Decimal("15.00")
    assert summary.last_transaction.id == second.id
    assert summary.last_transaction.amount_usdc == Decimal("5.00")


@pytest.mark.asyncio
async def test_summarize_defaults(db_session: AsyncSession, test_user):
    summary = await UsageReporter(db_session).summarize(test_user.pubkey)
    assert summary.remaining_credits == 0
    assert summary.last_transaction is None
    assert summary.total_spent_usdc == Decimal("0")


@pytest.mark.asyncio
async def test_summarize_unknown_user(db_session: AsyncSession):
    with pytest.raises(UserNotFoundError):
        await UsageReporter(db_session).summarize("nobody")


# ============ Purchases ============

@pytest.mark.asyncio
async def test_buy_records_and_credits(db_session: AsyncSession, test_user, packages):
    service = PurchaseService(db_session)
    transaction, remaining = await service.buy(test_user.pubkey, 1)
    assert transaction.package_id == 1
    assert remaining == 100

    _, remaining = await service.buy(test_user.pubkey, 2)
    assert remaining == 140

    async with async_session_maker() as session:
        summary = await UsageReporter(session).summarize(test_user.pubkey)
    assert summary.total_spent_usdc == Decimal("15.00")
    assert summary.remaining_credits == 140


@pytest.mark.asyncio
async def test_buy_unknown_package_changes_nothing(db_session: AsyncSession, test_user, packages):
    with pytest.raises(PackageNotFoundError):
        await PurchaseService(db_session).buy(test_user.pubkey, 42)
    assert await CreditLedger(db_session).remaining(test_user.id) == 0
    assert await TransactionLog(db_session).latest_for(test_user.id) is None


@pytest.mark.asyncio
async def test_refund_by_pubkey(db_session: AsyncSession, test_user, packages):
    service = PurchaseService(db_session)
    await service.buy(test_user.pubkey, 2)
    await CreditLedger(db_session).debit(test_user.id, 30)
    assert await service.refund(test_user.pubkey, 10) == 20


@pytest.mark.asyncio
async def test_buy_unknown_user(db_session: AsyncSession, packages):
    with pytest.raises(UserNotFoundError):
        await PurchaseService(db_session).buy("nobody", 1)
