"""
Tests for the Credit Ledger
"""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.db import init_db, drop_db, async_session_maker, Credit
from account_ledger.exceptions import InsufficientCreditsError, InvalidAmountError, StorageError
from account_ledger.services import CreditLedger, UserDirectory


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
    user, _ = await UserDirectory(db_session).resolve_or_create("ledger-test-pubkey")
    return user


@pytest_asyncio.fixture
async def ledger(db_session: AsyncSession):
    return CreditLedger(db_session)


# ============ Balance ============

@pytest.mark.asyncio
async def test_remaining_without_row_is_zero(ledger: CreditLedger, test_user):
    assert await ledger.remaining(test_user.id) == 0


@pytest.mark.asyncio
async def test_credit_creates_row_with_api_key(ledger: CreditLedger, test_user):
    balance = await ledger.credit(test_user.id, 100)
    assert balance == 100
    assert await ledger.remaining(test_user.id) == 100

    api_key = await ledger.api_key_for(test_user.id)
    assert api_key
    assert len(api_key) >= 32


@pytest.mark.asyncio
async def test_credit_increments_and_keeps_api_key(ledger: CreditLedger, db_session: AsyncSession, test_user):
    await ledger.credit(test_user.id, 10)
    first_key = await ledger.api_key_for(test_user.id)

    assert await ledger.credit(test_user.id, 5) == 15
    assert await ledger.api_key_for(test_user.id) == first_key

    rows = await db_session.execute(
        select(func.count()).select_from(Credit).where(Credit.user_id == test_user.id)
    )
    assert rows.scalar_one() == 1


@pytest.mark.asyncio
async def test_api_key_absent_without_row(ledger: CreditLedger, test_user):
    assert await ledger.api_key_for(test_user.id) is None


# ============ Debit ============

@pytest.mark.asyncio
async def test_debit_decrements(ledger: CreditLedger, test_user):
    await ledger.credit(test_user.id, 10)
    assert await ledger.debit(test_user.id, 3) == 7
    assert await ledger.debit(test_user.id, 7) == 0
    assert await ledger.remaining(test_user.id) == 0


@pytest.mark.asyncio
async def test_debit_beyond_balance_fails_and_keeps_balance(ledger: CreditLedger, test_user):
    await ledger.credit(test_user.id, 5)
    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.debit(test_user.id, 6)

    assert exc_info.value.required == 6
    assert exc_info.value.available == 5
    assert await ledger.remaining(test_user.id) == 5


@pytest.mark.asyncio
async def test_debit_without_row_fails(ledger: CreditLedger, test_user):
    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.debit(test_user.id, 1)
    assert exc_info.value.available == 0


@pytest.mark.asyncio
async def test_refused_debit_keeps_loaded_user_usable(db_session: AsyncSession, ledger: CreditLedger):
    directory = UserDirectory(db_session)
    await directory.resolve_or_create("refused-debit")
    user = await directory.find_by_pubkey("refused-debit")
    with pytest.raises(InsufficientCreditsError):
        await ledger.debit(user.id, 1)

    assert user.pubkey == "refused-debit"
    assert user.subscriptions == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -1, 1.5, True])
async def test_invalid_amounts(ledger: CreditLedger, test_user, amount):
    with pytest.raises(InvalidAmountError):
        await ledger.debit(test_user.id, amount)
    with pytest.raises(InvalidAmountError):
        await ledger.credit(test_user.id, amount)


@pytest.mark.asyncio
async def test_sequential_debits_never_go_negative(ledger: CreditLedger, test_user):
    await ledger.credit(test_user.id, 10)
    succeeded = 0
    for amount in [4, 4, 4, 1, 3, 1]:
        try:
            await ledger.debit(test_user.id, amount)
            succeeded += amount
        except InsufficientCreditsError:
            pass

    assert succeeded == 10
    assert await ledger.remaining(test_user.id) == 0


# ============ Refund ============

@pytest.mark.asyncio
async def test_refund_restores_credits(ledger: CreditLedger, test_user):
    await ledger.credit(test_user.id, 10)
    await ledger.debit(test_user.id, 8)
    assert await ledger.refund(test_user.id, 3) == 5


@pytest.mark.asyncio
async def test_refund_without_row_creates_it(ledger: CreditLedger, test_user):
    assert await ledger.refund(test_user.id, 2) == 2


@pytest.mark.asyncio
async def test_credit_rejects_unsupported_dialect(db_session: AsyncSession, ledger: CreditLedger, test_user, monkeypatch):
    monkeypatch.setattr(
        db_session, "get_bind", lambda *args, **kwargs: SimpleNamespace(dialect=SimpleNamespace(name="mysql"))
    )
    with pytest.raises(StorageError) as exc_info:
        await ledger.credit(test_user.id, 10)
    assert "unsupported dialect 'mysql'" in str(exc_info.value)
