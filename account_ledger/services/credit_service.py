"""
Credit Ledger - remaining request balance per user

Every balance change is a single statement so that concurrent requests on the
same user cannot double-spend:
- debit is a conditional decrement guarded by remaining_requests >= amount
- credit is an INSERT ... ON CONFLICT DO UPDATE increment, which also creates
  the row (and its API key) the first time a user is funded
"""

import logging
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from account_ledger.config import settings
from account_ledger.db.models import Credit
from account_ledger.exceptions import InsufficientCreditsError, InvalidAmountError, StorageError
from account_ledger.services.base import BaseService

logger = logging.getLogger(__name__)

# Dialect-specific INSERT constructs that support ON CONFLICT
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def generate_api_key() -> str:
    return secrets.token_urlsafe(settings.api_key_bytes)


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "must be an integer")
    if amount <= 0:
        raise InvalidAmountError(amount, "must be positive")


class CreditLedger(BaseService):
    """Tracks remaining request credits, keyed by internal user id."""

    async def _balance(self, user_id: int) -> Optional[int]:
        result = await self.db.execute(
            select(Credit.remaining_requests).where(Credit.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def remaining(self, user_id: int) -> int:
        """Remaining credits; a user without a ledger row has 0."""
        async with self._storage("query remaining credits"):
            balance = await self._balance(user_id)
        return balance or 0

    async def api_key_for(self, user_id: int) -> Optional[str]:
        async with self._storage("query user API key"):
            result = await self.db.execute(
                select(Credit.api_key).where(Credit.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def debit(self, user_id: int, amount: int) -> int:
        """
        Consume credits and return the new balance.

        Raises InsufficientCreditsError when the balance is below amount; the
        balance is left untouched in that case.
        """
        _validate_amount(amount)

        async with self._storage("debit credits"):
            result = await self.db.execute(
                update(Credit)
                .where(
                    Credit.user_id == user_id,
                    Credit.remaining_requests >= amount,
                )
                .values(remaining_requests=Credit.remaining_requests - amount)
                .execution_options(synchronize_session=False)
            )
            debited = result.rowcount == 1
            balance = await self._balance(user_id)
            # Nothing was written on refusal; commit keeps loaded objects usable
            await self.db.commit()

        if not debited:
            available = balance or 0
            logger.info(f"Debit of {amount} refused for user {user_id}: {available} available")
            raise InsufficientCreditsError(user_id, required=amount, available=available)

        logger.info(f"Debited {amount} credits from user {user_id}, {balance} remaining")
        return balance

    async def credit(self, user_id: int, amount: int, commit: bool = True) -> int:
        """
        Add credits and return the new balance, creating the ledger row if needed.

        With commit=False the increment joins the caller's transaction.
        """
        _validate_amount(amount)

        async with self._storage("credit credits"):
            dialect = self.db.get_bind().dialect.name
            insert = _UPSERT_INSERTS.get(dialect)
            if insert is None:
                raise StorageError(
                    "credit credits", f"Failed to credit credits: unsupported dialect '{dialect}'"
                )

            stmt = insert(Credit).values(
                user_id=user_id,
                remaining_requests=amount,
                api_key=generate_api_key(),
                updated_at=datetime.utcnow(),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Credit.user_id],
                set_={
                    "remaining_requests": Credit.remaining_requests + stmt.excluded.remaining_requests,
                    "api_key": func.coalesce(Credit.api_key, stmt.excluded.api_key),
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await self.db.execute(stmt)
            balance = await self._balance(user_id)
            if commit:
                await self.db.commit()

        logger.info(f"Credited {amount} credits to user {user_id}, {balance} remaining")
        return balance

    async def refund(self, user_id: int, amount: int) -> int:
        """Return credits to a user. Authorization is the caller's responsibility."""
        balance = await self.credit(user_id, amount)
        logger.info(f"Refunded {amount} credits to user {user_id}")
        return balance
