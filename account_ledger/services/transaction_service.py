"""Transaction Log - append-only record of credit purchases"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func

from account_ledger.db.models import Package, Transaction
from account_ledger.exceptions import PackageNotFoundError
from account_ledger.services.base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class TransactionWithAmount:
    """A transaction joined with the price of its package."""
    id: int
    package_id: int
    amount_usdc: Decimal
    created_at: datetime


class TransactionLog(BaseService):
    """
    Records purchases and answers spend queries.

    There is no update or delete: a transaction row is written
    once by record() and only read afterwards.
    """

    async def get_package(self, package_id: int) -> Package:
        async with self._storage("query package"):
            package = await self.db.get(Package, package_id)
        if package is None:
            raise PackageNotFoundError(package_id)
        return package

    async def record(
        self,
        user_id: int,
        package_id: int,
        created_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> Transaction:
        """Append a purchase of package_id by user_id."""
        await self.get_package(package_id)

        transaction = Transaction(
            user_id=user_id,
            package_id=package_id,
            created_at=created_at or datetime.utcnow(),
        )
        async with self._storage("record transaction"):
            self.db.add(transaction)
            await self.db.flush()
            if commit:
                await self.db.commit()

        logger.info(
            f"Recorded transaction {transaction.id}: user {user_id} bought package {package_id}"
        )
        return transaction

    async def latest_for(self, user_id: int) -> Optional[TransactionWithAmount]:
        """Most recent transaction with its package price, or None."""
        async with self._storage("query last transaction"):
            result = await self.db.execute(
                select(
                    Transaction.id,
                    Transaction.package_id,
                    Package.price_usdc.label("amount_usdc"),
                    Transaction.created_at,
                )
                .join(Package, Transaction.package_id == Package.id)
                .where(Transaction.user_id == user_id)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .limit(1)
            )
            row = result.one_or_none()

        if row is None:
            return None
        return TransactionWithAmount(
            id=row.id,
            package_id=row.package_id,
            amount_usdc=Decimal(str(row.amount_usdc)),
            created_at=row.created_at,
        )

    async def total_spent_for(self, user_id: int) -> Decimal:
        """Sum of package prices over all of the user's transactions."""
        async with self._storage("query total spent USDC"):
            result = await self.db.execute(
                select(func.coalesce(func.sum(Package.price_usdc), 0))
                .select_from(Transaction)
                .join(Package, Transaction.package_id == Package.id)
                .where(Transaction.user_id == user_id)
            )
            total = result.scalar_one()
        if total is None:
            return Decimal("0")
        return Decimal(str(total))
