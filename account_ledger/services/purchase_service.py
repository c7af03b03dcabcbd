"""Credit purchases and refunds, addressed by public key"""

import logging
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.db.models import Transaction
from account_ledger.services.base import BaseService
from account_ledger.services.credit_service import CreditLedger
from account_ledger.services.transaction_service import TransactionLog
from account_ledger.services.user_service import UserDirectory

logger = logging.getLogger(__name__)


class PurchaseService(BaseService):
    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.users = UserDirectory(db)
        self.ledger = CreditLedger(db)
        self.transactions = TransactionLog(db)

    async def buy(self, pubkey: str, package_id: int) -> Tuple[Transaction, int]:
        """
        Record a purchase and fund the user with the package's credits.

        The transaction row and the balance increment commit together.
        Returns (transaction, remaining credits).
        """
        user = await self.users.find_by_pubkey(pubkey)
        package = await self.transactions.get_package(package_id)

        transaction = await self.transactions.record(user.id, package.id, commit=False)
        if package.requests > 0:
            balance = await self.ledger.credit(user.id, package.requests, commit=False)
        else:
            balance = await self.ledger.remaining(user.id)

        async with self._storage("commit purchase"):
            await self.db.commit()

        logger.info(
            f"User {user.id} bought package {package.id} "
            f"({package.requests} credits for {package.price_usdc} USDC)"
        )
        return transaction, balance

    async def refund(self, pubkey: str, amount: int) -> int:
        user = await self.users.find_by_pubkey(pubkey)
        return await self.ledger.refund(user.id, amount)
