"""Usage Reporter - remaining credits and spend for one user"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.services.credit_service import CreditLedger
from account_ledger.services.transaction_service import TransactionLog, TransactionWithAmount
from account_ledger.services.user_service import UserDirectory


@dataclass
class UsageSummary:
    remaining_credits: int
    last_transaction: Optional[TransactionWithAmount]
    total_spent_usdc: Decimal


class UsageReporter:
    """
    Read-only view across the ledger and the transaction log.

    The three reads are independent and not wrapped in one transaction, so a
    purchase landing mid-report can show up in one figure and not another.
    """

    def __init__(self, db: AsyncSession):
        self.users = UserDirectory(db)
        self.ledger = CreditLedger(db)
        self.transactions = TransactionLog(db)

    async def summarize(self, pubkey: str) -> UsageSummary:
        user = await self.users.find_by_pubkey(pubkey)
        return UsageSummary(
            remaining_credits=await self.ledger.remaining(user.id),
            last_transaction=await self.transactions.latest_for(user.id),
            total_spent_usdc=await self.transactions.total_spent_for(user.id),
        )
