"""
Base service with common session handling.

Every ledger service is constructed with the request's AsyncSession and runs
its queries through _storage(), which turns driver failures into StorageError
after rolling the session back.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.exceptions import StorageError

logger = logging.getLogger(__name__)


class BaseService:
    """
    Holds the session handed in by the caller.

    Usage:
        class CreditLedger(BaseService):
            async def remaining(self, user_id: int) -> int:
                async with self._storage("query remaining credits"):
                    result = await self.db.execute(...)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _storage(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception(f"Storage failure during '{operation}'")
            await self.db.rollback()
            raise StorageError(operation) from e
