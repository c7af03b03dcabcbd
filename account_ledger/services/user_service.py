"""User directory - public key identity to internal user id"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from account_ledger.db.models import User, Credit
from account_ledger.exceptions import InvalidInputError, StorageError, UserNotFoundError
from account_ledger.services.base import BaseService

logger = logging.getLogger(__name__)


class UserDirectory(BaseService):
    """Resolves public keys to users. Creation is idempotent per pubkey."""

    async def _get(self, pubkey: str) -> Optional[User]:
        async with self._storage("query user"):
            result = await self.db.execute(
                select(User)
                .where(User.pubkey == pubkey)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def resolve_or_create(self, pubkey: str) -> Tuple[User, bool]:
        """
        Return (user, created). An existing row is returned unchanged.

        Two callers racing on the same new pubkey both reach the INSERT; the
        loser hits the unique constraint and re-fetches the winner's row.
        """
        if not pubkey or not pubkey.strip():
            raise InvalidInputError("pubkey must not be empty")

        existing = await self._get(pubkey)
        if existing is not None:
            return existing, False

        user = User(pubkey=pubkey, subscriptions={}, subscriptions_version=0)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"User {pubkey} created concurrently, re-fetching")
            existing = await self._get(pubkey)
            if existing is None:
                # Constraint fired for something other than pubkey
                raise StorageError("create user") from e
            return existing, False
        except SQLAlchemyError as e:
            logger.exception("Storage failure during 'create user'")
            await self.db.rollback()
            raise StorageError("create user") from e

        async with self._storage("reload created user"):
            await self.db.refresh(user)
        logger.info(f"Created user {user.id} for pubkey {pubkey}")
        return user, True

    async def find_by_pubkey(self, pubkey: str) -> User:
        user = await self._get(pubkey)
        if user is None:
            raise UserNotFoundError(pubkey)
        return user

    async def list(self) -> List[User]:
        async with self._storage("fetch users"):
            result = await self.db.execute(
                select(User).order_by(User.id).execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def find_with_api_key(self, pubkey: str) -> Tuple[User, Optional[str]]:
        """Look up a user together with the API key stored on its credits row."""
        user = await self.find_by_pubkey(pubkey)
        async with self._storage("query user API key"):
            result = await self.db.execute(
                select(Credit.api_key).where(Credit.user_id == user.id)
            )
            api_key = result.scalar_one_or_none()
        return user, api_key
