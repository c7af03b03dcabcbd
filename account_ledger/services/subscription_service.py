"""
Subscription Store - per-user document of named event filters

A subscription document maps a method key (e.g. "accountChange") to an
ordered list of subscription keys (e.g. addresses). Clients mutate it with a
tagged keyword: "subscribe<Name>" adds keys under <Name>, "unsubscribe<Name>"
removes them.

The document is rewritten wholesale on every mutation. Writers are serialized
with an optimistic compare-and-swap on users.subscriptions_version: the update
only lands if the version read alongside the document is still current,
otherwise the read-modify-write is replayed against the fresh document.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, update

from account_ledger.config import settings
from account_ledger.db.models import User
from account_ledger.exceptions import (
    ConcurrentUpdateError,
    InvalidMethodKeywordError,
    UserNotFoundError,
)
from account_ledger.services.base import BaseService

logger = logging.getLogger(__name__)


class SubscriptionAction(str, Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


def parse_method_keyword(method: str) -> Tuple[SubscriptionAction, str]:
    """Split "subscribe<Name>" / "unsubscribe<Name>" into (action, method key)."""
    for action in (SubscriptionAction.SUBSCRIBE, SubscriptionAction.UNSUBSCRIBE):
        if method.startswith(action.value):
            method_key = method[len(action.value):]
            if not method_key:
                break
            return action, method_key
    raise InvalidMethodKeywordError(method)


class SubscriptionDocument:
    """Method key -> ordered list of unique subscription keys."""

    def __init__(self, methods: Optional[Dict[str, List[str]]] = None):
        self._methods: Dict[str, List[str]] = {}
        for method_key, keys in (methods or {}).items():
            self.subscribe(method_key, keys)

    @classmethod
    def from_raw(cls, raw: Any) -> "SubscriptionDocument":
        """Build from the stored JSON value. NULL or a non-object means empty."""
        if not isinstance(raw, dict):
            return cls()
        methods = {}
        for method_key, keys in raw.items():
            if isinstance(keys, list):
                methods[method_key] = [k for k in keys if isinstance(k, str)]
            else:
                methods[method_key] = []
        return cls(methods)

    def __contains__(self, method_key: str) -> bool:
        return method_key in self._methods

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubscriptionDocument):
            return NotImplemented
        return self._methods == other._methods

    def methods(self) -> List[str]:
        return list(self._methods)

    def keys_for(self, method_key: str) -> List[str]:
        return list(self._methods.get(method_key, []))

    def get_or_create(self, method_key: str) -> List[str]:
        return self._methods.setdefault(method_key, [])

    def subscribe(self, method_key: str, keys: Iterable[str]) -> List[str]:
        """Append keys not already present, in input order. Returns the keys added."""
        current = self.get_or_create(method_key)
        added = []
        for key in keys:
            if key not in current:
                current.append(key)
                added.append(key)
        return added

    def unsubscribe(self, method_key: str, keys: Iterable[str]) -> int:
        """
        Drop every entry found in keys. Returns how many were removed.

        An unknown method key is a no-op, and an emptied list stays in the
        document; use remove_method() to drop the method key itself.
        """
        current = self._methods.get(method_key)
        if current is None:
            return 0
        remove = set(keys)
        kept = [k for k in current if k not in remove]
        self._methods[method_key] = kept
        return len(current) - len(kept)

    def remove_method(self, method_key: str) -> bool:
        return self._methods.pop(method_key, None) is not None

    def to_dict(self) -> Dict[str, List[str]]:
        return {method_key: list(keys) for method_key, keys in self._methods.items()}


class SubscriptionStore(BaseService):
    """Applies subscribe/unsubscribe keywords to a user's document."""

    async def _load(self, pubkey: str):
        async with self._storage("query user"):
            result = await self.db.execute(
                select(User.id, User.subscriptions, User.subscriptions_version)
                .where(User.pubkey == pubkey)
            )
            row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(pubkey)
        return row

    async def get_document(self, pubkey: str) -> SubscriptionDocument:
        row = await self._load(pubkey)
        return SubscriptionDocument.from_raw(row.subscriptions)

    async def mutate(
        self,
        pubkey: str,
        method: str,
        keys: Optional[Iterable[str]] = None,
    ) -> str:
        """
        Apply a subscribe/unsubscribe keyword and persist the full document.

        keys=None leaves the document as it is but still validates the
        keyword and the user. Returns the pubkey as confirmation.
        """
        action, method_key = parse_method_keyword(method)
        keys = list(keys) if keys is not None else None
        attempts = max(1, settings.subscription_max_retries)

        for attempt in range(1, attempts + 1):
            row = await self._load(pubkey)
            document = SubscriptionDocument.from_raw(row.subscriptions)

            if keys is not None:
                if action is SubscriptionAction.SUBSCRIBE:
                    document.subscribe(method_key, keys)
                else:
                    document.unsubscribe(method_key, keys)

            async with self._storage("update subscriptions"):
                result = await self.db.execute(
                    update(User)
                    .where(
                        User.id == row.id,
                        User.subscriptions_version == row.subscriptions_version,
                    )
                    .values(
                        subscriptions=document.to_dict(),
                        subscriptions_version=row.subscriptions_version + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    await self.db.commit()
                    logger.info(
                        f"Subscriptions updated for user {row.id}: "
                        f"{action.value} {method_key} ({len(keys or [])} keys)"
                    )
                    return pubkey
                # Zero rows matched; end the read transaction without expiring the session
                await self.db.commit()

            logger.warning(
                f"Subscription document for user {row.id} changed underneath us "
                f"(attempt {attempt}/{attempts})"
            )

        raise ConcurrentUpdateError("update subscriptions", attempts)
