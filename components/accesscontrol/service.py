from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from components.objectstore.errors import ErrorKind, StorageError, access_denied, bad_request

from .contracts import AccessDecision, AccessReason, Collection, SubscriptionInfo
from .ports import BillingOraclePort, CollectionLookupPort

logger = logging.getLogger("accesscontrol")

T = TypeVar("T")


class AccessDecisionEngine:
    """
    Decides whether a user may read a private object.

    Precedence, first match wins:
      1. resolve the owning collection from the key (none -> step 4)
      2. owner of the collection          -> ALLOW(owner)
      3. purchaser of the collection      -> ALLOW(purchaser)
      4. active subscription              -> ALLOW(subscriber), else DENY

    Every external call is bounded by ``timeout``. A timeout or an unreachable
    dependency counts as "no" for that step, so the cascade keeps going and a
    dead billing service ends in DENY rather than in a server error.
    Decisions are never cached.
    """

    def __init__(self, collections: CollectionLookupPort, billing: BillingOraclePort, timeout: float = 5.0):
        self.collections = collections
        self.billing = billing
        self.timeout = timeout

    async def _guarded(self, step: str, call: Awaitable[T], default: T) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("access.%s timeout after %.1fs, treating as negative", step, self.timeout)
        except ConnectionError as e:
            logger.warning("access.%s connection err=%r, treating as negative", step, e)
        except StorageError as e:
            if e.kind is not ErrorKind.UPSTREAM_UNAVAILABLE:
                raise
            logger.warning("access.%s upstream err=%s, treating as negative", step, e.message)
        return default

    async def subscription(self, user_id: int) -> SubscriptionInfo:
        return await self._guarded(
            "subscription", self.billing.active_subscription(user_id), SubscriptionInfo.inactive()
        )

    async def decide(self, user_id: int, key: str) -> AccessDecision:
        if not key:
            raise bad_request("File key is required")

        collection: Optional[Collection] = await self._guarded(
            "collection", self.collections.collection_by_file_key(key), None
        )
        if collection is not None:
            if await self._guarded("owner", self.collections.is_owner(collection.id, user_id), False):
                return self._log(user_id, key, AccessDecision.allow(AccessReason.OWNER, collection.id))
            if await self._guarded("purchase", self.billing.has_purchased(user_id, collection.id), False):
                return self._log(user_id, key, AccessDecision.allow(AccessReason.PURCHASER, collection.id))

        collection_id = collection.id if collection else None
        sub = await self.subscription(user_id)
        if sub.active:
            return self._log(user_id, key, AccessDecision.allow(AccessReason.SUBSCRIBER, collection_id))
        return self._log(user_id, key, AccessDecision.deny(collection_id))

    async def authorize(self, user_id: int, key: str) -> AccessDecision:
        decision = await self.decide(user_id, key)
        if not decision.allowed:
            raise access_denied(
                "Active subscription or purchase required for content access", code="SUBSCRIPTION_REQUIRED"
            )
        return decision

    async def require_subscription(self, user_id: int) -> SubscriptionInfo:
        sub = await self.subscription(user_id)
        if not sub.active:
            raise access_denied("Active subscription required", code="SUBSCRIPTION_REQUIRED")
        return sub

    def _log(self, user_id: int, key: str, decision: AccessDecision) -> AccessDecision:
        logger.info("access.decision user=%s key=%s allowed=%s reason=%s collection=%s",
                    user_id, key, decision.allowed, decision.reason.value, decision.collection_id)
        return decision
