from __future__ import annotations

from typing import Optional

from .contracts import Collection, Identity, SubscriptionInfo


class IdentityResolverPort:
    async def resolve(self, token: str) -> Identity:
        """
        Resolve a bearer token to the calling user.
        Raises StorageError with kind INVALID_TOKEN, NOT_FOUND or UPSTREAM_UNAVAILABLE.
        """
        raise NotImplementedError


class CollectionLookupPort:
    async def collection_by_file_key(self, key: str) -> Optional[Collection]:
        raise NotImplementedError

    async def is_owner(self, collection_id: str, user_id: int) -> bool:
        raise NotImplementedError


class BillingOraclePort:
    async def has_purchased(self, user_id: int, collection_id: str) -> bool:
        raise NotImplementedError

    async def active_subscription(self, user_id: int) -> SubscriptionInfo:
        raise NotImplementedError
