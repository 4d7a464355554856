from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from components.objectstore.errors import ErrorKind, StorageError, not_found, upstream_unavailable

from .config import AccessSettings, ensure_protocol
from .contracts import Collection, Identity, SubscriptionInfo
from .ports import BillingOraclePort, CollectionLookupPort, IdentityResolverPort

logger = logging.getLogger("accesscontrol.clients")


class _InternalClient:
    service = "internal"

    def __init__(self, base_url: str, http: Optional[httpx.AsyncClient] = None, timeout: float = 5.0):
        self.base_url = ensure_protocol(base_url)
        self.http = http or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout

    async def _get(self, path: str, *, params: Optional[dict] = None, headers: Optional[dict] = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return await self.http.get(url, params=params, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("%s.get err url=%s error=%r", self.service, url, e)
            raise upstream_unavailable(f"{self.service} unreachable", service=self.service) from e

    def _json(self, resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            raise upstream_unavailable(
                f"{self.service} answered {resp.status_code}", service=self.service, status=resp.status_code
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise upstream_unavailable(f"{self.service} returned invalid JSON", service=self.service) from e

    def _object(self, resp: httpx.Response) -> dict:
        data = self._json(resp)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise upstream_unavailable(f"{self.service} returned a non-object body", service=self.service)
        return data

    async def aclose(self) -> None:
        await self.http.aclose()


class MainServiceClient(_InternalClient, IdentityResolverPort, CollectionLookupPort):
    """Users and collections ("bars") live in the main service."""

    service = "main-service"

    async def resolve(self, token: str) -> Identity:
        resp = await self._get("/internal/users/me", headers={"Authorization": f"Bearer {token}"})
        if resp.status_code == 401:
            raise StorageError(ErrorKind.INVALID_TOKEN, "Invalid token")
        if resp.status_code == 404:
            raise not_found("User profile not found", code="PROFILE_NOT_FOUND")
        data = self._json(resp)
        try:
            user = Identity.model_validate(data or {})
        except ValidationError as e:
            raise not_found("User profile not found", code="PROFILE_NOT_FOUND") from e
        if not user.username:
            raise not_found("User profile not found", code="PROFILE_NOT_FOUND")
        return user

    async def collection_by_file_key(self, key: str) -> Optional[Collection]:
        resp = await self._get("/internal/bars/by-file-key", params={"key": key})
        if resp.status_code == 404:
            return None
        data = self._json(resp)
        if not data:
            return None
        try:
            return Collection.model_validate(data)
        except ValidationError as e:
            raise upstream_unavailable(f"{self.service} returned an invalid collection", service=self.service) from e

    async def is_owner(self, collection_id: str, user_id: int) -> bool:
        resp = await self._get(f"/internal/bars/{collection_id}/owner", params={"userId": user_id})
        data = self._object(resp)
        return data.get("isOwner") is True


class BillingServiceClient(_InternalClient, BillingOraclePort):
    service = "billing-service"

    async def has_purchased(self, user_id: int, collection_id: str) -> bool:
        resp = await self._get("/internal/purchases/check", params={"userId": user_id, "barId": collection_id})
        data = self._object(resp)
        return data.get("hasPurchased") is True

    async def active_subscription(self, user_id: int) -> SubscriptionInfo:
        resp = await self._get("/internal/subscriptions/active", params={"userId": user_id})
        data = self._json(resp)
        if not data:
            return SubscriptionInfo.inactive()
        try:
            return SubscriptionInfo.model_validate(data)
        except ValidationError as e:
            raise upstream_unavailable(f"{self.service} returned an invalid subscription", service=self.service) from e


def make_clients_from_env(http: Optional[httpx.AsyncClient] = None):
    cfg = AccessSettings()
    main = MainServiceClient(cfg.KORNER_MAIN_URL, http=http, timeout=cfg.EXTERNAL_TIMEOUT_SECONDS)
    billing = BillingServiceClient(cfg.KORNER_BILLING_URL, http=http, timeout=cfg.EXTERNAL_TIMEOUT_SECONDS)
    logger.info("accesscontrol.clients main=%s billing=%s", main.base_url, billing.base_url)
    return main, billing
