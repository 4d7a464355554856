from typing import Optional

from fastapi import Depends, Header

from components.objectstore.errors import ErrorKind, StorageError

from .contracts import Identity
from .ports import IdentityResolverPort
from .service import AccessDecisionEngine

# These are provided by the application container at startup.
_identity_singleton: Optional[IdentityResolverPort] = None
_engine_singleton: Optional[AccessDecisionEngine] = None


def set_access_ports(identity: IdentityResolverPort, engine: AccessDecisionEngine) -> None:
    global _identity_singleton, _engine_singleton
    _identity_singleton = identity
    _engine_singleton = engine


def get_identity_resolver() -> IdentityResolverPort:
    if _identity_singleton is None:
        raise RuntimeError("identity resolver not configured; call set_access_ports() first")
    return _identity_singleton


def get_access_engine() -> AccessDecisionEngine:
    if _engine_singleton is None:
        raise RuntimeError("access engine not configured; call set_access_ports() first")
    return _engine_singleton


def get_authorization_header(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> Optional[str]:
    return authorization


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise StorageError(ErrorKind.UNAUTHORIZED, "Authorization token required")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise StorageError(ErrorKind.UNAUTHORIZED, "Authorization token required")
    return token


async def current_user(
    authorization: Optional[str] = Depends(get_authorization_header),
    identity: IdentityResolverPort = Depends(get_identity_resolver),
) -> Identity:
    """Bearer token -> Identity via the main service."""
    return await identity.resolve(bearer_token(authorization))


async def subscribed_user(
    user: Identity = Depends(current_user),
    engine: AccessDecisionEngine = Depends(get_access_engine),
) -> Identity:
    await engine.require_subscription(user.id)
    return user
