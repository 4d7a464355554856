from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccessReason(str, Enum):
    OWNER = "owner"
    PURCHASER = "purchaser"
    SUBSCRIBER = "subscriber"
    SUBSCRIPTION_REQUIRED = "subscription_required"


class AccessDecision(BaseModel):
    allowed: bool
    reason: AccessReason
    collection_id: Optional[str] = None

    @classmethod
    def allow(cls, reason: AccessReason, collection_id: Optional[str] = None) -> "AccessDecision":
        return cls(allowed=True, reason=reason, collection_id=collection_id)

    @classmethod
    def deny(cls, collection_id: Optional[str] = None) -> "AccessDecision":
        return cls(allowed=False, reason=AccessReason.SUBSCRIPTION_REQUIRED, collection_id=collection_id)


class Identity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    email: Optional[str] = None


class Collection(BaseModel):
    """A "bar": the externally owned grouping a private file belongs to."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    type: Optional[str] = None


class SubscriptionInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    active: bool = Field(default=False, alias="hasActiveSubscription")
    plan_id: Optional[int] = Field(default=None, alias="planId")
    plan: Optional[str] = Field(default=None, alias="subscriptionPlan")
    period: Optional[Literal["daily", "monthly", "yearly"]] = None
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")

    @classmethod
    def inactive(cls) -> "SubscriptionInfo":
        return cls(active=False)
