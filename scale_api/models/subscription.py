"""
User, subscription and quota models
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Tier(str, Enum):
    basic = "basic"
    mid = "mid"
    top = "top"


class SubscriptionStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    cancelled = "cancelled"
    expired = "expired"
    trial = "trial"


class Subscription(BaseModel):
    tier: Tier = Tier.basic
    status: SubscriptionStatus = SubscriptionStatus.active
    start_date: datetime
    end_date: datetime | None = None
    renewal_date: datetime | None = None
    billing_subscription_id: str | None = None
    billing_customer_id: str | None = None
    trial_end_date: datetime | None = None
    is_trial_active: bool = False


class UsageQuota(BaseModel):
    prompts_per_month: int = 75
    prompts_used: int = Field(0, ge=0)
    reset_date: datetime
    last_reset_date: datetime | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.prompts_per_month == -1

    @property
    def prompts_remaining(self) -> int:
        if self.is_unlimited:
            return -1
        return max(0, self.prompts_per_month - self.prompts_used)


class UserMetadata(BaseModel):
    extension_version: str | None = None
    last_active_date: datetime | None = None
    installation_id: str | None = None
    source: str | None = None


class User(BaseModel):
    """A client identity with its embedded subscription and quota"""

    user_id: str
    email: str | None = None
    subscription: Subscription
    usage_quota: UsageQuota
    features: list[str] = Field(default_factory=list)
    metadata: UserMetadata = Field(default_factory=UserMetadata)
    created_at: datetime | None = None
    updated_at: datetime | None = None
