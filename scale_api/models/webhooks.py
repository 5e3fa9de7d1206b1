"""
Billing-provider webhook payloads
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BillingEventKind(str, Enum):
    subscription_created = "subscription.created"
    subscription_updated = "subscription.updated"
    subscription_cancelled = "subscription.cancelled"
    subscription_expired = "subscription.expired"
    payment_succeeded = "payment.succeeded"
    payment_failed = "payment.failed"


class BillingEventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subscription_id: str | None = Field(None, alias="subscriptionId")
    customer_id: str | None = Field(None, alias="customerId")
    plan_id: str | None = Field(None, alias="planId")
    customer_email: str | None = Field(None, alias="customerEmail")
    status: str | None = None
    amount: float | None = None
    currency: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def user_id(self) -> str | None:
        value = (self.metadata or {}).get("userId")
        return str(value) if value else None


class BillingWebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    data: BillingEventData = Field(default_factory=BillingEventData)
