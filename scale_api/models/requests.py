"""
Request body models for the HTTP surface
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from scale_api.models.subscription import SubscriptionStatus, Tier
from scale_api.models.usage import UsageEventType, UsageMetadata


class TokenRequest(BaseModel):
    """Token request from the extension"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "vscode-machine-1234",
                "extensionVersion": "1.4.2",
                "installationId": "c0ffee",
            }
        },
    )

    user_id: str = Field(..., alias="userId", min_length=1, description="Extension user ID")
    extension_version: Optional[str] = Field(None, alias="extensionVersion")
    installation_id: Optional[str] = Field(None, alias="installationId")


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)


class VerifyRequest(BaseModel):
    """Subscription verification call"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    extension_version: Optional[str] = Field(None, alias="extensionVersion")
    source: Optional[str] = Field(None, description="Acquisition tag, e.g. vscode_chat")


class SubscriptionUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tier: Tier
    status: SubscriptionStatus
    billing_subscription_id: Optional[str] = Field(None, alias="goDaddySubscriptionId")
    billing_customer_id: Optional[str] = Field(None, alias="goDaddyCustomerId")


class VerifyPaymentRequest(BaseModel):
    """Manual verification after a PayLink purchase"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    tier: Tier
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    email: Optional[EmailStr] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ChangePlanRequest(BaseModel):
    tier: Tier


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    tier: Tier
    email: EmailStr


class TrackUsageRequest(BaseModel):
    """Usage tracking call"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "vscode-machine-1234",
                "type": "chat",
                "feature": "chat",
                "metadata": {"model": "gpt-4o", "tokensUsed": 812, "responseTime": 1.9},
            }
        },
    )

    user_id: str = Field(..., alias="userId", min_length=1)
    type: UsageEventType
    feature: str = Field(..., min_length=1)
    metadata: UsageMetadata = Field(default_factory=UsageMetadata)
