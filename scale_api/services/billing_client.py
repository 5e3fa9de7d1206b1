#!/usr/bin/env python3
"""
Billing provider client

Thin async wrapper over the provider's REST API. Every failure (transport
error, non-2xx, or a reply that does not have the expected shape) surfaces as
BillingProviderError; callers decide whether that is fatal.
"""

from datetime import datetime
from typing import Any

import httpx
from fastapi import Depends
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from scale_api.config import Settings, get_settings
from scale_api.utils.errors import BillingProviderError


class BillingSubscriptionStatus(BaseModel):
    subscription_id: str | None = None
    customer_id: str | None = None
    plan_id: str | None = None
    status: str | None = None
    is_active: bool = False
    next_billing_date: datetime | None = None
    amount: float | None = None
    currency: str | None = None


class BillingClient:
    """Billing provider API client"""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = settings.BILLING_API_BASE_URL.rstrip("/")
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")
        self.timeout = settings.BILLING_TIMEOUT_SECONDS
        self._api_key = settings.BILLING_API_KEY
        self._api_secret = settings.BILLING_API_SECRET
        self._transport = transport

        if not self._api_key or not self._api_secret:
            logger.warning("Billing API credentials not configured")

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"sso-key {self._api_key}:{self._api_secret}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=json)
                resp.raise_for_status()
                data = resp.json() if resp.content else {}
        except httpx.HTTPStatusError as e:
            logger.error(f"Billing API {method} {path} returned {e.response.status_code}")
            raise BillingProviderError(f"Billing provider returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Billing API {method} {path} failed: {e}")
            raise BillingProviderError("Billing provider unreachable") from e

        if not isinstance(data, dict):
            logger.error(f"Billing API {method} {path} returned a {type(data).__name__}, expected an object")
            raise BillingProviderError("Billing provider returned an unexpected response")
        return data

    async def verify_subscription(self, subscription_id: str) -> BillingSubscriptionStatus:
        """Current subscription state as the provider sees it"""
        data = await self._request("GET", f"/v1/subscriptions/{subscription_id}")
        status = data.get("status")
        try:
            return BillingSubscriptionStatus(
                subscription_id=data.get("subscriptionId"),
                customer_id=data.get("customerId"),
                plan_id=data.get("planId"),
                status=status,
                is_active=status == "ACTIVE",
                next_billing_date=data.get("nextBillingDate"),
                amount=data.get("amount"),
                currency=data.get("currency"),
            )
        except PydanticValidationError as e:
            logger.error(f"Malformed subscription {subscription_id} from billing provider: {e}")
            raise BillingProviderError("Billing provider returned an unexpected response") from e

    async def cancel_subscription(self, subscription_id: str, reason: str | None = None) -> bool:
        await self._request(
            "POST",
            f"/v1/subscriptions/{subscription_id}/cancel",
            json={"reason": reason or "Customer requested cancellation"},
        )
        logger.info(f"Cancelled billing subscription {subscription_id}")
        return True

    async def update_subscription_plan(self, subscription_id: str, plan_id: str) -> bool:
        await self._request("PUT", f"/v1/subscriptions/{subscription_id}", json={"planId": plan_id})
        logger.info(f"Moved billing subscription {subscription_id} to plan {plan_id}")
        return True

    async def create_checkout_session(self, plan_id: str, customer_email: str, metadata: dict[str, Any]) -> str:
        data = await self._request(
            "POST",
            "/v1/checkout/sessions",
            json={
                "planId": plan_id,
                "customerEmail": customer_email,
                "metadata": metadata,
                "successUrl": f"{self.frontend_url}/subscription/success",
                "cancelUrl": f"{self.frontend_url}/subscription/cancel",
            },
        )
        url = data.get("checkoutUrl")
        if not url or not isinstance(url, str):
            raise BillingProviderError("Billing provider returned no checkout URL")
        return url


_billing_client: BillingClient | None = None


async def get_billing_client(settings: Settings = Depends(get_settings)) -> BillingClient:
    """Get the shared billing client"""
    global _billing_client
    if _billing_client is None:
        _billing_client = BillingClient(settings)
    return _billing_client
