#!/usr/bin/env python3
"""
Billing webhook processing

The signature is checked on the raw body before anything is parsed. Each
delivery is applied at most once per call; retries are left to the
provider's redelivery.
"""

from fastapi import Depends
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from scale_api.config import Settings, get_settings
from scale_api.models.subscription import User
from scale_api.models.webhooks import BillingEventData, BillingEventKind, BillingWebhookEvent
from scale_api.security.signature import WebhookVerifier
from scale_api.services import reconciler
from scale_api.services.supabase_service import SupabaseService, get_supabase_service
from scale_api.utils.errors import MissingUserReferenceError, UserNotFoundError, ValidationError


class WebhookService:
    def __init__(self, db: SupabaseService, verifier: WebhookVerifier):
        self.db = db
        self.verifier = verifier

    def parse(self, payload: bytes, signature: str | None) -> BillingWebhookEvent:
        """Verify then decode a raw delivery"""
        self.verifier.verify(payload, signature)
        try:
            return BillingWebhookEvent.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.warning(f"Malformed webhook payload: {e}")
            raise ValidationError("Invalid webhook payload") from e

    async def apply_event(self, event: BillingWebhookEvent) -> User | None:
        """Apply one provider event; returns the updated user, or None for ignored kinds"""
        logger.info(f"Billing webhook received: {event.type}")
        try:
            kind = BillingEventKind(event.type)
        except ValueError:
            logger.warning(f"Unknown webhook event type: {event.type}")
            return None

        data = event.data
        if kind == BillingEventKind.subscription_created:
            return await self._subscription_created(data)

        user = await self._user_for_subscription(data.subscription_id)
        now = reconciler.utcnow()
        if kind == BillingEventKind.subscription_updated:
            reconciler.apply_subscription_updated(user, data)
        elif kind == BillingEventKind.subscription_cancelled:
            reconciler.apply_subscription_cancelled(user, now)
        elif kind == BillingEventKind.subscription_expired:
            reconciler.apply_subscription_expired(user, now)
            logger.info(f"Subscription expired for user {user.user_id}, downgraded to basic")
        elif kind == BillingEventKind.payment_succeeded:
            reconciler.apply_payment_succeeded(user, now)
            logger.info(f"Payment succeeded for user {user.user_id}: {data.amount} {data.currency}")
        elif kind == BillingEventKind.payment_failed:
            reconciler.apply_payment_failed(user)
            logger.warning(f"Payment failed for user {user.user_id}: {data.reason}")

        user = await self.db.save_user(user)
        logger.info(
            f"{kind.value} applied to {user.user_id}: {user.subscription.tier.value} ({user.subscription.status.value})"
        )
        return user

    async def _user_for_subscription(self, subscription_id: str | None) -> User:
        user = await self.db.get_user_by_subscription_id(subscription_id) if subscription_id else None
        if user is None:
            raise UserNotFoundError(f"User not found for subscription {subscription_id}")
        return user

    async def _subscription_created(self, data: BillingEventData) -> User:
        user_id = data.user_id
        if not user_id:
            raise MissingUserReferenceError()

        now = reconciler.utcnow()
        user = await self.db.get_user(user_id)
        is_new = user is None
        if is_new:
            user = reconciler.new_user(user_id, email=data.customer_email, now=now)
        reconciler.apply_subscription_created(user, data, now)

        user = await (self.db.create_user(user) if is_new else self.db.save_user(user))
        logger.info(f"Subscription created for user {user_id}: {user.subscription.tier.value}")
        return user


async def get_webhook_service(
    db: SupabaseService = Depends(get_supabase_service),
    settings: Settings = Depends(get_settings),
) -> WebhookService:
    return WebhookService(db, WebhookVerifier(settings))
