#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Subscription service

Responsibilities:
- find-or-create users on the verify/token paths
- verification against the billing provider (non-fatal on failure)
- manual tier updates and PayLink purchases
- cancel / plan change / checkout through the billing provider (fatal on failure)
"""
from __future__ import annotations

from datetime import datetime

from fastapi import Depends
from loguru import logger

from scale_api.config import Settings, get_settings
from scale_api.models.subscription import SubscriptionStatus, Tier, User
from scale_api.services import reconciler
from scale_api.services.billing_client import BillingClient, get_billing_client
from scale_api.services.supabase_service import SupabaseService, get_supabase_service
from scale_api.services.tier_policy import tier_to_plan_id
from scale_api.utils.errors import BillingProviderError, UserNotFoundError, ValidationError


class SubscriptionService:
    def __init__(self, db: SupabaseService, billing: BillingClient, settings: Settings):
        self.db = db
        self.billing = billing
        self.settings = settings

    async def get_user_or_404(self, user_id: str) -> User:
        user = await self.db.get_user(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    # -------- Users --------
    async def ensure_user(
        self,
        user_id: str,
        extension_version: str | None = None,
        installation_id: str | None = None,
        source: str | None = None,
        now: datetime | None = None,
    ) -> User:
        """Return the stored user, creating a basic-tier one on first contact.

        Repeat calls only refresh activity metadata and open a new quota
        window if the old one has lapsed.
        """
        now = now or reconciler.utcnow()
        user = await self.db.get_user(user_id)
        if user is None:
            user = reconciler.new_user(
                user_id,
                extension_version=extension_version,
                installation_id=installation_id,
                source=source,
                now=now,
            )
            logger.info(f"New user created: {user_id}")
            return await self.db.create_user(user)

        reconciler.touch_user(
            user,
            extension_version=extension_version,
            installation_id=installation_id,
            source=source,
            now=now,
        )
        reconciler.maybe_rollover_quota(user, now)
        return await self.db.save_user(user)

    async def touch(self, user_id: str) -> User:
        user = await self.get_user_or_404(user_id)
        reconciler.touch_user(user)
        return await self.db.save_user(user)

    # -------- Verification --------
    async def verify(self, user_id: str, extension_version: str | None = None, source: str | None = None) -> tuple[User, bool]:
        user = await self.ensure_user(user_id, extension_version=extension_version, source=source)

        subscription_id = user.subscription.billing_subscription_id
        if subscription_id:
            try:
                remote = await self.billing.verify_subscription(subscription_id)
                locally_active = user.subscription.status == SubscriptionStatus.active
                if remote.is_active != locally_active:
                    user.subscription.status = SubscriptionStatus.active if remote.is_active else SubscriptionStatus.inactive
                    logger.info(f"Billing provider reports {user_id} as {user.subscription.status.value}")
                    user = await self.db.save_user(user)
            except BillingProviderError as e:
                logger.warning(f"Failed to verify billing subscription for user {user_id}: {e}")

        return user, reconciler.is_effectively_active(user)

    # -------- Manual updates --------
    async def update(
        self,
        user_id: str,
        tier: Tier,
        status: SubscriptionStatus,
        billing_subscription_id: str | None = None,
        billing_customer_id: str | None = None,
    ) -> User:
        user = await self.get_user_or_404(user_id)
        reconciler.apply_tier_change(user, tier, status, billing_subscription_id, billing_customer_id)
        user = await self.db.save_user(user)
        logger.info(f"Subscription updated for user {user_id}: {tier.value} ({status.value})")
        return user

    def purchase_link(self, tier: Tier, user_id: str) -> str:
        logger.info(f"Subscription purchase initiated: {user_id} -> {tier.value}")
        return self.settings.PAYLINKS.get(tier.value) or self.settings.PAYLINKS["basic"]

    async def verify_payment(
        self,
        user_id: str,
        tier: Tier,
        transaction_id: str | None = None,
        email: str | None = None,
    ) -> User:
        """Activate a PayLink purchase reported by the client"""
        now = reconciler.utcnow()
        user = await self.db.get_user(user_id)
        is_new = user is None
        if is_new:
            user = reconciler.new_user(user_id, email=email, trial=True, now=now)
        elif email:
            user.email = email

        reconciler.apply_tier_change(user, tier, SubscriptionStatus.active, billing_subscription_id=transaction_id)
        user.subscription.start_date = now
        user.subscription.end_date = now + reconciler.BILLING_PERIOD
        user.subscription.renewal_date = now + reconciler.BILLING_PERIOD
        user = await (self.db.create_user(user) if is_new else self.db.save_user(user))

        logger.info(f"Manual subscription verification completed: {user_id} -> {tier.value} (transaction: {transaction_id})")
        return user

    # -------- Billing provider writes --------
    def _require_subscription_id(self, user: User) -> str:
        subscription_id = user.subscription.billing_subscription_id
        if not subscription_id:
            raise ValidationError("User has no billing subscription")
        return subscription_id

    async def cancel(self, user_id: str, reason: str | None = None) -> User:
        user = await self.get_user_or_404(user_id)
        await self.billing.cancel_subscription(self._require_subscription_id(user), reason)
        reconciler.apply_subscription_cancelled(user)
        user = await self.db.save_user(user)
        logger.info(f"Subscription cancelled for user {user_id}")
        return user

    async def change_plan(self, user_id: str, tier: Tier) -> User:
        user = await self.get_user_or_404(user_id)
        await self.billing.update_subscription_plan(self._require_subscription_id(user), tier_to_plan_id(tier))
        reconciler.apply_tier_change(user, tier, user.subscription.status)
        user = await self.db.save_user(user)
        logger.info(f"Plan changed for user {user_id}: {tier.value}")
        return user

    async def create_checkout(self, user_id: str, tier: Tier, email: str) -> str:
        url = await self.billing.create_checkout_session(tier_to_plan_id(tier), email, {"userId": user_id})
        logger.info(f"Checkout session created: {user_id} -> {tier.value}")
        return url


async def get_subscription_service(
    db: SupabaseService = Depends(get_supabase_service),
    billing: BillingClient = Depends(get_billing_client),
    settings: Settings = Depends(get_settings),
) -> SubscriptionService:
    return SubscriptionService(db, billing, settings)
