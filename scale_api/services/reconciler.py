#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Quota and entitlement reconciliation

State transitions on a User, shared by the verify, tracking and webhook
paths. Functions mutate the user in place and return it; persisting is the
caller's job. ``now`` is injectable so time-driven transitions are testable.
"""

from datetime import UTC, datetime, timedelta

from loguru import logger

from scale_api.models.subscription import Subscription, SubscriptionStatus, Tier, UsageQuota, User, UserMetadata
from scale_api.models.usage import QUOTA_COUNTED_TYPES, UsageEventType
from scale_api.models.webhooks import BillingEventData
from scale_api.services.tier_policy import get_tier_config, plan_id_to_tier
from scale_api.utils.errors import QuotaExceededError
from scale_api.utils.serializers import quota_snapshot

QUOTA_PERIOD = timedelta(days=30)
TRIAL_PERIOD = timedelta(days=7)
BILLING_PERIOD = timedelta(days=30)

_PROVIDER_STATUS_MAP = {
    "active": SubscriptionStatus.active,
    "cancelled": SubscriptionStatus.cancelled,
    "canceled": SubscriptionStatus.cancelled,
    "expired": SubscriptionStatus.expired,
    "inactive": SubscriptionStatus.inactive,
    "trial": SubscriptionStatus.trial,
    "trialing": SubscriptionStatus.trial,
}


def utcnow() -> datetime:
    return datetime.now(UTC)


# ==================== Creation ====================

def new_user(
    user_id: str,
    *,
    email: str | None = None,
    extension_version: str | None = None,
    installation_id: str | None = None,
    source: str | None = None,
    trial: bool = False,
    now: datetime | None = None,
) -> User:
    """Fresh basic-tier user.

    The direct verify/token paths create an active user; the manual payment
    path creates an inactive one with a 7-day trial.
    """
    now = now or utcnow()
    config = get_tier_config(Tier.basic)
    return User(
        user_id=user_id,
        email=email,
        subscription=Subscription(
            tier=Tier.basic,
            status=SubscriptionStatus.inactive if trial else SubscriptionStatus.active,
            start_date=now,
            is_trial_active=trial,
            trial_end_date=now + TRIAL_PERIOD if trial else None,
        ),
        usage_quota=UsageQuota(
            prompts_per_month=config.prompts_per_month,
            prompts_used=0,
            reset_date=now + QUOTA_PERIOD,
        ),
        features=list(config.features),
        metadata=UserMetadata(
            extension_version=extension_version,
            installation_id=installation_id,
            source=source,
            last_active_date=now,
        ),
        created_at=now,
        updated_at=now,
    )


def touch_user(
    user: User,
    *,
    extension_version: str | None = None,
    installation_id: str | None = None,
    source: str | None = None,
    now: datetime | None = None,
) -> User:
    """Refresh activity metadata; only supplied fields are overwritten"""
    user.metadata.last_active_date = now or utcnow()
    if extension_version:
        user.metadata.extension_version = extension_version
    if installation_id:
        user.metadata.installation_id = installation_id
    if source:
        user.metadata.source = source
    return user


# ==================== Quota ====================

def reset_quota(user: User, now: datetime | None = None) -> User:
    now = now or utcnow()
    user.usage_quota.prompts_used = 0
    user.usage_quota.last_reset_date = now
    user.usage_quota.reset_date = now + QUOTA_PERIOD
    return user


def maybe_rollover_quota(user: User, now: datetime | None = None) -> bool:
    """Open a new quota window once the reset date has passed"""
    now = now or utcnow()
    if now < user.usage_quota.reset_date:
        return False
    reset_quota(user, now)
    logger.debug(f"Quota window rolled over for {user.user_id}")
    return True


def check_and_consume_quota(user: User, event_type: UsageEventType, now: datetime | None = None) -> bool:
    """Draw one prompt from the quota for counted event types.

    Returns True when the quota was consumed, False for types that are not
    counted. Raises QuotaExceededError (leaving the counter untouched) when a
    limited quota is exhausted.
    """
    if event_type not in QUOTA_COUNTED_TYPES:
        return False

    quota = user.usage_quota
    if not quota.is_unlimited and quota.prompts_used >= quota.prompts_per_month:
        raise QuotaExceededError(extra={"usageQuota": quota_snapshot(quota)})

    quota.prompts_used += 1
    user.metadata.last_active_date = now or utcnow()
    return True


# ==================== Entitlements ====================

def apply_tier_change(
    user: User,
    tier: Tier,
    status: SubscriptionStatus,
    billing_subscription_id: str | None = None,
    billing_customer_id: str | None = None,
) -> User:
    """Move the user to a tier; features and quota always follow the policy.

    prompts_used is intentionally left alone.
    """
    user.subscription.tier = tier
    user.subscription.status = status
    if billing_subscription_id:
        user.subscription.billing_subscription_id = billing_subscription_id
    if billing_customer_id:
        user.subscription.billing_customer_id = billing_customer_id

    config = get_tier_config(tier)
    user.features = list(config.features)
    user.usage_quota.prompts_per_month = config.prompts_per_month
    return user


def is_trial_active(user: User, now: datetime | None = None) -> bool:
    now = now or utcnow()
    sub = user.subscription
    return bool(sub.is_trial_active and sub.trial_end_date and sub.trial_end_date > now)


def is_effectively_active(user: User, now: datetime | None = None) -> bool:
    now = now or utcnow()
    sub = user.subscription
    paid = sub.status == SubscriptionStatus.active and (sub.end_date is None or sub.end_date > now)
    return paid or is_trial_active(user, now)


def map_provider_status(status: str | None) -> SubscriptionStatus:
    return _PROVIDER_STATUS_MAP.get((status or "").strip().lower(), SubscriptionStatus.inactive)


# ==================== Webhook transitions ====================

def apply_subscription_created(user: User, data: BillingEventData, now: datetime | None = None) -> User:
    now = now or utcnow()
    apply_tier_change(
        user,
        plan_id_to_tier(data.plan_id),
        SubscriptionStatus.active,
        billing_subscription_id=data.subscription_id,
        billing_customer_id=data.customer_id,
    )
    user.subscription.start_date = now
    user.subscription.is_trial_active = False
    if data.customer_email:
        user.email = data.customer_email
    return user


def apply_subscription_updated(user: User, data: BillingEventData) -> User:
    if data.plan_id:
        apply_tier_change(user, plan_id_to_tier(data.plan_id), user.subscription.status)
    if data.status:
        user.subscription.status = map_provider_status(data.status)
    return user


def apply_subscription_cancelled(user: User, now: datetime | None = None) -> User:
    user.subscription.status = SubscriptionStatus.cancelled
    user.subscription.end_date = now or utcnow()
    return user


def apply_subscription_expired(user: User, now: datetime | None = None) -> User:
    apply_tier_change(user, Tier.basic, SubscriptionStatus.expired)
    user.subscription.end_date = now or utcnow()
    return user


def apply_payment_succeeded(user: User, now: datetime | None = None) -> User:
    user.subscription.renewal_date = (now or utcnow()) + BILLING_PERIOD
    user.subscription.status = SubscriptionStatus.active
    return user


def apply_payment_failed(user: User) -> User:
    # Grace period: no downgrade, no quota reset
    user.subscription.status = SubscriptionStatus.inactive
    return user
