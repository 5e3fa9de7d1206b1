"""
Data models
"""

from .requests import (
    CancelRequest,
    ChangePlanRequest,
    CheckoutRequest,
    RefreshRequest,
    SubscriptionUpdateRequest,
    TokenRequest,
    TrackUsageRequest,
    VerifyPaymentRequest,
    VerifyRequest,
)
from .subscription import Subscription, SubscriptionStatus, Tier, UsageQuota, User, UserMetadata
from .usage import QUOTA_COUNTED_TYPES, UsageEvent, UsageEventType, UsageMetadata

__all__ = [
    'Tier',
    'SubscriptionStatus',
    'Subscription',
    'UsageQuota',
    'UserMetadata',
    'User',
    'UsageEventType',
    'UsageMetadata',
    'UsageEvent',
    'QUOTA_COUNTED_TYPES',
    'TokenRequest',
    'RefreshRequest',
    'VerifyRequest',
    'SubscriptionUpdateRequest',
    'VerifyPaymentRequest',
    'CancelRequest',
    'ChangePlanRequest',
    'CheckoutRequest',
    'TrackUsageRequest',
]
