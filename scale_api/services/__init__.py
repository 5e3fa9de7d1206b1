"""
Service layer
"""

from .tier_policy import TIER_POLICY, TierConfig, get_tier_config, parse_tier, plan_id_to_tier
from . import reconciler
from .supabase_service import SupabaseService, get_supabase_service
from .billing_client import BillingClient, get_billing_client
from .subscription_service import SubscriptionService, get_subscription_service
from .usage_service import UsageService, get_usage_service
from .webhook_service import WebhookService, get_webhook_service

__all__ = [
    'TIER_POLICY', 'TierConfig', 'get_tier_config', 'parse_tier', 'plan_id_to_tier',
    'reconciler',
    'SupabaseService', 'get_supabase_service',
    'BillingClient', 'get_billing_client',
    'SubscriptionService', 'get_subscription_service',
    'UsageService', 'get_usage_service',
    'WebhookService', 'get_webhook_service',
]
