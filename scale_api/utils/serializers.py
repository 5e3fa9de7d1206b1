"""
Response shapes shared by the routers
"""

from datetime import datetime
from typing import Any

from scale_api.models.subscription import UsageQuota, User
from scale_api.models.usage import UsageEvent


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def quota_snapshot(quota: UsageQuota) -> dict[str, Any]:
    return {
        "promptsPerMonth": quota.prompts_per_month,
        "promptsUsed": quota.prompts_used,
        "promptsRemaining": quota.prompts_remaining,
        "resetDate": iso(quota.reset_date),
    }


def user_summary(user: User) -> dict[str, Any]:
    """Minimal user view returned with tokens"""
    return {
        "userId": user.user_id,
        "tier": user.subscription.tier.value,
        "status": user.subscription.status.value,
        "features": list(user.features),
    }


def user_detail(user: User, is_trial_active: bool) -> dict[str, Any]:
    data = user_summary(user)
    data.update(
        {
            "usageQuota": quota_snapshot(user.usage_quota),
            "isTrialActive": is_trial_active,
            "trialEndDate": iso(user.subscription.trial_end_date),
            "renewalDate": iso(user.subscription.renewal_date),
        }
    )
    return data


def usage_event_view(event: UsageEvent) -> dict[str, Any]:
    return {
        "eventId": event.event_id,
        "userId": event.user_id,
        "type": event.type.value,
        "feature": event.feature,
        "timestamp": iso(event.timestamp),
        "metadata": event.metadata.model_dump(by_alias=True, exclude_none=True),
    }
