"""
Usage routes: tracking, statistics, manual quota reset
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from scale_api.models.requests import TrackUsageRequest
from scale_api.models.usage import UsageEventType
from scale_api.services.usage_service import UsageService, get_usage_service
from scale_api.utils.serializers import quota_snapshot, usage_event_view

router = APIRouter()


@router.post("/track")
async def track_usage(
    body: TrackUsageRequest,
    service: UsageService = Depends(get_usage_service),
):
    user, event = await service.track(body.user_id, body.type, body.feature, body.metadata)
    return {
        "success": True,
        "eventId": event.event_id,
        "usageQuota": quota_snapshot(user.usage_quota),
    }


@router.get("/stats/{user_id}")
async def usage_stats(
    user_id: str,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    event_type: UsageEventType | None = Query(None, alias="type"),
    service: UsageService = Depends(get_usage_service),
):
    user, stats, events = await service.stats(user_id, start_date, end_date, event_type)
    return {
        "user": {
            "userId": user.user_id,
            "tier": user.subscription.tier.value,
            "usageQuota": quota_snapshot(user.usage_quota),
        },
        "stats": stats,
        "events": [usage_event_view(event) for event in events],
    }


@router.post("/reset/{user_id}")
async def reset_usage(
    user_id: str,
    service: UsageService = Depends(get_usage_service),
):
    user = await service.reset(user_id)
    return {"success": True, "usageQuota": quota_snapshot(user.usage_quota)}
