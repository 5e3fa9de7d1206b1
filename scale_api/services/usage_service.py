#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Usage tracking and statistics service
"""

import uuid
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends
from loguru import logger

from scale_api.models.subscription import User
from scale_api.models.usage import UsageEvent, UsageEventType, UsageMetadata
from scale_api.services import reconciler
from scale_api.services.supabase_service import SupabaseService, get_supabase_service
from scale_api.utils.errors import ForbiddenError, UserNotFoundError

STATS_EVENT_LIMIT = 1000
STATS_RECENT_EVENTS = 50


def aggregate_usage(events: list[UsageEvent]) -> dict[str, Any]:
    """Simple counts and rates over a list of events"""
    stats: dict[str, Any] = {
        "totalEvents": len(events),
        "eventsByType": {},
        "eventsByFeature": {},
        "eventsByDay": {},
        "averageResponseTime": 0,
        "successRate": 0,
    }

    total_response_time = 0.0
    response_time_count = 0
    success_count = 0

    for event in events:
        event_type = event.type.value
        stats["eventsByType"][event_type] = stats["eventsByType"].get(event_type, 0) + 1
        stats["eventsByFeature"][event.feature] = stats["eventsByFeature"].get(event.feature, 0) + 1
        day = event.timestamp.date().isoformat()
        stats["eventsByDay"][day] = stats["eventsByDay"].get(day, 0) + 1

        if event.metadata.response_time:
            total_response_time += event.metadata.response_time
            response_time_count += 1
        if event.metadata.success is not False:
            success_count += 1

    if response_time_count:
        stats["averageResponseTime"] = total_response_time / response_time_count
    if events:
        stats["successRate"] = success_count / len(events) * 100
    return stats


class UsageService:
    """Usage tracking service"""

    def __init__(self, db: SupabaseService):
        self.db = db

    async def _get_user(self, user_id: str) -> User:
        user = await self.db.get_user(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def track(
        self,
        user_id: str,
        event_type: UsageEventType,
        feature: str,
        metadata: UsageMetadata | None = None,
    ) -> tuple[User, UsageEvent]:
        """Record one action, drawing from the prompt quota where it counts"""
        user = await self._get_user(user_id)

        if feature not in user.features:
            raise ForbiddenError(f"Feature '{feature}' is not available in your subscription tier")

        now = reconciler.utcnow()
        rolled_over = reconciler.maybe_rollover_quota(user, now)
        # a fresh window always has room, so a rollover is never lost to QuotaExceededError
        consumed = reconciler.check_and_consume_quota(user, event_type, now)
        if consumed or rolled_over:
            user = await self.db.save_user(user)

        event_metadata = (metadata or UsageMetadata()).model_copy(
            update={
                "extension_version": user.metadata.extension_version,
                "source": user.metadata.source,
            }
        )
        event = UsageEvent(
            event_id=str(uuid.uuid4()),
            user_id=user_id,
            type=event_type,
            feature=feature,
            timestamp=now,
            metadata=event_metadata,
            created_at=now,
        )
        event = await self.db.insert_usage_event(event)

        logger.info(f"Usage tracked for user {user_id}: {event_type.value}/{feature}")
        return user, event

    async def stats(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: UsageEventType | None = None,
    ) -> tuple[User, dict[str, Any], list[UsageEvent]]:
        user = await self._get_user(user_id)
        events = await self.db.list_usage_events(user_id, start, end, event_type, limit=STATS_EVENT_LIMIT)
        return user, aggregate_usage(events), events[:STATS_RECENT_EVENTS]

    async def reset(self, user_id: str) -> User:
        user = await self._get_user(user_id)
        reconciler.reset_quota(user)
        user = await self.db.save_user(user)
        logger.info(f"Usage quota reset for user {user_id}")
        return user

    async def purge_expired_events(self, retention_days: int) -> int:
        cutoff = reconciler.utcnow() - timedelta(days=retention_days)
        removed = await self.db.purge_usage_events(cutoff)
        logger.info(f"Purged {removed} usage events older than {cutoff.date().isoformat()}")
        return removed


async def get_usage_service(db: SupabaseService = Depends(get_supabase_service)) -> UsageService:
    return UsageService(db)
