#!/usr/bin/env python3
"""
Supabase storage service

Persists users (with their embedded subscription and quota) and the
append-only usage event log.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger

from scale_api.config.supabase_config import get_supabase_client
from scale_api.models.subscription import User
from scale_api.models.usage import UsageEvent, UsageEventType
from scale_api.utils.errors import InternalError

USERS_TABLE = "users"
USAGE_EVENTS_TABLE = "usage_events"


def _iso(value: datetime) -> str:
    # naive values (e.g. date-only query params) are taken as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def user_to_row(user: User) -> dict[str, Any]:
    sub = user.subscription
    return {
        "user_id": user.user_id,
        "email": user.email,
        # denormalised lookup columns
        "tier": sub.tier.value,
        "status": sub.status.value,
        "billing_subscription_id": sub.billing_subscription_id,
        "billing_customer_id": sub.billing_customer_id,
        "subscription": sub.model_dump(mode="json"),
        "usage_quota": user.usage_quota.model_dump(mode="json"),
        "features": list(user.features),
        "metadata": user.metadata.model_dump(mode="json"),
        "created_at": _iso(user.created_at) if user.created_at else None,
        "updated_at": _iso(user.updated_at) if user.updated_at else None,
    }


def row_to_user(row: dict[str, Any]) -> User:
    return User(
        user_id=row["user_id"],
        email=row.get("email"),
        subscription=row["subscription"],
        usage_quota=row["usage_quota"],
        features=row.get("features") or [],
        metadata=row.get("metadata") or {},
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def event_to_row(event: UsageEvent) -> dict[str, Any]:
    return {
        "event_id": event.event_id,
        "user_id": event.user_id,
        "type": event.type.value,
        "feature": event.feature,
        "timestamp": _iso(event.timestamp),
        "metadata": event.metadata.model_dump(mode="json", exclude_none=True),
        "created_at": _iso(event.created_at or event.timestamp),
    }


def row_to_event(row: dict[str, Any]) -> UsageEvent:
    return UsageEvent(
        event_id=row["event_id"],
        user_id=row["user_id"],
        type=row["type"],
        feature=row["feature"],
        timestamp=row["timestamp"],
        metadata=row.get("metadata") or {},
        created_at=row.get("created_at"),
    )


class SupabaseService:
    """Supabase storage service"""

    def __init__(self, client=None):
        self.client = client if client is not None else get_supabase_client()
        if self.client is None:
            logger.error("SupabaseService initialised without a client")
        else:
            logger.info("SupabaseService initialised")

    # ==================== Generic helpers ====================

    async def _get_record_by_field(self, table_name: str, field_name: str, field_value: Any) -> dict[str, Any] | None:
        """Fetch a single record by one field"""
        try:
            result = self.client.table(table_name).select("*").eq(field_name, field_value).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to read from {table_name}: {e}")
            raise InternalError("Database read failed") from e
        return result.data[0] if result.data else None

    async def _create_record(self, table_name: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self.client.table(table_name).insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to insert into {table_name}: {e}")
            raise InternalError("Database write failed") from e
        if not result.data:
            raise InternalError(f"Insert into {table_name} returned no rows")
        return result.data[0]

    async def _update_record(self, table_name: str, field_name: str, field_value: Any, data: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self.client.table(table_name).update(data).eq(field_name, field_value).execute()
        except Exception as e:
            logger.error(f"Failed to update {table_name}: {e}")
            raise InternalError("Database write failed") from e
        if not result.data:
            raise InternalError(f"Update of {table_name} matched no rows")
        return result.data[0]

    # ==================== Users ====================

    async def get_user(self, user_id: str) -> User | None:
        row = await self._get_record_by_field(USERS_TABLE, "user_id", user_id)
        return row_to_user(row) if row else None

    async def get_user_by_subscription_id(self, subscription_id: str) -> User | None:
        if not subscription_id:
            return None
        row = await self._get_record_by_field(USERS_TABLE, "billing_subscription_id", subscription_id)
        return row_to_user(row) if row else None

    async def create_user(self, user: User) -> User:
        now = datetime.now(UTC)
        user.created_at = user.created_at or now
        user.updated_at = now
        row = await self._create_record(USERS_TABLE, user_to_row(user))
        logger.info(f"Created user {user.user_id}")
        return row_to_user(row)

    async def save_user(self, user: User) -> User:
        """Write back the whole user record (last write wins)"""
        user.updated_at = datetime.now(UTC)
        data = user_to_row(user)
        data.pop("user_id")
        data.pop("created_at")
        row = await self._update_record(USERS_TABLE, "user_id", user.user_id, data)
        return row_to_user(row)

    # ==================== Usage events ====================

    async def insert_usage_event(self, event: UsageEvent) -> UsageEvent:
        row = await self._create_record(USAGE_EVENTS_TABLE, event_to_row(event))
        return row_to_event(row)

    async def list_usage_events(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: UsageEventType | None = None,
        limit: int = 1000,
    ) -> list[UsageEvent]:
        """Events for a user, newest first"""
        try:
            query = self.client.table(USAGE_EVENTS_TABLE).select("*").eq("user_id", user_id)
            if start:
                query = query.gte("timestamp", _iso(start))
            if end:
                query = query.lte("timestamp", _iso(end))
            if event_type:
                query = query.eq("type", event_type.value)
            result = query.order("timestamp", desc=True).limit(limit).execute()
        except Exception as e:
            logger.error(f"Failed to query usage events for {user_id}: {e}")
            raise InternalError("Database read failed") from e
        return [row_to_event(row) for row in result.data or []]

    async def purge_usage_events(self, before: datetime) -> int:
        """Delete events created before the cutoff; returns the count removed"""
        try:
            result = self.client.table(USAGE_EVENTS_TABLE).delete().lt("created_at", _iso(before)).execute()
        except Exception as e:
            logger.error(f"Failed to purge usage events: {e}")
            raise InternalError("Database write failed") from e
        return len(result.data or [])

    async def health_check(self) -> bool:
        try:
            self.client.table(USERS_TABLE).select("user_id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning(f"Supabase health check failed: {e}")
            return False


_supabase_service: SupabaseService | None = None


async def get_supabase_service() -> SupabaseService:
    """Get the shared storage service"""
    global _supabase_service
    if _supabase_service is None:
        _supabase_service = SupabaseService()
    return _supabase_service
