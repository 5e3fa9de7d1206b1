#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Delete usage events older than the retention window, once.

Usage:
  SUPABASE_URL=... SUPABASE_SERVICE_ROLE_KEY=... python scripts/purge_usage_events.py [retention_days]
"""
import asyncio
import sys

from scale_api.config import settings
from scale_api.services.supabase_service import SupabaseService
from scale_api.services.usage_service import UsageService


async def purge(retention_days: int) -> int:
    db = SupabaseService()
    if db.client is None:
        raise RuntimeError("Supabase is not configured")
    return await UsageService(db).purge_expired_events(retention_days)


def main():
    retention_days = settings.USAGE_RETENTION_DAYS
    if len(sys.argv) > 1:
        try:
            retention_days = int(sys.argv[1])
        except ValueError:
            print("Usage: purge_usage_events.py [retention_days]")
            sys.exit(1)
    if retention_days <= 0:
        print("retention_days must be positive")
        sys.exit(1)

    removed = asyncio.run(purge(retention_days))
    print(f"usage events removed: {removed} (older than {retention_days} days)")


if __name__ == '__main__':
    main()
