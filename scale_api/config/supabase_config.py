"""
Supabase client factory
"""

from loguru import logger
from supabase import Client, create_client

from scale_api.config import settings

_client: Client | None = None


def get_supabase_client() -> Client | None:
    """Create (once) and return the service-role Supabase client.

    The service role key bypasses RLS, which the API needs because it writes
    on behalf of every user.
    """
    global _client
    if _client is not None:
        return _client

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("Supabase is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY missing)")
        return None

    _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client
