#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Scale API configuration settings

Everything is read from the environment (optionally a .env file next to the
project root) once, into a single Settings object that is handed to the
components that need secrets or URLs.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load the .env file from the project root
backend_root = Path(__file__).parent.parent.parent
env_path = backend_root / ".env"
load_dotenv(env_path)

# Basic settings
DEBUG = os.getenv("DEBUG", "False").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Token issuing
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "7d")

# Supabase (user and usage-event storage)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Billing provider
BILLING_API_KEY = os.getenv("BILLING_API_KEY", "")
BILLING_API_SECRET = os.getenv("BILLING_API_SECRET", "")
BILLING_API_BASE_URL = os.getenv("BILLING_API_BASE_URL", "https://api.godaddy.com")
BILLING_TIMEOUT_SECONDS = float(os.getenv("BILLING_TIMEOUT_SECONDS", "10"))
BILLING_WEBHOOK_SECRET = os.getenv("BILLING_WEBHOOK_SECRET")

# Site used for checkout success/cancel redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "https://scaleprotocol.net")

# PayLinks per tier
PRICING_URL = "https://scaleprotocol.net/pricing"
PAYLINKS = {
    "basic": os.getenv("PAYLINK_BASIC", PRICING_URL),
    "mid": os.getenv("PAYLINK_MID", PRICING_URL),
    "top": os.getenv("PAYLINK_TOP", PRICING_URL),
}

# Usage event retention
USAGE_RETENTION_DAYS = int(os.getenv("USAGE_RETENTION_DAYS", "365"))
USAGE_PURGE_INTERVAL_HOURS = int(os.getenv("USAGE_PURGE_INTERVAL_HOURS", "24"))

# CORS
_origins = os.getenv("ALLOWED_ORIGINS")
CORS_ORIGINS = (
    [origin.strip() for origin in _origins.split(",") if origin.strip()]
    if _origins
    else ["http://localhost:3000", "https://scaleprotocol.net"]
)

# Trusted hosts (the platform router sits in front of us)
TRUSTED_HOSTS = ["*"]

# App info
APP_NAME = "Scale Backend API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
APP_DESCRIPTION = "Subscription and usage metering API for the Scale extension"


def parse_duration(value: str | int | None, default: int = 7 * 86400) -> int:
    """Turn '7d' / '12h' / '30m' / '45s' / '3600' into seconds."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    value = value.strip().lower()
    units = {"d": 86400, "h": 3600, "m": 60, "s": 1}
    try:
        if value[-1] in units:
            return int(value[:-1]) * units[value[-1]]
        return int(value)
    except ValueError:
        return default


# Config validation
def validate_config():
    """Validate required settings"""
    errors = []

    if not SUPABASE_URL:
        errors.append("SUPABASE_URL is required")
    if not SUPABASE_SERVICE_ROLE_KEY:
        errors.append("SUPABASE_SERVICE_ROLE_KEY is required")
    if not JWT_SECRET:
        errors.append("JWT_SECRET is required to issue tokens")
    if not BILLING_WEBHOOK_SECRET:
        errors.append("BILLING_WEBHOOK_SECRET is required to accept webhooks")

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")


class Settings:
    """Settings object passed to every component that needs configuration"""

    def __init__(self, **overrides):
        # Basic
        self.DEBUG = DEBUG
        self.LOG_LEVEL = LOG_LEVEL
        self.APP_NAME = APP_NAME
        self.APP_VERSION = APP_VERSION
        self.APP_DESCRIPTION = APP_DESCRIPTION

        # Tokens
        self.JWT_SECRET = JWT_SECRET
        self.JWT_EXPIRES_IN = JWT_EXPIRES_IN

        # Database (Supabase)
        self.SUPABASE_URL = SUPABASE_URL
        self.SUPABASE_SERVICE_ROLE_KEY = SUPABASE_SERVICE_ROLE_KEY

        # Billing provider
        self.BILLING_API_KEY = BILLING_API_KEY
        self.BILLING_API_SECRET = BILLING_API_SECRET
        self.BILLING_API_BASE_URL = BILLING_API_BASE_URL
        self.BILLING_TIMEOUT_SECONDS = BILLING_TIMEOUT_SECONDS
        self.BILLING_WEBHOOK_SECRET = BILLING_WEBHOOK_SECRET
        self.FRONTEND_URL = FRONTEND_URL
        self.PAYLINKS = dict(PAYLINKS)

        # Usage retention
        self.USAGE_RETENTION_DAYS = USAGE_RETENTION_DAYS
        self.USAGE_PURGE_INTERVAL_HOURS = USAGE_PURGE_INTERVAL_HOURS

        # HTTP
        self.CORS_ORIGINS = CORS_ORIGINS
        self.TRUSTED_HOSTS = TRUSTED_HOSTS

        for key, value in overrides.items():
            setattr(self, key, value)

    @property
    def jwt_expires_seconds(self) -> int:
        return parse_duration(self.JWT_EXPIRES_IN)


# Validate on import, but only warn
try:
    validate_config()
except ValueError as e:
    print(f"⚠️  Configuration warning: {e}")

# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings"""
    return settings
