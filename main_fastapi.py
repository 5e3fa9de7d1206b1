#!/usr/bin/env python3
"""
FastAPI application entry point
"""

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from loguru import logger

from scale_api.config import settings
from scale_api.utils.errors import register_exception_handlers


async def usage_retention_worker(interval_hours: int, retention_days: int):
    """Purge usage events past the retention window, once at start-up then periodically"""
    from scale_api.services.supabase_service import get_supabase_service
    from scale_api.services.usage_service import UsageService

    try:
        service = UsageService(await get_supabase_service())
        while True:
            try:
                await service.purge_expired_events(retention_days)
            except Exception as e:
                logger.error(f"Usage event purge failed: {e}")
            await asyncio.sleep(int(interval_hours) * 3600)
    except asyncio.CancelledError:
        logger.info("Usage retention task cancelled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    from scale_api.config.logging_config import setup_logging
    from scale_api.services.tier_policy import validate_tier_policy

    setup_logging(level=settings.LOG_LEVEL)
    logger.info("🚀 Scale API starting...")

    validate_tier_policy()

    try:
        from scale_api.services.supabase_service import get_supabase_service

        supabase_service = await get_supabase_service()
        if await supabase_service.health_check():
            logger.info("✅ Supabase connection OK")
        else:
            logger.warning("⚠️ Supabase connection check failed")
    except Exception as e:
        logger.error(f"❌ Storage initialisation failed: {e}")
        raise

    interval_hours = settings.USAGE_PURGE_INTERVAL_HOURS or 24
    retention_days = settings.USAGE_RETENTION_DAYS or 365
    retention_task = asyncio.create_task(usage_retention_worker(interval_hours, retention_days))
    logger.info(f"⏰ Usage retention task started: {retention_days} days, every {interval_hours} hours")

    logger.info("✅ Scale API started")

    yield

    retention_task.cancel()
    try:
        await retention_task
    except asyncio.CancelledError:
        pass
    logger.info("👋 Scale API stopped")


def create_fastapi_app() -> FastAPI:
    """Build the FastAPI app"""

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.TRUSTED_HOSTS)

    register_exception_handlers(app)

    from scale_api.routers import auth, subscription, usage, webhooks

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(subscription.router, prefix="/subscription", tags=["subscription"])
    app.include_router(usage.router, prefix="/usage", tags=["usage"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

    @app.get("/")
    async def root():
        return {
            "message": "Scale Backend API is running",
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": settings.APP_VERSION,
        }

    return app


app = create_fastapi_app()


if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("SERVER_HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 3000))

    logger.info(f"🚀 Starting server on http://{host}:{port}")
    logger.info(f"📚 API docs: http://localhost:{port}/docs")

    uvicorn.run(
        "main_fastapi:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
