"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from padel.config import Settings, get_settings
from padel.database import close_db, init_db
from padel.feedback.router import router as feedback_router
from padel.health.router import router as health_router
from padel.matches.router import router as matches_router
from padel.middleware import setup_middleware
from padel.notifications.sinks import NotificationLog, NotificationSink, RedisNotificationSink
from padel.users.router import router as users_router


def _build_notification_sink(app: FastAPI, settings: Settings) -> NotificationSink:
    """Pick the sink for the configured backend. The redis client is kept on app.state."""
    if settings.notification_backend == "redis":
        app.state.redis = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        return RedisNotificationSink(app.state.redis, settings.notification_channel)
    return NotificationLog()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, settings.database_pool_size)

    # A sink placed on app.state before startup (tests) wins over the configured one
    if getattr(app.state, "notification_sink", None) is None:
        app.state.notification_sink = _build_notification_sink(app, settings)

    yield

    await close_db()
    redis = getattr(app.state, "redis", None)
    if redis is not None:
        await redis.aclose()
        app.state.redis = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Padel Match API",
        description="Group sign-ups for four-player padel matches",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(matches_router)
    app.include_router(feedback_router)

    return app
