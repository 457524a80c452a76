"""Housekeeping arq worker: finishes confirmed matches whose start time has passed.

Import path for arq CLI: arq padel.workers.housekeeping.WorkerSettings
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from padel.config import get_settings
from padel.database import close_db, init_db, session_scope
from padel.matches.lifecycle import finish_expired_matches
from padel.notifications.sinks import RedisNotificationSink, publish_events

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url, settings.database_pool_size)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    ctx["redis"] = redis_client
    ctx["sink"] = RedisNotificationSink(redis_client, settings.notification_channel)
    logger.info("Housekeeping worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Housekeeping worker shut down")


async def finish_expired_matches_job(ctx: dict) -> int:  # type: ignore[type-arg]
    """Finish every confirmed match scheduled in the past.

    Notifications go out only after the transaction commits. Safe to run
    concurrently with the API: each match is finished at most once.
    """
    async with session_scope() as db:
        finished, events = await finish_expired_matches(db)

    delivered = await publish_events(ctx.get("sink"), events)
    if finished:
        logger.info("Finished %d expired matches (%d notifications sent)", len(finished), delivered)
    return len(finished)


def _sweep_minutes(interval: int) -> set[int]:
    """Minutes of the hour at which the sweep runs."""
    return set(range(0, 60, interval))


class WorkerSettings:
    """arq worker settings for match housekeeping."""

    functions = [finish_expired_matches_job]
    cron_jobs = [
        cron(
            finish_expired_matches_job,
            minute=_sweep_minutes(get_settings().housekeeping_interval_minutes),
            run_at_startup=True,
        ),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 1
