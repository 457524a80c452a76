"""Notification sinks for match lifecycle events.

Delivery is best effort: a sink failure is logged and never reaches the
operation that produced the event, which has already committed by then.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from typing import Protocol

import redis.asyncio as aioredis

from padel.notifications.events import MatchEvent, format_message

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def notify(self, event: MatchEvent) -> None: ...


class NotificationLog:
    """In-memory, thread-safe record of delivered events.

    Owned by whoever creates it (the app state or a test), never a module global.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[MatchEvent] = []

    async def notify(self, event: MatchEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.info("Notification recorded: %s", format_message(event))

    @property
    def events(self) -> list[MatchEvent]:
        with self._lock:
            return list(self._events)

    def messages(self) -> list[str]:
        return [format_message(event) for event in self.events]

    def latest(self, count: int) -> list[MatchEvent]:
        with self._lock:
            return list(self._events[-count:]) if count > 0 else []

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class RedisNotificationSink:
    """Publish events over Redis pub/sub.

    Each event goes to ``match:{match_id}`` for players watching that match and
    to the shared notifications channel for fan-out consumers.
    """

    def __init__(self, redis: aioredis.Redis, channel: str = "notifications") -> None:
        self._redis = redis
        self._channel = channel

    async def notify(self, event: MatchEvent) -> None:
        payload = json.dumps(event.to_payload())
        await self._redis.publish(f"match:{event.match_id}", payload)
        await self._redis.publish(self._channel, payload)


async def publish_events(sink: NotificationSink | None, events: Iterable[MatchEvent]) -> int:
    """Deliver committed events to the sink. Returns how many were delivered."""
    if sink is None:
        return 0

    delivered = 0
    for event in events:
        try:
            await sink.notify(event)
            delivered += 1
        except Exception:
            logger.warning(
                "Failed to deliver %s notification for match %d",
                event.kind.value,
                event.match_id,
                exc_info=True,
            )
    return delivered
