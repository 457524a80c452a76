"""Shared FastAPI dependencies."""

from fastapi import Request

from padel.database import get_session as _get_session
from padel.notifications.sinks import NotificationSink

get_db = _get_session


def get_notification_sink(request: Request) -> NotificationSink | None:
    """The sink wired at startup, or None when notifications are disabled."""
    return getattr(request.app.state, "notification_sink", None)
