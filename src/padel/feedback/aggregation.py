"""Perceived level aggregation.

A user's perceived level is the round-half-up mean of the weights of every
level suggested for them, across all matches, or null when no feedback is
left. Anything that adds or removes feedback recomputes it in the same
transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import Feedback, User
from padel.errors import NotFoundError
from padel.levels import Level, perceived_level_from

logger = logging.getLogger(__name__)


def lock_target_query(user_id: int) -> Select[tuple[User]]:
    """Row lock on the rated user.

    Concurrent recomputes for one target queue on this lock, so each one reads
    the feedback committed by the previous one.
    """
    return (
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def recompute_perceived_level(db: AsyncSession, user_id: int) -> Level | None:
    """Recalculate and store a user's perceived level from all received feedback."""
    result = await db.execute(lock_target_query(user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    result = await db.execute(
        select(Feedback.suggested_level).where(Feedback.target_user_id == user_id)
    )
    suggested = list(result.scalars().all())

    perceived = perceived_level_from(suggested)
    user.perceived_level = perceived
    await db.flush()
    logger.info(
        "Perceived level for user %d is now %s (based on %d feedbacks)",
        user_id,
        perceived.value if perceived is not None else "unset",
        len(suggested),
    )
    return perceived
