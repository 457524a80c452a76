"""Peer feedback.

Each new feedback recomputes the target's perceived level from scratch, in the
same transaction as the insert (see padel.feedback.aggregation).

Self-feedback and feedback on matches that are not finished are accepted;
no rule against either exists yet.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import Feedback
from padel.errors import DuplicateFeedbackError
from padel.feedback.aggregation import recompute_perceived_level
from padel.levels import Level
from padel.matches.match_service import get_match
from padel.users.service import get_user

logger = logging.getLogger(__name__)


async def get_feedback(
    db: AsyncSession, author_id: int, target_user_id: int, match_id: int
) -> Feedback | None:
    """Get the feedback left by an author for a target on a match, if any."""
    result = await db.execute(
        select(Feedback).where(
            Feedback.author_id == author_id,
            Feedback.target_user_id == target_user_id,
            Feedback.match_id == match_id,
        )
    )
    return result.scalar_one_or_none()


async def list_feedback_for_user(db: AsyncSession, user_id: int) -> list[Feedback]:
    """All feedback ever received by a user, oldest first."""
    result = await db.execute(
        select(Feedback)
        .where(Feedback.target_user_id == user_id)
        .order_by(Feedback.created_at.asc(), Feedback.id.asc())
    )
    return list(result.scalars().all())


async def list_feedback_by_author(db: AsyncSession, user_id: int) -> list[Feedback]:
    """All feedback written by a user, oldest first."""
    result = await db.execute(
        select(Feedback)
        .where(Feedback.author_id == user_id)
        .order_by(Feedback.created_at.asc(), Feedback.id.asc())
    )
    return list(result.scalars().all())


async def list_feedback_for_match(db: AsyncSession, match_id: int) -> list[Feedback]:
    """All feedback left on a match, oldest first."""
    result = await db.execute(
        select(Feedback)
        .where(Feedback.match_id == match_id)
        .order_by(Feedback.created_at.asc(), Feedback.id.asc())
    )
    return list(result.scalars().all())


async def create_feedback(
    db: AsyncSession,
    author_id: int,
    target_user_id: int,
    match_id: int,
    suggested_level: Level,
    comment: str | None = None,
) -> Feedback:
    """Record a rating and refresh the target's perceived level.

    Raises DuplicateFeedbackError if the author already rated this target for
    this match; in that case nothing is written.
    """
    await get_user(db, author_id)
    await get_user(db, target_user_id)
    await get_match(db, match_id)

    if await get_feedback(db, author_id, target_user_id, match_id) is not None:
        raise DuplicateFeedbackError("Feedback already exists for this user and match")

    feedback = Feedback(
        author_id=author_id,
        target_user_id=target_user_id,
        match_id=match_id,
        suggested_level=suggested_level,
        comment=comment,
        created_at=datetime.now(timezone.utc),
    )
    db.add(feedback)
    try:
        await db.flush()
    except IntegrityError as e:
        raise DuplicateFeedbackError("Feedback already exists for this user and match") from e

    logger.info("Feedback created by %d for %d on match %d", author_id, target_user_id, match_id)
    await recompute_perceived_level(db, target_user_id)
    return feedback
