"""Match catalogue: creation, lookup, listing and deletion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, distinct, select
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import Feedback, Match, MatchStatus, MatchType, Registration
from padel.errors import NotFoundError
from padel.feedback.aggregation import recompute_perceived_level
from padel.levels import Level
from padel.matches.sorting import MatchSort, sort_matches
from padel.users.service import get_user

logger = logging.getLogger(__name__)


async def find_match(db: AsyncSession, match_id: int) -> Match | None:
    """Get a match by ID with fresh column values, or None."""
    return await db.get(Match, match_id, populate_existing=True)


async def get_match(db: AsyncSession, match_id: int) -> Match:
    """Get a match by ID. Raises NotFoundError if missing."""
    match = await find_match(db, match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


async def create_match(
    db: AsyncSession,
    creator_id: int,
    location: str,
    scheduled_at: datetime,
    required_level: Level,
    description: str | None = None,
) -> Match:
    """Create a proposed match in status waiting. The creator does not take a slot."""
    await get_user(db, creator_id)

    match = Match(
        type=MatchType.PROPOSED,
        status=MatchStatus.WAITING,
        required_level=required_level,
        scheduled_at=scheduled_at,
        location=location,
        description=description,
        creator_id=creator_id,
        joined_count=0,
        created_at=datetime.now(timezone.utc),
    )
    db.add(match)
    await db.flush()
    logger.info("Match created at %s (id=%d, creator=%d)", location, match.id, creator_id)

    return match


async def create_fixed_match(
    db: AsyncSession,
    location: str,
    scheduled_at: datetime,
    required_level: Level,
    description: str | None = None,
) -> Match:
    """Create a fixed-schedule slot. These have no creator."""
    match = Match(
        type=MatchType.FIXED,
        status=MatchStatus.WAITING,
        required_level=required_level,
        scheduled_at=scheduled_at,
        location=location,
        description=description,
        creator_id=None,
        joined_count=0,
        created_at=datetime.now(timezone.utc),
    )
    db.add(match)
    await db.flush()
    logger.info("Fixed match slot created at %s (id=%d)", location, match.id)
    return match


async def list_matches(
    db: AsyncSession,
    sort: MatchSort = MatchSort.BY_DATE,
    level: Level | None = None,
    status: MatchStatus | None = None,
) -> list[Match]:
    """List matches, optionally filtered by required level and status."""
    query = select(Match)
    if level is not None:
        query = query.where(Match.required_level == level)
    if status is not None:
        query = query.where(Match.status == status)

    result = await db.execute(query.execution_options(populate_existing=True))
    return sort_matches(result.scalars().all(), sort)


async def delete_match(db: AsyncSession, match_id: int) -> None:
    """Delete a match together with all of its registrations and feedback.

    Players rated on this match get their perceived level recomputed from the
    feedback that remains, or cleared when none does.
    """
    result = await db.execute(select(distinct(Feedback.target_user_id)).where(Feedback.match_id == match_id))
    rated_user_ids = sorted(result.scalars().all())

    for model in (Feedback, Registration):
        await db.execute(
            delete(model).where(model.match_id == match_id).execution_options(synchronize_session="fetch")
        )
    await db.execute(delete(Match).where(Match.id == match_id).execution_options(synchronize_session="fetch"))
    logger.info("Match %d deleted with its registrations and feedback", match_id)

    for user_id in rated_user_ids:
        await recompute_perceived_level(db, user_id)
