"""Match lifecycle state machine.

State progression: waiting -> confirmed -> finished
- waiting -> confirmed happens automatically once the fourth player joins
- confirmed -> finished only on an explicit finish request or the expiry sweep
- cancelled is modeled but never entered
- a confirmed match never goes back to waiting, even after a player leaves

Every transition is a single conditional UPDATE guarded by the source status,
so it fires at most once no matter how many callers race for it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import MAX_PLAYERS, Match, MatchStatus, Registration, RegistrationStatus, User
from padel.errors import InvalidTransitionError
from padel.notifications.events import MatchEvent, MatchEventKind

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[MatchStatus, list[MatchStatus]] = {
    MatchStatus.WAITING: [MatchStatus.CONFIRMED],
    MatchStatus.CONFIRMED: [MatchStatus.FINISHED],
    MatchStatus.FINISHED: [],
    MatchStatus.CANCELLED: [],
}


def validate_transition(current_status: MatchStatus, target_status: MatchStatus) -> None:
    """Validate a state transition. Raises InvalidTransitionError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidTransitionError(
            f"Invalid transition: {current_status.value} -> {target_status.value}. "
            f"Valid transitions: {[status.value for status in valid]}"
        )


async def _reload(db: AsyncSession, match_id: int) -> Match | None:
    return await db.get(Match, match_id, populate_existing=True)


async def confirm_if_full(db: AsyncSession, match_id: int) -> list[MatchEvent]:
    """Promote a waiting match that has reached capacity.

    Returns one Confirmed event if this call performed the transition, else nothing.
    """
    result = await db.execute(
        update(Match)
        .where(
            Match.id == match_id,
            Match.status == MatchStatus.WAITING,
            Match.joined_count >= MAX_PLAYERS,
        )
        .values(status=MatchStatus.CONFIRMED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return []

    match = await _reload(db, match_id)
    logger.info("Match %d confirmed with %d players", match_id, match.joined_count)
    return [MatchEvent.for_match(MatchEventKind.CONFIRMED, match)]


async def finish_match(db: AsyncSession, match_id: int) -> tuple[Match, list[MatchEvent]]:
    """Finish a confirmed match and credit its joined players with a match played."""
    result = await db.execute(
        update(Match)
        .where(Match.id == match_id, Match.status == MatchStatus.CONFIRMED)
        .values(status=MatchStatus.FINISHED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        match = await _reload(db, match_id)
        if match is None:
            raise InvalidTransitionError(f"Match {match_id} not found")
        validate_transition(match.status, MatchStatus.FINISHED)
        # Only reachable if the row changed between the UPDATE and the reload
        raise InvalidTransitionError(f"Match {match_id} cannot be finished right now")

    joined_players = select(Registration.user_id).where(
        Registration.match_id == match_id,
        Registration.status == RegistrationStatus.JOINED,
    )
    await db.execute(
        update(User)
        .where(User.id.in_(joined_players))
        .values(matches_played=User.matches_played + 1)
        .execution_options(synchronize_session=False)
    )

    match = await _reload(db, match_id)
    logger.info("Match %d finished (%d players credited)", match_id, match.joined_count)
    return match, [MatchEvent.for_match(MatchEventKind.FINISHED, match)]


async def finish_expired_matches(
    db: AsyncSession,
    now: datetime | None = None,
) -> tuple[list[Match], list[MatchEvent]]:
    """Finish every confirmed match scheduled before ``now``.

    Same rule as a manual finish; waiting matches in the past are left alone.
    """
    cutoff = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Match.id)
        .where(Match.status == MatchStatus.CONFIRMED, Match.scheduled_at < cutoff)
        .order_by(Match.scheduled_at.asc(), Match.id.asc())
    )
    match_ids = list(result.scalars().all())

    finished: list[Match] = []
    events: list[MatchEvent] = []
    for match_id in match_ids:
        try:
            match, match_events = await finish_match(db, match_id)
        except InvalidTransitionError:
            # Finished or deleted by someone else since the scan
            logger.info("Skipping match %d during expiry sweep", match_id)
            continue
        finished.append(match)
        events.extend(match_events)

    if finished:
        logger.info("Expiry sweep finished %d matches", len(finished))
    return finished, events
