"""Match registration business logic.

Rules:
- Max 4 joined players per match (hard limit, also a CHECK on matches.joined_count)
- One registration row per (user, match); leaving flips it to cancelled and
  joining again reactivates the same row
- The creator leaving deletes the whole match, registrations and feedback included
- Anyone else leaving only cancels their own registration; the match status is untouched
- The fourth join promotes a waiting match to confirmed

Capacity is claimed with a single conditional UPDATE on matches.joined_count,
so concurrent joins serialize on the match row instead of racing a
count-then-insert.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from padel.db.models import MAX_PLAYERS, Match, Registration, RegistrationStatus
from padel.errors import (
    AlreadyLeftError,
    AlreadyRegisteredError,
    MatchFullError,
    NotRegisteredError,
)
from padel.matches.lifecycle import confirm_if_full
from padel.matches.match_service import delete_match, get_match
from padel.notifications.events import MatchEvent
from padel.users.service import get_user

logger = logging.getLogger(__name__)


async def get_registration(db: AsyncSession, user_id: int, match_id: int) -> Registration | None:
    """Get the registration row for a (user, match) pair, whatever its status."""
    result = await db.execute(
        select(Registration)
        .where(Registration.user_id == user_id, Registration.match_id == match_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def is_registered(db: AsyncSession, user_id: int, match_id: int) -> bool:
    """True if the user currently holds a slot in the match."""
    registration = await get_registration(db, user_id, match_id)
    return registration is not None and registration.status == RegistrationStatus.JOINED


async def count_joined(db: AsyncSession, match_id: int) -> int:
    """Number of joined registrations for a match, counted from the rows."""
    result = await db.execute(
        select(func.count(Registration.id)).where(
            Registration.match_id == match_id,
            Registration.status == RegistrationStatus.JOINED,
        )
    )
    return result.scalar_one()


async def count_all(db: AsyncSession, match_id: int) -> int:
    """Number of registration rows for a match, cancelled ones included."""
    result = await db.execute(
        select(func.count(Registration.id)).where(Registration.match_id == match_id)
    )
    return result.scalar_one()


async def list_match_registrations(
    db: AsyncSession, match_id: int, active_only: bool = False
) -> list[Registration]:
    """Registrations of a match in sign-up order, with the user loaded."""
    query = (
        select(Registration)
        .options(selectinload(Registration.user))
        .where(Registration.match_id == match_id)
        .order_by(Registration.registered_at.asc(), Registration.id.asc())
        .execution_options(populate_existing=True)
    )
    if active_only:
        query = query.where(Registration.status == RegistrationStatus.JOINED)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_user_registrations(
    db: AsyncSession, user_id: int, active_only: bool = False
) -> list[Registration]:
    """Registrations of a user, most recent first."""
    query = (
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
        .execution_options(populate_existing=True)
    )
    if active_only:
        query = query.where(Registration.status == RegistrationStatus.JOINED)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _claim_slot(db: AsyncSession, match_id: int) -> bool:
    """Atomically take one of the match's slots. False when it is already full."""
    result = await db.execute(
        update(Match)
        .where(Match.id == match_id, Match.joined_count < MAX_PLAYERS)
        .values(joined_count=Match.joined_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _release_slot(db: AsyncSession, match_id: int) -> None:
    await db.execute(
        update(Match)
        .where(Match.id == match_id, Match.joined_count > 0)
        .values(joined_count=Match.joined_count - 1)
        .execution_options(synchronize_session=False)
    )


async def join_match(
    db: AsyncSession,
    user_id: int,
    match_id: int,
) -> tuple[Registration, list[MatchEvent]]:
    """Sign a user up for a match.

    Returns the joined registration and any lifecycle events the join
    triggered. The events must be published only after the caller commits.
    Any raised error leaves the session needing a rollback.
    """
    await get_user(db, user_id)
    match = await get_match(db, match_id)

    registration = await get_registration(db, user_id, match_id)
    if registration is not None and registration.status == RegistrationStatus.JOINED:
        raise AlreadyRegisteredError("User already registered for this match")

    if match.joined_count >= MAX_PLAYERS or not await _claim_slot(db, match_id):
        raise MatchFullError(f"Match is full - maximum {MAX_PLAYERS} players allowed")

    now = datetime.now(timezone.utc)
    if registration is not None:
        # The (user, match) pair is unique, so a cancelled row is reused in place
        result = await db.execute(
            update(Registration)
            .where(
                Registration.id == registration.id,
                Registration.status == RegistrationStatus.CANCELLED,
            )
            .values(status=RegistrationStatus.JOINED, registered_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AlreadyRegisteredError("User already registered for this match")
        registration = await db.get(Registration, registration.id, populate_existing=True)
        logger.info("User %d re-joined match %d (reactivated registration %d)", user_id, match_id, registration.id)
    else:
        registration = Registration(
            user_id=user_id,
            match_id=match_id,
            status=RegistrationStatus.JOINED,
            registered_at=now,
        )
        db.add(registration)
        try:
            await db.flush()
        except IntegrityError as e:
            raise AlreadyRegisteredError("User already registered for this match") from e
        logger.info("User %d joined match %d for the first time", user_id, match_id)

    events = await confirm_if_full(db, match_id)
    return registration, events


async def leave_match(db: AsyncSession, user_id: int, match_id: int) -> None:
    """Withdraw a user from a match.

    The creator leaving deletes the match outright, whatever its status
    (finished matches and their feedback included).
    """
    match = await get_match(db, match_id)

    if match.creator_id is not None and match.creator_id == user_id:
        logger.info("Creator %d leaving match %d - deleting entire match", user_id, match_id)
        await delete_match(db, match_id)
        return

    registration = await get_registration(db, user_id, match_id)
    if registration is None:
        raise NotRegisteredError("User is not registered for this match")
    if registration.status == RegistrationStatus.CANCELLED:
        raise AlreadyLeftError("User already left this match")

    result = await db.execute(
        update(Registration)
        .where(
            Registration.id == registration.id,
            Registration.status == RegistrationStatus.JOINED,
        )
        .values(status=RegistrationStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise AlreadyLeftError("User already left this match")
    await _release_slot(db, match_id)

    await db.refresh(registration)
    match = await get_match(db, match_id)
    logger.info(
        "User %d left match %d (%d/%d players remaining)",
        user_id,
        match_id,
        match.joined_count,
        MAX_PLAYERS,
    )
