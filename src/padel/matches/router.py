"""Match API endpoints: catalogue, join/leave, finish.

Mutating endpoints commit first and publish lifecycle notifications after,
so a notification can never outlive a rolled-back change.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import MAX_PLAYERS, Match, MatchStatus, Registration, RegistrationStatus
from padel.dependencies import get_db, get_notification_sink
from padel.levels import Level
from padel.matches.lifecycle import finish_match
from padel.matches.match_service import create_fixed_match, create_match, find_match, get_match, list_matches
from padel.matches.registration_service import (
    join_match,
    leave_match,
    list_match_registrations,
    list_user_registrations,
)
from padel.matches.schemas import (
    CreateFixedMatchRequest,
    CreateMatchRequest,
    JoinResponse,
    LeaveResponse,
    MatchListResponse,
    MatchResponse,
    PlayerRequest,
    RegistrationListResponse,
    RegistrationResponse,
)
from padel.matches.sorting import MatchSort
from padel.notifications.events import MatchEvent
from padel.notifications.sinks import NotificationSink, publish_events
from padel.users.service import get_user

router = APIRouter(prefix="/api/v1", tags=["Matches"])


# ── Helpers ──


def _build_match_response(match: Match) -> MatchResponse:
    return MatchResponse(
        id=match.id,
        type=match.type,
        status=match.status,
        required_level=match.required_level,
        scheduled_at=match.scheduled_at,
        location=match.location,
        description=match.description,
        creator_id=match.creator_id,
        joined_count=match.joined_count,
        is_full=match.joined_count >= MAX_PLAYERS,
        created_at=match.created_at,
    )


def _build_registration_response(registration: Registration, username: str | None = None) -> RegistrationResponse:
    return RegistrationResponse(
        id=registration.id,
        user_id=registration.user_id,
        match_id=registration.match_id,
        status=registration.status,
        registered_at=registration.registered_at,
        username=username,
    )


# ── Catalogue ──


@router.post("/matches", response_model=MatchResponse, status_code=201)
async def create_match_endpoint(
    body: CreateMatchRequest,
    db: AsyncSession = Depends(get_db),
    sink: NotificationSink | None = Depends(get_notification_sink),
):
    """Propose a new match. The creator may take the first slot right away."""
    match = await create_match(
        db,
        creator_id=body.creator_id,
        location=body.location,
        scheduled_at=body.scheduled_at,
        required_level=body.required_level,
        description=body.description,
    )
    events: list[MatchEvent] = []
    if body.join_creator:
        _registration, events = await join_match(db, body.creator_id, match.id)
        match = await get_match(db, match.id)
    await db.commit()
    await publish_events(sink, events)
    return _build_match_response(match)


@router.post("/matches/fixed", response_model=MatchResponse, status_code=201)
async def create_fixed_match_endpoint(
    body: CreateFixedMatchRequest,
    db: AsyncSession = Depends(get_db),
):
    """Publish a fixed-schedule slot with no creator."""
    match = await create_fixed_match(
        db,
        location=body.location,
        scheduled_at=body.scheduled_at,
        required_level=body.required_level,
        description=body.description,
    )
    await db.commit()
    return _build_match_response(match)


@router.get("/matches", response_model=MatchListResponse)
async def list_matches_endpoint(
    sort: MatchSort = Query(MatchSort.BY_DATE),
    level: Level | None = Query(None),
    status: MatchStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List matches ordered by date, popularity or level."""
    matches = await list_matches(db, sort=sort, level=level, status=status)
    return MatchListResponse(
        matches=[_build_match_response(m) for m in matches],
        total=len(matches),
    )


@router.get("/matches/{match_id}", response_model=MatchResponse)
async def get_match_endpoint(
    match_id: int,
    db: AsyncSession = Depends(get_db),
):
    match = await get_match(db, match_id)
    return _build_match_response(match)


@router.get("/matches/{match_id}/registrations", response_model=RegistrationListResponse)
async def list_registrations_endpoint(
    match_id: int,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """Registrations of a match in sign-up order."""
    match = await get_match(db, match_id)
    registrations = await list_match_registrations(db, match_id, active_only=active_only)
    return RegistrationListResponse(
        registrations=[_build_registration_response(r, r.user.username) for r in registrations],
        joined=match.joined_count,
        total=len(registrations),
    )


# ── Registration ──


@router.post("/matches/{match_id}/join", response_model=JoinResponse)
async def join_match_endpoint(
    match_id: int,
    body: PlayerRequest,
    db: AsyncSession = Depends(get_db),
    sink: NotificationSink | None = Depends(get_notification_sink),
):
    """Take a slot in a match. The fourth player confirms it."""
    registration, events = await join_match(db, body.user_id, match_id)
    match = await get_match(db, match_id)
    await db.commit()
    await publish_events(sink, events)
    return JoinResponse(
        registration=_build_registration_response(registration),
        match=_build_match_response(match),
    )


@router.post("/matches/{match_id}/leave", response_model=LeaveResponse)
async def leave_match_endpoint(
    match_id: int,
    body: PlayerRequest,
    db: AsyncSession = Depends(get_db),
):
    """Give up a slot. If the creator leaves, the match is deleted."""
    await leave_match(db, body.user_id, match_id)
    match_deleted = await find_match(db, match_id) is None
    await db.commit()
    if match_deleted:
        return LeaveResponse(detail="Match deleted by its creator", match_deleted=True)
    return LeaveResponse(detail="Left match successfully", match_deleted=False)


# ── Lifecycle ──


@router.post("/matches/{match_id}/finish", response_model=MatchResponse)
async def finish_match_endpoint(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    sink: NotificationSink | None = Depends(get_notification_sink),
):
    """Mark a confirmed match as played."""
    match, events = await finish_match(db, match_id)
    await db.commit()
    await publish_events(sink, events)
    return _build_match_response(match)


@router.get("/users/{user_id}/registrations", response_model=RegistrationListResponse)
async def list_user_registrations_endpoint(
    user_id: int,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """A player's sign-ups, most recent first."""
    await get_user(db, user_id)
    registrations = await list_user_registrations(db, user_id, active_only=active_only)
    return RegistrationListResponse(
        registrations=[_build_registration_response(r) for r in registrations],
        joined=sum(1 for r in registrations if r.status == RegistrationStatus.JOINED),
        total=len(registrations),
    )
