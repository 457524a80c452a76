"""Request/response schemas for match and registration endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from padel.db.models import MatchStatus, MatchType, RegistrationStatus
from padel.levels import Level


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreateMatchRequest(BaseModel):
    creator_id: int
    location: str = Field(..., min_length=1, max_length=128)
    scheduled_at: datetime
    required_level: Level
    description: str | None = Field(None, max_length=2000)
    join_creator: bool = False

    @field_validator("scheduled_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class CreateFixedMatchRequest(BaseModel):
    """Fixed-schedule slot published by the club, without a creator."""

    location: str = Field(..., min_length=1, max_length=128)
    scheduled_at: datetime
    required_level: Level
    description: str | None = Field(None, max_length=2000)

    @field_validator("scheduled_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class PlayerRequest(BaseModel):
    """Identifies the player acting on a match (join/leave)."""

    user_id: int


class MatchResponse(BaseModel):
    id: int
    type: MatchType
    status: MatchStatus
    required_level: Level
    scheduled_at: datetime
    location: str
    description: str | None = None
    creator_id: int | None = None
    joined_count: int
    is_full: bool
    created_at: datetime


class MatchListResponse(BaseModel):
    matches: list[MatchResponse]
    total: int


class RegistrationResponse(BaseModel):
    id: int
    user_id: int
    match_id: int
    status: RegistrationStatus
    registered_at: datetime
    username: str | None = None


class RegistrationListResponse(BaseModel):
    registrations: list[RegistrationResponse]
    joined: int
    total: int


class JoinResponse(BaseModel):
    registration: RegistrationResponse
    match: MatchResponse


class LeaveResponse(BaseModel):
    detail: str
    match_deleted: bool
