"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from padel.levels import Level


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    first_name: str = Field(..., min_length=1, max_length=64)
    last_name: str = Field(..., min_length=1, max_length=64)
    declared_level: Level


class UpdateUserRequest(BaseModel):
    """Only the self-reported level is editable."""

    declared_level: Level


class UserResponse(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    declared_level: Level
    perceived_level: Level | None = None
    matches_played: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
