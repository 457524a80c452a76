"""Request/response schemas for feedback endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from padel.levels import Level


class CreateFeedbackRequest(BaseModel):
    author_id: int
    target_user_id: int
    suggested_level: Level
    comment: str | None = Field(None, max_length=1000)


class FeedbackResponse(BaseModel):
    id: int
    author_id: int
    target_user_id: int
    match_id: int
    suggested_level: Level
    comment: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreateFeedbackResponse(BaseModel):
    feedback: FeedbackResponse
    target_perceived_level: Level | None = None


class FeedbackListResponse(BaseModel):
    feedback: list[FeedbackResponse]
    total: int
    perceived_level: Level | None = None
