"""Feedback API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel.dependencies import get_db
from padel.feedback.schemas import (
    CreateFeedbackRequest,
    CreateFeedbackResponse,
    FeedbackListResponse,
    FeedbackResponse,
)
from padel.feedback.service import create_feedback, list_feedback_for_match, list_feedback_for_user
from padel.matches.match_service import get_match
from padel.users.service import get_user

router = APIRouter(prefix="/api/v1", tags=["Feedback"])


@router.post("/matches/{match_id}/feedback", response_model=CreateFeedbackResponse, status_code=201)
async def submit_feedback_endpoint(
    match_id: int,
    body: CreateFeedbackRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rate another player's level after a match."""
    feedback = await create_feedback(
        db,
        author_id=body.author_id,
        target_user_id=body.target_user_id,
        match_id=match_id,
        suggested_level=body.suggested_level,
        comment=body.comment,
    )
    target = await get_user(db, body.target_user_id)
    await db.commit()
    return CreateFeedbackResponse(
        feedback=FeedbackResponse.model_validate(feedback),
        target_perceived_level=target.perceived_level,
    )


@router.get("/matches/{match_id}/feedback", response_model=FeedbackListResponse)
async def list_match_feedback_endpoint(
    match_id: int,
    db: AsyncSession = Depends(get_db),
):
    await get_match(db, match_id)
    feedback = await list_feedback_for_match(db, match_id)
    return FeedbackListResponse(
        feedback=[FeedbackResponse.model_validate(f) for f in feedback],
        total=len(feedback),
    )


@router.get("/users/{user_id}/feedback", response_model=FeedbackListResponse)
async def list_user_feedback_endpoint(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Feedback received by a user, with the level it adds up to."""
    user = await get_user(db, user_id)
    feedback = await list_feedback_for_user(db, user_id)
    return FeedbackListResponse(
        feedback=[FeedbackResponse.model_validate(f) for f in feedback],
        total=len(feedback),
        perceived_level=user.perceived_level,
    )
