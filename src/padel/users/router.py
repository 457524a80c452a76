"""User API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from padel.dependencies import get_db
from padel.users.schemas import CreateUserRequest, UpdateUserRequest, UserListResponse, UserResponse
from padel.users.service import create_user, get_user, list_users, update_declared_level

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user_endpoint(
    body: CreateUserRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        user = await create_user(
            db,
            username=body.username,
            email=body.email,
            first_name=body.first_name,
            last_name=body.last_name,
            declared_level=body.declared_level,
        )
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.get("/users", response_model=UserListResponse)
async def list_users_endpoint(db: AsyncSession = Depends(get_db)):
    """All players, most matches played first."""
    users = await list_users(db)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user_endpoint(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user_endpoint(
    user_id: int,
    body: UpdateUserRequest,
    db: AsyncSession = Depends(get_db),
):
    """Update the self-reported level. Perceived level is not writable."""
    user = await update_declared_level(db, user_id, body.declared_level)
    await db.commit()
    return UserResponse.model_validate(user)
