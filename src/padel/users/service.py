"""User directory for the match services.

Declared level is self-reported and editable here. Perceived level is owned by
the feedback aggregator and deliberately has no setter in this module.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from padel.db.models import User
from padel.errors import NotFoundError
from padel.levels import Level

logger = logging.getLogger(__name__)


async def find_user(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by ID with fresh column values, or None."""
    return await db.get(User, user_id, populate_existing=True)


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Get a user by ID. Raises NotFoundError if missing."""
    user = await find_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    first_name: str,
    last_name: str,
    declared_level: Level,
) -> User:
    """Create a user with no perceived level and no matches played."""
    existing = await db.execute(
        select(User.id).where(
            (func.lower(User.username) == username.lower()) | (func.lower(User.email) == email.lower())
        )
    )
    if existing.first() is not None:
        raise ValueError("A user with this username or email already exists")

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        declared_level=declared_level,
        perceived_level=None,
        matches_played=0,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    logger.info("User created: %s (id=%d, declared=%s)", username, user.id, declared_level.value)
    return user


async def update_declared_level(db: AsyncSession, user_id: int, declared_level: Level) -> User:
    """Change the self-reported level of a user."""
    user = await get_user(db, user_id)
    user.declared_level = declared_level
    await db.flush()
    return user


async def list_users(db: AsyncSession) -> list[User]:
    """All users, most active first."""
    result = await db.execute(
        select(User).order_by(User.matches_played.desc(), User.username.asc())
    )
    return list(result.scalars().all())
