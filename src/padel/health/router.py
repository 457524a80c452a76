"""Liveness, readiness and version endpoints."""

from collections.abc import Awaitable

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from padel.config import get_settings
from padel.db.models import MAX_PLAYERS
from padel.dependencies import get_db

router = APIRouter()


async def _run_check(check: Awaitable[object]) -> str:
    try:
        await check
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict[str, object]:
    """Database always; Redis only when it carries the notifications."""
    checks: dict[str, str] = {"database": await _run_check(db.execute(text("SELECT 1")))}

    if get_settings().notification_backend == "redis":
        redis = getattr(request.app.state, "redis", None)
        checks["redis"] = "error: not connected" if redis is None else await _run_check(redis.ping())

    ready = all(result == "ok" for result in checks.values())
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, object]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "max_players": MAX_PLAYERS,
    }
