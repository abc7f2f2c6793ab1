"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.config import get_settings
from nutrigame.database import get_session
from nutrigame.dependencies import get_push
from nutrigame.notifications.push import PushDispatcher

router = APIRouter()


async def _probe_database(db: AsyncSession) -> str:
    try:
        await db.scalar(text("SELECT 1"))
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


async def _probe_push(push: PushDispatcher) -> str:
    try:
        await push.ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    push: PushDispatcher = Depends(get_push),  # noqa: B008
) -> JSONResponse:
    """503 until both the database and the push channel's Redis answer."""
    checks = {
        "database": await _probe_database(db),
        "redis": await _probe_push(push),
    }
    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
