"""User API endpoints: 5 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.auth.dependencies import get_caller_id, get_current_user
from nutrigame.clock import Clock
from nutrigame.database import get_session
from nutrigame.db.models import User
from nutrigame.dependencies import get_clock
from nutrigame.gamification.levels import progress_in_current_level, total_xp_to_reach_level
from nutrigame.users.schemas import (
    CreateUserRequest,
    LevelProgressResponse,
    UpdateProfileRequest,
    UserResponse,
)
from nutrigame.users.service import create_user, delete_user, update_profile

router = APIRouter(prefix="/api/v1", tags=["Users"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar_url=user.avatar_url,
        squad_code=user.squad_code,
        is_coach=user.is_coach,
        total_xp=user.total_xp,
        level=user.level,
        current_streak=user.current_streak,
        longest_streak=user.longest_streak,
        last_completed_date=user.last_completed_date,
        timezone=user.timezone,
        notifications_enabled=user.notifications_enabled,
        created_at=user.created_at,
    )


@router.post("/users", response_model=UserResponse, status_code=201)
async def signup(
    body: CreateUserRequest,
    user_id: str = Depends(get_caller_id),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> UserResponse:
    """Create the profile for the authenticated identity (idempotent)."""
    user = await create_user(db, user_id, body.name, body.email, body.timezone, clock=clock)
    return _user_response(user)


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return _user_response(user)


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update profile and notification settings."""
    updated = await update_profile(db, user.id, **body.model_dump(exclude_unset=True))
    return _user_response(updated)


@router.delete("/users/me", status_code=204)
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Delete the account; mission history is kept."""
    await delete_user(db, user.id)


@router.get("/levels/progress", response_model=LevelProgressResponse)
async def level_progress(user: User = Depends(get_current_user)) -> LevelProgressResponse:
    progress = progress_in_current_level(user.total_xp)
    return LevelProgressResponse(
        total_xp=user.total_xp,
        level=progress.level,
        xp_into_level=progress.current,
        xp_for_level=progress.required,
        percentage=round(progress.percentage, 4),
        next_level_total_xp=total_xp_to_reach_level(progress.level + 1),
    )
