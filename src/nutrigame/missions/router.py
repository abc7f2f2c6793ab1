"""Mission API endpoints: 4 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.auth.dependencies import get_current_user
from nutrigame.clock import Clock, date_key
from nutrigame.config import get_settings
from nutrigame.database import get_session
from nutrigame.db.models import Mission, User
from nutrigame.dependencies import get_clock, get_push
from nutrigame.gamification.daily_bonus import completed_types, is_eligible_for_daily_bonus
from nutrigame.missions.schemas import (
    CompleteMissionRequest,
    HydrationRequest,
    MissionHistoryResponse,
    MissionOutcomeResponse,
    MissionResponse,
    TodayMissionsResponse,
)
from nutrigame.missions.service import (
    MissionOutcome,
    complete_mission,
    get_mission_history,
    get_today_missions,
    update_hydration,
)
from nutrigame.notifications.push import PushDispatcher

router = APIRouter(prefix="/api/v1", tags=["Missions"])


def _mission_response(m: Mission) -> MissionResponse:
    return MissionResponse(
        id=m.id,
        type=m.type,
        date=m.date,
        xp_earned=m.xp_earned,
        completed_at=m.completed_at,
        photo_url=m.photo_url,
        water_count=m.water_count,
        squad_code=m.squad_code,
    )


def _outcome_response(outcome: MissionOutcome) -> MissionOutcomeResponse:
    return MissionOutcomeResponse(
        mission=_mission_response(outcome.mission),
        xp_awarded=outcome.xp_awarded,
        bonus_awarded=outcome.bonus_awarded,
        total_xp=outcome.total_xp,
        level=outcome.level,
        current_streak=outcome.current_streak,
    )


@router.put("/missions/hydration", response_model=MissionOutcomeResponse)
async def set_hydration(
    body: HydrationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    push: PushDispatcher = Depends(get_push),
) -> MissionOutcomeResponse:
    """Set today's glass count (clamped to 0..5)."""
    outcome = await update_hydration(db, user.id, body.glasses, clock=clock, push=push)
    return _outcome_response(outcome)


@router.post("/missions/{mission_type}/complete", response_model=MissionOutcomeResponse, status_code=201)
async def complete(
    mission_type: str,
    body: CompleteMissionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    push: PushDispatcher = Depends(get_push),
) -> MissionOutcomeResponse:
    """Complete a photo mission for today."""
    outcome = await complete_mission(db, user.id, mission_type, body.photo_url, clock=clock, push=push)
    return _outcome_response(outcome)


@router.get("/missions/today", response_model=TodayMissionsResponse)
async def today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> TodayMissionsResponse:
    missions = await get_today_missions(db, user.id, clock=clock)
    done = completed_types(missions)
    return TodayMissionsResponse(
        date=date_key(clock.today(user.timezone)),
        missions=[_mission_response(m) for m in missions],
        completed_types=sorted(done),
        bonus_eligible=is_eligible_for_daily_bonus(done),
    )


@router.get("/missions/history", response_model=MissionHistoryResponse)
async def history(
    limit: int | None = Query(None, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MissionHistoryResponse:
    """Photo missions, most recent first."""
    missions = await get_mission_history(db, user.id, limit or get_settings().history_page_size)
    return MissionHistoryResponse(missions=[_mission_response(m) for m in missions])
