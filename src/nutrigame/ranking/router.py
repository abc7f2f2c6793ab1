"""Ranking API endpoints: 2 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.auth.dependencies import get_current_user
from nutrigame.clock import Clock
from nutrigame.config import get_settings
from nutrigame.database import get_session
from nutrigame.db.models import Squad, User
from nutrigame.dependencies import get_clock
from nutrigame.errors import NotSquadMember
from nutrigame.ranking.schemas import MyPositionResponse, RankingEntryResponse, RankingResponse
from nutrigame.ranking.service import get_ranking, get_user_position
from nutrigame.ranking.week_utils import get_week_id
from nutrigame.squads.service import get_squad

router = APIRouter(prefix="/api/v1", tags=["Ranking"])


async def _member_squad(db: AsyncSession, code: str, user: User) -> Squad:
    squad = await get_squad(db, code)
    if user.squad_code != squad.code:
        raise NotSquadMember()
    return squad


@router.get("/squads/{code}/ranking", response_model=RankingResponse)
async def squad_ranking(
    code: str,
    limit: int | None = Query(None, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> RankingResponse:
    """Current week's leaderboard for the caller's squad."""
    squad = await _member_squad(db, code, user)
    now = clock.now()
    entries = await get_ranking(db, squad.code, limit or get_settings().ranking_page_size, now=now)
    return RankingResponse(
        squad_code=squad.code,
        week_id=get_week_id(now),
        entries=[
            RankingEntryResponse(
                position=e.position,
                user_id=e.user_id,
                name=e.name,
                avatar_url=e.avatar_url,
                weekly_xp=e.weekly_xp,
                today_missions=sorted(e.today_missions),
            )
            for e in entries
        ],
    )


@router.get("/squads/{code}/ranking/me", response_model=MyPositionResponse)
async def my_position(
    code: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> MyPositionResponse:
    squad = await _member_squad(db, code, user)
    now = clock.now()
    found = await get_user_position(db, squad.code, user.id, now=now)
    if found is None:
        return MyPositionResponse(squad_code=squad.code, week_id=get_week_id(now))
    position, total = found
    return MyPositionResponse(
        squad_code=squad.code, week_id=get_week_id(now), position=position, total=total
    )
