"""Squad API endpoints: 5 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.auth.dependencies import get_current_user
from nutrigame.clock import Clock
from nutrigame.database import get_session
from nutrigame.db.models import Squad, User
from nutrigame.dependencies import get_clock
from nutrigame.squads.schemas import (
    CreateSquadRequest,
    JoinSquadRequest,
    SquadMemberResponse,
    SquadResponse,
)
from nutrigame.squads.service import (
    create_squad,
    delete_squad,
    get_squad,
    get_squad_members,
    join_squad,
    leave_squad,
)

router = APIRouter(prefix="/api/v1", tags=["Squads"])


def _build_squad_response(squad: Squad, members: list[User] | None = None) -> SquadResponse:
    return SquadResponse(
        code=squad.code,
        name=squad.name,
        owner_user_id=squad.owner_user_id,
        member_count=squad.member_count,
        max_members=squad.max_members,
        created_at=squad.created_at,
        members=[
            SquadMemberResponse(
                user_id=m.id,
                name=m.name,
                avatar_url=m.avatar_url,
                level=m.level,
                current_streak=m.current_streak,
            )
            for m in members or []
        ],
    )


@router.post("/squads", response_model=SquadResponse, status_code=201)
async def create(
    body: CreateSquadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> SquadResponse:
    """Create a squad; the caller becomes its coach."""
    squad = await create_squad(db, body.name, user.id, clock=clock)
    return _build_squad_response(squad)


@router.post("/squads/join", response_model=SquadResponse)
async def join(
    body: JoinSquadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SquadResponse:
    squad = await join_squad(db, user.id, body.code)
    return _build_squad_response(squad)


@router.post("/squads/leave", status_code=204)
async def leave(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    await leave_squad(db, user.id)


@router.get("/squads/{code}", response_model=SquadResponse)
async def detail(
    code: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SquadResponse:
    """Squad details with its member list."""
    squad = await get_squad(db, code)
    members = await get_squad_members(db, squad.code)
    return _build_squad_response(squad, members)


@router.delete("/squads/{code}", status_code=204)
async def delete(
    code: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Delete a squad (owner only)."""
    await delete_squad(db, code, user.id)
