"""Pydantic request/response models for squad endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateSquadRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)


class JoinSquadRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=16)


class SquadMemberResponse(BaseModel):
    user_id: str
    name: str
    avatar_url: str | None = None
    level: int
    current_streak: int


class SquadResponse(BaseModel):
    code: str
    name: str
    owner_user_id: str
    member_count: int
    max_members: int
    created_at: datetime | None = None
    members: list[SquadMemberResponse] = []
