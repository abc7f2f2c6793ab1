"""Pydantic response models for ranking endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class RankingEntryResponse(BaseModel):
    position: int
    user_id: str
    name: str
    avatar_url: str | None = None
    weekly_xp: int
    today_missions: list[str] = []


class RankingResponse(BaseModel):
    squad_code: str
    week_id: str
    entries: list[RankingEntryResponse]


class MyPositionResponse(BaseModel):
    squad_code: str
    week_id: str
    position: int | None = None
    total: int = 0
