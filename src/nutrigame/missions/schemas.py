"""Pydantic request/response models for mission endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CompleteMissionRequest(BaseModel):
    photo_url: str = Field(..., min_length=1, max_length=2048)


class HydrationRequest(BaseModel):
    glasses: int


class MissionResponse(BaseModel):
    id: str
    type: str
    date: str
    xp_earned: int
    completed_at: datetime
    photo_url: str | None = None
    water_count: int | None = None
    squad_code: str | None = None


class MissionOutcomeResponse(BaseModel):
    mission: MissionResponse
    xp_awarded: int
    bonus_awarded: bool
    total_xp: int
    level: int
    current_streak: int


class TodayMissionsResponse(BaseModel):
    date: str
    missions: list[MissionResponse]
    completed_types: list[str]
    bonus_eligible: bool


class MissionHistoryResponse(BaseModel):
    missions: list[MissionResponse]
