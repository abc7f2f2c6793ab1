"""Pydantic request/response models for user endpoints."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


def _check_timezone(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {value}") from e
    return value


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    email: str | None = Field(None, max_length=320)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        return _check_timezone(v)


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)
    timezone: str | None = None
    notifications_enabled: bool | None = None
    device_token: str | None = Field(None, max_length=512)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        return _check_timezone(v)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str | None = None
    avatar_url: str | None = None
    squad_code: str | None = None
    is_coach: bool
    total_xp: int
    level: int
    current_streak: int
    longest_streak: int
    last_completed_date: date | None = None
    timezone: str
    notifications_enabled: bool
    created_at: datetime | None = None


class LevelProgressResponse(BaseModel):
    total_xp: int
    level: int
    xp_into_level: int
    xp_for_level: int
    percentage: float
    next_level_total_xp: int
