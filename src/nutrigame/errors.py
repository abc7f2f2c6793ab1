"""Typed failures returned by the gamification core.

Every mutation either commits all of its effects or raises exactly one of
these. The HTTP layer renders them as ``{"detail": ..., "code": ...}``.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for caller-visible domain failures."""

    status_code = 400
    code = "game_error"
    message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.detail = message or self.message


# --- Missions ---


class AlreadyCompleted(GameError):
    status_code = 409
    code = "already_completed"
    message = "Mission already completed today"


class PhotoNotRequired(GameError):
    code = "photo_not_required"
    message = "Hydration is tracked by glasses, not photos"


class PhotoRequired(GameError):
    code = "photo_required"
    message = "This mission requires a photo"


class InvalidMissionType(GameError):
    status_code = 422
    code = "invalid_mission_type"
    message = "Unknown mission type"


# --- Squads ---


class InvalidSquadCode(GameError):
    code = "invalid_squad_code"
    message = "Squad codes are 6 characters, A-Z and 0-9"


class SquadNotFound(GameError):
    status_code = 404
    code = "squad_not_found"
    message = "Squad not found"


class SquadFull(GameError):
    status_code = 409
    code = "squad_full"
    message = "This squad has reached its member limit"


class NotOwner(GameError):
    status_code = 403
    code = "not_owner"
    message = "Only the squad owner can do this"


class NotSquadMember(GameError):
    status_code = 403
    code = "not_squad_member"
    message = "Only squad members can see this"


class CodeGenerationFailed(GameError):
    status_code = 503
    code = "code_generation_failed"
    message = "Could not generate a unique squad code"


# --- Users ---


class UserNotFound(GameError):
    status_code = 404
    code = "user_not_found"
    message = "User not found"


# --- Store ---


class TransientStoreError(GameError):
    """Store contention outlasted the retry budget."""

    status_code = 503
    code = "store_busy"
    message = "The service is busy, please retry"


class StoreConflict(Exception):
    """A concurrent writer created the same document first. Retried internally."""
