"""Time source injected into every time-sensitive operation.

"Today" is always resolved in the user's recorded timezone; week windows
and scheduled jobs use UTC.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None) -> ZoneInfo | timezone:
    """Return the tzinfo for an IANA name, falling back to UTC when unknown."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return timezone.utc


class Clock:
    """Wall clock. Subclass (or use FixedClock) to control time in tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_now(self, tz_name: str | None) -> datetime:
        """Current time in the given timezone."""
        return self.now().astimezone(resolve_timezone(tz_name))

    def today(self, tz_name: str | None = None) -> date:
        """Current calendar day in the given timezone."""
        return self.local_now(tz_name).date()


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, at: datetime) -> None:
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def advance(self, **delta: float) -> None:
        self._at = self._at + timedelta(**delta)


def date_key(day: date) -> str:
    """Mission date key, e.g. '2026-02-25'."""
    return day.isoformat()
