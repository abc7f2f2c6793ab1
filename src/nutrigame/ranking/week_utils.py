"""Week boundary utilities for squad rankings.

Weeks are ISO-8601 (Monday first, week 1 holds the first Thursday) and
always computed in UTC. Week ids look like ``2026-09``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def get_week_id(dt: datetime) -> str:
    """ISO year + ISO week, e.g. '2026-09'. Uses %G-%V, not %Y-%W."""
    return dt.astimezone(timezone.utc).strftime("%G-%V")


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    d = dt.astimezone(timezone.utc).date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def get_week_boundaries(dt: datetime) -> tuple[datetime, datetime]:
    """Get (Monday 00:00 UTC, Sunday 23:59:59 UTC) for the ISO week containing dt."""
    monday = get_monday(dt)
    sunday = monday + timedelta(days=6)
    start = datetime.combine(monday, time.min, tzinfo=timezone.utc)
    end = datetime.combine(sunday, time(23, 59, 59), tzinfo=timezone.utc)
    return start, end


def get_next_week_start(dt: datetime) -> datetime:
    """Monday 00:00 UTC of the week after the one containing dt."""
    start, _ = get_week_boundaries(dt)
    return start + timedelta(weeks=1)


def week_id_to_dates(week_id: str) -> tuple[date, date]:
    """Convert '2026-09' to (Monday date, Sunday date)."""
    monday = datetime.strptime(week_id + "-1", "%G-%V-%u").date()
    return monday, monday + timedelta(days=6)


def ranking_id(squad_code: str, week_id: str) -> str:
    return f"{squad_code}_{week_id}"
