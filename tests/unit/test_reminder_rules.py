"""Reminder selection by local hour."""

from datetime import datetime, timezone

from nutrigame.db.models import Mission, User
from nutrigame.notifications.reminders import hourly_reminder_for, streak_warning_for


def _user(streak: int = 0) -> User:
    return User(id="u1", name="Ana", device_token="tok", notifications_enabled=True, current_streak=streak)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 4, hour, minute, tzinfo=timezone.utc)


def _missions(*types: str) -> list[Mission]:
    return [Mission(type=t, water_count=5 if t == "hydration" else None) for t in types]


class TestMealReminders:
    def test_breakfast_at_nine(self):
        message = hourly_reminder_for(_user(), _at(9), [])
        assert message.data["type"] == "breakfast_reminder"

    def test_skipped_when_already_done(self):
        assert hourly_reminder_for(_user(), _at(13), _missions("lunch")) is None

    def test_dinner_at_nineteen(self):
        assert hourly_reminder_for(_user(), _at(19), _missions("lunch")).data["type"] == "dinner_reminder"

    def test_nothing_at_other_hours(self):
        assert hourly_reminder_for(_user(), _at(15), []) is None


class TestDailySummary:
    def test_counts_remaining(self):
        message = hourly_reminder_for(_user(), _at(21), _missions("breakfast", "lunch"))
        assert "2/6" in message.body
        assert "bonus" not in message.body

    def test_mentions_bonus_when_close(self):
        message = hourly_reminder_for(_user(), _at(21), _missions("breakfast", "lunch", "dinner", "snack"))
        assert "4/6" in message.body
        assert "100 XP bonus" in message.body

    def test_silent_when_all_done(self):
        all_six = _missions("breakfast", "lunch", "dinner", "snack", "workout", "hydration")
        assert hourly_reminder_for(_user(), _at(21), all_six) is None


class TestStreakWarning:
    def test_warns_long_streak_without_missions(self):
        message = streak_warning_for(_user(streak=4), _at(21, 30), [])
        assert message.data["type"] == "streak_warning"
        assert "4-day" in message.body

    def test_short_streak_not_warned(self):
        assert streak_warning_for(_user(streak=2), _at(21, 30), []) is None

    def test_any_mission_today_prevents_warning(self):
        assert streak_warning_for(_user(streak=9), _at(21, 30), _missions("snack")) is None

    def test_only_at_twenty_one(self):
        assert streak_warning_for(_user(streak=9), _at(20, 30), []) is None
