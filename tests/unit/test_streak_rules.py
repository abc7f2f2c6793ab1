"""Streak continuity rules."""

from datetime import date

from nutrigame.gamification.streaks import (
    apply_completion,
    is_already_counted_today,
    resulting_streak,
    should_increment,
)

TODAY = date(2026, 3, 4)


class TestStreakPredicates:
    def test_yesterday_increments(self):
        assert should_increment(date(2026, 3, 3), TODAY) is True

    def test_two_days_ago_does_not_increment(self):
        assert should_increment(date(2026, 3, 2), TODAY) is False

    def test_null_last_does_not_increment(self):
        assert should_increment(None, TODAY) is False
        assert is_already_counted_today(None, TODAY) is False

    def test_already_counted_today(self):
        assert is_already_counted_today(TODAY, TODAY) is True

    def test_month_boundary(self):
        assert should_increment(date(2026, 2, 28), date(2026, 3, 1)) is True

    def test_year_boundary(self):
        assert should_increment(date(2025, 12, 31), date(2026, 1, 1)) is True


class TestResultingStreak:
    def test_consecutive_day(self):
        assert resulting_streak(5, date(2026, 3, 3), TODAY) == 6

    def test_gap_resets_to_one(self):
        assert resulting_streak(5, date(2026, 3, 2), TODAY) == 1

    def test_same_day_unchanged(self):
        assert resulting_streak(5, TODAY, TODAY) == 5

    def test_first_completion(self):
        assert resulting_streak(0, None, TODAY) == 1


class TestApplyCompletion:
    def test_longest_tracks_new_record(self):
        update = apply_completion(5, 5, date(2026, 3, 3), TODAY)
        assert update.current_streak == 6
        assert update.longest_streak == 6
        assert update.last_completed_date == TODAY

    def test_longest_kept_after_reset(self):
        update = apply_completion(3, 10, date(2026, 2, 20), TODAY)
        assert update.current_streak == 1
        assert update.longest_streak == 10
