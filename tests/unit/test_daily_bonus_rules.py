"""Daily bonus eligibility."""

from nutrigame.db.models import Mission
from nutrigame.gamification.daily_bonus import (
    MISSION_TYPES,
    completed_types,
    is_eligible_for_daily_bonus,
)


def _mission(mission_type: str, water_count: int | None = None) -> Mission:
    return Mission(type=mission_type, water_count=water_count)


class TestCompletedTypes:
    def test_photo_missions_count(self):
        done = completed_types([_mission("breakfast"), _mission("workout")])
        assert done == {"breakfast", "workout"}

    def test_partial_hydration_does_not_count(self):
        assert completed_types([_mission("hydration", 4)]) == set()

    def test_full_hydration_counts(self):
        assert completed_types([_mission("hydration", 5)]) == {"hydration"}


class TestEligibility:
    def test_all_six_types(self):
        assert is_eligible_for_daily_bonus(set(MISSION_TYPES)) is True

    def test_missing_one_type(self):
        assert is_eligible_for_daily_bonus(set(MISSION_TYPES) - {"snack"}) is False

    def test_empty(self):
        assert is_eligible_for_daily_bonus(set()) is False

    def test_hydration_with_four_glasses_blocks_bonus(self):
        missions = [_mission(t) for t in MISSION_TYPES if t != "hydration"]
        missions.append(_mission("hydration", 4))
        assert is_eligible_for_daily_bonus(completed_types(missions)) is False
