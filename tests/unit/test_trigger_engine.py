"""Trigger engine unit tests: every criteria type against every action."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from hscan.exceptions import InvalidInput
from hscan.gamification.achievements import ACHIEVEMENTS, get_achievement
from hscan.gamification.actions import (
    LevelReached,
    RankAchieved,
    ReportSubmitted,
    ScanCompleted,
    StreakUpdated,
)
from hscan.gamification.stats import UserStats
from hscan.gamification.trigger_engine import evaluate, measure

NOON = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)  # Wednesday


def _ids(achievements):
    return [a.id for a in achievements]


def _scan(hour: int = 12) -> ScanCompleted:
    return ScanCompleted(site_id="site-1", timestamp=NOON.replace(hour=hour))


class TestScanCount:
    """scan_count fires on ScanCompleted only."""

    def test_first_scan_unlocks_first_steps(self):
        stats = UserStats(user_id="u1", total_scans=1)
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan())) == ["first_steps"]

    def test_tenth_scan_unlocks_site_explorer(self):
        stats = UserStats(user_id="u1", total_scans=10, achievements_unlocked=frozenset({"first_steps"}))
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan())) == ["site_explorer"]

    def test_not_triggered_by_report(self):
        stats = UserStats(user_id="u1", total_scans=1)
        report = ReportSubmitted(report_id="r1", timestamp=NOON)
        assert "first_steps" not in _ids(evaluate(ACHIEVEMENTS, stats, report))

    def test_below_target(self):
        stats = UserStats(user_id="u1", total_scans=9, achievements_unlocked=frozenset({"first_steps"}))
        assert evaluate(ACHIEVEMENTS, stats, _scan()) == []


class TestReportCount:
    def test_first_report(self):
        stats = UserStats(user_id="u1", total_reports=1)
        report = ReportSubmitted(report_id="r1", timestamp=NOON)
        assert _ids(evaluate(ACHIEVEMENTS, stats, report)) == ["data_contributor"]

    def test_not_triggered_by_scan(self):
        stats = UserStats(user_id="u1", total_reports=1, achievements_unlocked=frozenset({"first_steps"}))
        assert evaluate(ACHIEVEMENTS, stats, _scan()) == []


class TestStreak:
    """streak reads the action's count, not the stored stats."""

    def test_seven_day_streak(self):
        stats = UserStats(user_id="u1")
        assert _ids(evaluate(ACHIEVEMENTS, stats, StreakUpdated(streak_count=7))) == ["week_warrior"]

    def test_thirty_day_streak_unlocks_both(self):
        stats = UserStats(user_id="u1")
        assert _ids(evaluate(ACHIEVEMENTS, stats, StreakUpdated(streak_count=30))) == [
            "week_warrior", "month_master",
        ]

    def test_short_streak(self):
        assert evaluate(ACHIEVEMENTS, UserStats(user_id="u1"), StreakUpdated(streak_count=6)) == []


class TestTimeBased:
    """Local-hour windows on ScanCompleted."""

    @pytest.mark.parametrize("hour", [0, 5, 6])
    def test_early_bird(self, hour):
        stats = UserStats(user_id="u1", achievements_unlocked=frozenset({"first_steps"}))
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan(hour))) == ["early_bird"]

    @pytest.mark.parametrize("hour", [22, 23])
    def test_night_owl(self, hour):
        stats = UserStats(user_id="u1", achievements_unlocked=frozenset({"first_steps"}))
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan(hour))) == ["night_owl"]

    @pytest.mark.parametrize("hour", [7, 12, 21])
    def test_daytime_scan_unlocks_neither(self, hour):
        stats = UserStats(user_id="u1", achievements_unlocked=frozenset({"first_steps"}))
        assert evaluate(ACHIEVEMENTS, stats, _scan(hour)) == []


class TestRank:
    def test_rank_three_unlocks_both(self):
        stats = UserStats(user_id="u1")
        assert _ids(evaluate(ACHIEVEMENTS, stats, RankAchieved(rank=3))) == ["top_ten", "podium_finish"]

    def test_rank_ten_unlocks_top_ten(self):
        assert _ids(evaluate(ACHIEVEMENTS, UserStats(user_id="u1"), RankAchieved(rank=10))) == ["top_ten"]

    def test_rank_eleven(self):
        assert evaluate(ACHIEVEMENTS, UserStats(user_id="u1"), RankAchieved(rank=11)) == []


class TestCustom:
    """Level and weekend milestones fire on any action."""

    def test_level_five_on_level_reached(self):
        stats = UserStats(user_id="u1", points=1000, level=5)
        assert _ids(evaluate(ACHIEVEMENTS, stats, LevelReached(level=5))) == ["rising_star"]

    def test_level_ten_unlocks_two(self):
        stats = UserStats(user_id="u1", points=7593, level=10)
        assert _ids(evaluate(ACHIEVEMENTS, stats, LevelReached(level=10))) == ["rising_star", "heritage_hero"]

    def test_level_milestone_on_report(self):
        stats = UserStats(user_id="u1", level=5, achievements_unlocked=frozenset({"data_contributor"}))
        report = ReportSubmitted(report_id="r1", timestamp=NOON)
        assert _ids(evaluate(ACHIEVEMENTS, stats, report)) == ["rising_star"]

    def test_weekend_warrior(self):
        stats = UserStats(user_id="u1", total_scans=5, weekend_scans=5,
                          achievements_unlocked=frozenset({"first_steps"}))
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan())) == ["weekend_warrior"]


class TestEvaluate:
    """Catalog-level guarantees."""

    def test_already_unlocked_never_returned(self):
        stats = UserStats(
            user_id="u1",
            total_scans=100,
            level=20,
            achievements_unlocked=frozenset(a.id for a in ACHIEVEMENTS),
        )
        for action in (_scan(5), StreakUpdated(100), RankAchieved(1), LevelReached(20)):
            assert evaluate(ACHIEVEMENTS, stats, action) == []

    def test_results_in_catalog_order(self):
        stats = UserStats(user_id="u1", total_scans=100)
        assert _ids(evaluate(ACHIEVEMENTS, stats, _scan(5))) == [
            "first_steps", "site_explorer", "heritage_hunter", "master_guardian", "early_bird",
        ]

    def test_unknown_action_rejected(self):
        with pytest.raises(InvalidInput):
            evaluate(ACHIEVEMENTS, UserStats(user_id="u1"), object())

    def test_pure(self):
        stats = UserStats(user_id="u1", total_scans=1)
        assert evaluate(ACHIEVEMENTS, stats, _scan()) == evaluate(ACHIEVEMENTS, stats, _scan())


class TestMeasure:
    def test_scan_progress(self):
        stats = UserStats(user_id="u1", total_scans=4)
        assert measure(get_achievement("site_explorer"), stats) == (4, 10)

    def test_streak_uses_current_streak(self):
        stats = UserStats(user_id="u1", current_streak=3, longest_streak=3)
        assert measure(get_achievement("week_warrior"), stats) == (3, 7)

    def test_level_milestone(self):
        stats = UserStats(user_id="u1", points=600, level=4)
        assert measure(get_achievement("rising_star"), stats) == (4, 5)

    def test_one_shot_locked(self):
        assert measure(get_achievement("early_bird"), UserStats(user_id="u1")) == (0, 1)

    def test_one_shot_unlocked(self):
        stats = UserStats(user_id="u1", achievements_unlocked=frozenset({"podium_finish"}))
        assert measure(get_achievement("podium_finish"), stats) == (1, 1)
