"""Achievement catalog integrity tests."""

import dataclasses

import pytest

from hscan.gamification.achievements import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    CATEGORIES,
    CATEGORY_INFO,
    CUSTOM_METRICS,
    RARITIES,
    TIME_WINDOWS,
    get_achievement,
)
from hscan.gamification.stats import UserStats


class TestCatalog:
    def test_eighteen_achievements(self):
        assert len(ACHIEVEMENTS) == 18

    def test_ids_unique(self):
        ids = [a.id for a in ACHIEVEMENTS]
        assert len(ids) == len(set(ids))
        assert set(ids) == set(ACHIEVEMENTS_BY_ID)

    def test_categories_and_rarities_valid(self):
        for a in ACHIEVEMENTS:
            assert a.category in CATEGORIES
            assert a.rarity in RARITIES

    def test_every_category_has_display_info(self):
        assert set(CATEGORY_INFO) == set(CATEGORIES)

    def test_rewards_positive(self):
        assert all(a.points > 0 for a in ACHIEVEMENTS)

    def test_counted_criteria_have_targets(self):
        for a in ACHIEVEMENTS:
            if a.criteria.type in ("scan_count", "report_count", "streak", "rank", "custom"):
                assert a.criteria.target and a.criteria.target > 0, a.id

    def test_custom_metrics_are_stats_fields(self):
        fields = {f.name for f in dataclasses.fields(UserStats)}
        assert set(CUSTOM_METRICS.values()) <= fields

    def test_time_windows_cover_time_based(self):
        time_based = {a.id for a in ACHIEVEMENTS if a.criteria.type == "time_based"}
        assert time_based == set(TIME_WINDOWS)


class TestImmutability:
    def test_entries_are_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ACHIEVEMENTS[0].points = 1_000_000

    def test_index_is_read_only(self):
        with pytest.raises(TypeError):
            ACHIEVEMENTS_BY_ID["first_steps"] = ACHIEVEMENTS[1]


class TestLookup:
    def test_known_id(self):
        first = get_achievement("first_steps")
        assert first is not None
        assert first.points == 50
        assert first.criteria.type == "scan_count"
        assert first.criteria.target == 1

    def test_unknown_id(self):
        assert get_achievement("nonexistent") is None
