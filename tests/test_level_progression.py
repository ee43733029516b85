"""Tests for the XP to level mapping."""

import pytest

from VibeTracker.errors import ValidationError
from VibeTracker.services.level_progression import (
    LevelCatalog,
    cumulative_xp_for_level,
    level_for_xp,
    level_progress,
    xp_to_advance,
)


class TestLevelThresholds:
    """Closed-form level computation."""

    @pytest.mark.parametrize("xp,level", [
        (0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (599, 3), (600, 4), (4500, 10), (4499, 9),
    ])
    def test_known_levels(self, xp, level):
        assert level_for_xp(xp) == level

    def test_cumulative_xp(self):
        assert cumulative_xp_for_level(1) == 0
        assert cumulative_xp_for_level(2) == 100
        assert cumulative_xp_for_level(3) == 300
        assert cumulative_xp_for_level(10) == 4500
        assert xp_to_advance(4) == 400

    def test_round_trip_for_every_level(self):
        for level in range(1, 500):
            threshold = cumulative_xp_for_level(level)
            assert level_for_xp(threshold) == level
            if level > 1:
                assert level_for_xp(threshold - 1) == level - 1

    def test_monotonic(self):
        previous = level_for_xp(0)
        for xp in range(1, 20000):
            current = level_for_xp(xp)
            assert previous <= current
            previous = current

    def test_huge_xp_values(self):
        level = 10 ** 9
        assert level_for_xp(cumulative_xp_for_level(level)) == level
        assert level_for_xp(cumulative_xp_for_level(level) - 1) == level - 1

    def test_negative_xp_rejected(self):
        with pytest.raises(ValidationError):
            level_for_xp(-1)

    def test_level_below_one_rejected(self):
        with pytest.raises(ValidationError):
            cumulative_xp_for_level(0)


class TestLevelProgress:
    """Progress towards the next level and catalog lookups."""

    def test_progress_midway(self):
        progress = level_progress(200)
        assert progress.level == 2
        assert progress.xp_for_current_level == 100
        assert progress.xp_for_next_level == 300
        assert progress.xp_to_next_level == 100
        assert progress.progress_percentage == 50.0
        assert progress.title == 'Getting Moving'
        assert progress.next_level_title == 'Active Starter'
        assert progress.next_level_unlocks == ['Weekly goals']

    def test_progress_at_threshold(self):
        progress = level_progress(300)
        assert progress.level == 3
        assert progress.progress_percentage == 0.0

    def test_catalog_fallback_title(self):
        details = LevelCatalog().get_level_details(99)
        assert details.title == 'Level 99'
        assert details.unlocked_features == ()

    def test_unlocks_between_levels(self):
        catalog = LevelCatalog()
        assert catalog.unlocks_between(1, 3) == ['Custom activity names', 'Weekly goals']
        assert catalog.unlocks_between(3, 3) == []
