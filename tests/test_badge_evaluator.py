"""Tests for badge trigger evaluation."""

import pytest

from VibeTracker.services.badge_evaluator import (
    BadgeTriggerEvaluator,
    ProgressSnapshot,
    collector_title,
)


@pytest.fixture
def evaluator():
    return BadgeTriggerEvaluator()


def codes(badges):
    return [b.code for b in badges]


class TestBadgeTriggers:
    """Delta-crossing semantics."""

    def test_first_activity(self, evaluator):
        earned = evaluator.evaluate(ProgressSnapshot(0, 0, 0), ProgressSnapshot(40, 1, 1))
        assert codes(earned) == ['first_steps']

    def test_crossing_xp_threshold(self, evaluator):
        earned = evaluator.evaluate(ProgressSnapshot(90, 1, 3), ProgressSnapshot(130, 1, 4))
        assert codes(earned) == ['xp_100']

    def test_no_award_once_threshold_passed(self, evaluator):
        # User sits above 100 XP but lost the badge record; passing it again must not re-award
        earned = evaluator.evaluate(ProgressSnapshot(150, 2, 5), ProgressSnapshot(250, 3, 6))
        assert 'xp_100' not in codes(earned)
        assert codes(earned) == ['streak_3']

    def test_landing_exactly_on_threshold(self, evaluator):
        earned = evaluator.evaluate(ProgressSnapshot(400, 6, 9), ProgressSnapshot(500, 7, 10))
        assert codes(earned) == ['getting_serious', 'xp_500', 'streak_7']

    def test_big_jump_crosses_several_thresholds(self, evaluator):
        earned = evaluator.evaluate(ProgressSnapshot(0, 0, 0), ProgressSnapshot(1200, 0, 1))
        assert codes(earned) == ['first_steps', 'xp_100', 'xp_500', 'xp_1000']

    def test_owned_badges_are_never_reawarded(self, evaluator):
        earned = evaluator.evaluate(ProgressSnapshot(0, 0, 0), ProgressSnapshot(120, 1, 1),
                                    owned={'first_steps'})
        assert codes(earned) == ['xp_100']

    def test_nothing_when_metrics_unchanged(self, evaluator):
        snapshot = ProgressSnapshot(800, 4, 12)
        assert evaluator.evaluate(snapshot, snapshot) == []

    def test_lookup_by_code(self, evaluator):
        assert evaluator.get('streak_30').threshold == 30
        assert evaluator.get('missing') is None


@pytest.mark.parametrize("count,title", [
    (0, 'Getting Started'), (1, 'Badge Novice'), (5, 'Rising Achiever'), (10, 'Badge Collector'),
    (25, 'Achievement Hunter'), (50, 'Trophy Master'), (100, 'Legend'),
])
def test_collector_title(count, title):
    assert collector_title(count) == title
