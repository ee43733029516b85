"""Tests for the XP reward engine."""

from datetime import date, datetime, timedelta, timezone

import pytest

from VibeTracker.models.user_profile import UserProfile
from VibeTracker.services import xp_reward_engine
from VibeTracker.services.level_progression import LevelCatalog
from VibeTracker.services.xp_reward_engine import XpRewardEngine

TUESDAY_0730 = datetime(2024, 3, 5, 7, 30, tzinfo=timezone.utc)
TUESDAY_1000 = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
SATURDAY_1000 = datetime(2024, 3, 9, 10, 0, tzinfo=timezone.utc)


def established_user(**kwargs):
    kwargs.setdefault('created_at', datetime(2023, 1, 1, tzinfo=timezone.utc))
    return UserProfile(user_id='u1', **kwargs)


@pytest.fixture
def engine():
    return XpRewardEngine()


class TestBaseXp:
    """Minutes + distance + category bonus."""

    def test_running(self, engine):
        assert engine.calculate_base_xp('Running', 1800, 5.0) == 92

    def test_partial_minutes_and_distance_truncate(self, engine):
        assert engine.calculate_base_xp('Running', 1799, 2.35) == 29 + 23 + 12

    def test_category_bonus_by_type(self, engine):
        assert engine.calculate_base_xp('Yoga', 2700, 0.0) == 45 + 3
        assert engine.calculate_base_xp('WeightLifting', 600, 0.0) == 10 + 8
        assert engine.calculate_base_xp('Other', 600, 0.0) == 10


class TestRewardPipeline:
    """Full award for one completion."""

    def test_tuesday_morning_run(self, engine):
        user = established_user()
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_0730)

        assert decision.base_xp == 92
        assert decision.bonuses == {'early_bird': 23}
        assert decision.total_xp == 115
        assert decision.new_total_xp == 115
        assert user.experience_points == 115
        assert decision.leveled_up is True
        assert decision.new_level == 2
        assert decision.new_level_title == 'Getting Moving'
        assert decision.unlocked_features == ['Custom activity names']
        assert [b.code for b in decision.badges_earned] == ['first_steps', 'xp_100']
        assert decision.streak_days == 1
        assert decision.xp_to_next_level == 300 - 115
        assert decision.enrichment_errors == []
        assert user.completion_dates == [date(2024, 3, 5)]
        assert user.badges == {'first_steps', 'xp_100'}

    def test_weekend_bonus(self, engine):
        decision = engine.award(established_user(), 'Running', 1800, 5.0, SATURDAY_1000)
        assert decision.bonuses == {'weekend': 46}
        assert decision.total_xp == 138

    def test_each_bonus_truncated_before_summing(self, engine):
        # base 47: 50% -> 23 and 25% -> 11, where truncating the sum would give 35
        saturday_early = datetime(2024, 3, 9, 6, 0, tzinfo=timezone.utc)
        decision = engine.award(established_user(), 'Yoga', 44 * 60, 0.0, saturday_early)
        assert decision.base_xp == 47
        assert decision.bonuses == {'weekend': 23, 'early_bird': 11}
        assert decision.total_xp == 81

    @pytest.mark.parametrize("multiplier,bonus", [(150, 46), (200, 92), (100, None), (80, None)])
    def test_multiplier(self, engine, multiplier, bonus):
        decision = engine.award(established_user(), 'Running', 1800, 5.0, TUESDAY_1000,
                                multiplier_percentage=multiplier)
        assert decision.bonuses.get('multiplier') == bonus

    def test_streak_bonus_uses_updated_streak(self, engine):
        user = established_user(current_streak=13, longest_streak=13, last_activity_date=date(2024, 3, 4))
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_1000)
        assert decision.streak_days == 14
        assert decision.bonuses == {'streak': 18}
        assert decision.streak_milestone == 14

    def test_streak_bonus_capped(self, engine):
        user = established_user(current_streak=99, longest_streak=99, last_activity_date=date(2024, 3, 4))
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_1000)
        assert decision.bonuses == {'streak': 92}

    def test_broken_streak_resets(self, engine):
        user = established_user(current_streak=20, longest_streak=20, last_activity_date=date(2024, 3, 1))
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_1000)
        assert decision.streak_days == 1
        assert decision.longest_streak == 20
        assert 'streak' not in decision.bonuses

    def test_new_user_bonus(self, engine):
        user = established_user(created_at=TUESDAY_1000 - timedelta(days=10))
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_1000)
        assert decision.bonuses == {'new_user': 18}

    def test_xp_never_decreases(self, engine):
        user = established_user()
        totals = []
        for day in range(5):
            engine.award(user, 'Walking', 600, 0.5, TUESDAY_1000 + timedelta(days=day))
            totals.append(user.experience_points)
        assert totals == sorted(totals)
        assert user.completed_activities == 5


class TestRewardClock:
    """Timezone policy for weekend/early-bird and streak days."""

    FRIDAY_2330_UTC = datetime(2024, 3, 8, 23, 30, tzinfo=timezone.utc)

    def test_user_timezone(self):
        engine = XpRewardEngine(reward_clock='user', reward_timezone='UTC')
        user = established_user(timezone='Asia/Tokyo')
        # Saturday 08:30 in Tokyo
        decision = engine.award(user, 'Running', 1800, 5.0, self.FRIDAY_2330_UTC)
        assert decision.bonuses == {'weekend': 46}
        assert user.last_activity_date == date(2024, 3, 9)

    def test_user_policy_falls_back_to_configured_zone(self):
        engine = XpRewardEngine(reward_clock='user', reward_timezone='Asia/Tokyo')
        decision = engine.award(established_user(), 'Running', 1800, 5.0, self.FRIDAY_2330_UTC)
        assert decision.bonuses == {'weekend': 46}

    def test_fixed_timezone_ignores_profile(self):
        engine = XpRewardEngine(reward_clock='fixed', reward_timezone='UTC')
        user = established_user(timezone='Asia/Tokyo')
        decision = engine.award(user, 'Running', 1800, 5.0, self.FRIDAY_2330_UTC)
        assert decision.bonuses == {}
        assert user.last_activity_date == date(2024, 3, 8)

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            XpRewardEngine(reward_clock='sundial')


class TestEnrichmentFailures:
    """Streak, badge and level-title failures never block the XP award."""

    def test_badge_failure(self):
        class BrokenEvaluator:
            def evaluate(self, *args, **kwargs):
                raise RuntimeError("badge store unavailable")

        engine = XpRewardEngine(badge_evaluator=BrokenEvaluator())
        user = established_user()
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_0730)
        assert decision.total_xp == 115
        assert user.experience_points == 115
        assert decision.badges_earned == []
        assert decision.enrichment_errors == ['badges']
        assert user.badges == set()

    def test_streak_failure(self, engine, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("streak history unavailable")

        monkeypatch.setattr(xp_reward_engine, 'extend_streak', broken)
        user = established_user(current_streak=13, longest_streak=13, last_activity_date=date(2024, 3, 4))
        decision = engine.award(user, 'Running', 1800, 5.0, TUESDAY_1000)
        assert decision.streak_days is None
        assert decision.enrichment_errors == ['streak']
        assert 'streak' not in decision.bonuses
        assert user.experience_points == 92

    def test_level_title_failure(self):
        class BrokenCatalog(LevelCatalog):
            def get_level_details(self, level):
                raise RuntimeError("catalog down")

        engine = XpRewardEngine(level_catalog=BrokenCatalog())
        decision = engine.award(established_user(), 'Running', 1800, 5.0, TUESDAY_0730)
        assert decision.leveled_up is True
        assert decision.new_level == 2
        assert decision.new_level_title is None
        assert decision.enrichment_errors == ['level_title']
