"""
XP reward engine: base XP, itemized bonuses, level transitions,
badge triggers and streak continuation for one completed session.
"""
import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Dict

from dateutil import tz

from ..config import REWARD_CLOCK_POLICIES, REWARD_CLOCK_SERVER, REWARD_CLOCK_USER
from ..errors import EnrichmentFailure, ValidationError
from ..models.activity_catalog import category_bonus
from ..models.rewards import RewardDecision
from ..models.user_profile import UserProfile
from .badge_evaluator import BadgeTriggerEvaluator, ProgressSnapshot
from .level_progression import LevelCatalog, cumulative_xp_for_level, level_for_xp
from .streak_tracker import STREAK_MILESTONES, StreakState, current_streak_as_of, extend_streak

logger = logging.getLogger(__name__)

XP_PER_KM = 10
WEEKEND_BONUS_PCT = 50
EARLY_BIRD_BONUS_PCT = 25
EARLY_BIRD_HOUR = 8
NEW_USER_BONUS_PCT = 20
NEW_USER_WINDOW = timedelta(days=30)
STREAK_BONUS_PCT_PER_WEEK = 10
STREAK_BONUS_MAX_PCT = 100


def percent_of(base: int, pct: int) -> int:
    """Integer percentage, truncated toward zero"""
    return base * pct // 100


class XpRewardEngine:
    def __init__(self, level_catalog: Optional[LevelCatalog] = None,
                 badge_evaluator: Optional[BadgeTriggerEvaluator] = None,
                 reward_clock: str = REWARD_CLOCK_USER, reward_timezone: str = 'UTC'):
        if reward_clock not in REWARD_CLOCK_POLICIES:
            raise ValueError(f"Invalid reward clock policy: {reward_clock}")
        self.level_catalog = level_catalog or LevelCatalog()
        self.badge_evaluator = badge_evaluator or BadgeTriggerEvaluator()
        self.reward_clock = reward_clock
        self.reward_timezone = reward_timezone

    @classmethod
    def from_config(cls, config, **kwargs):
        return cls(
            reward_clock=getattr(config, 'REWARD_CLOCK', REWARD_CLOCK_USER),
            reward_timezone=getattr(config, 'REWARD_TIMEZONE', 'UTC'),
            **kwargs,
        )

    # Clock policy

    def _zone(self, name: Optional[str]) -> tzinfo:
        zone = tz.gettz(name) if name else None
        if zone is None:
            logger.warning(f"Unknown timezone {name!r}, using UTC for rewards")
            return tz.UTC
        return zone

    def policy_zone(self, user: Optional[UserProfile] = None) -> tzinfo:
        if self.reward_clock == REWARD_CLOCK_SERVER:
            return tz.tzlocal()
        if self.reward_clock == REWARD_CLOCK_USER and user is not None and user.timezone:
            return self._zone(user.timezone)
        return self._zone(self.reward_timezone)

    def local_time(self, instant: datetime, user: Optional[UserProfile] = None) -> datetime:
        """The completion instant as seen by the configured reward clock"""
        return instant.astimezone(self.policy_zone(user))

    # Arithmetic

    def calculate_base_xp(self, activity_type: str, active_seconds: float, distance_km: float) -> int:
        """Whole active minutes + 10 per km (truncated) + the category bonus"""
        if active_seconds < 0 or distance_km < 0:
            raise ValidationError("Duration and distance cannot be negative")
        minutes = int(active_seconds // 60)
        return minutes + int(distance_km * XP_PER_KM) + category_bonus(activity_type)

    def calculate_bonuses(self, base_xp: int, local_completion: datetime, streak_days: int,
                          is_new_user: bool, multiplier_percentage: Optional[int] = None) -> Dict[str, int]:
        """
        Each bonus is a truncated percentage of base XP; they never compound.
        Only non-zero bonuses are returned.
        """
        bonuses = {}
        if multiplier_percentage is not None and multiplier_percentage > 100:
            bonuses['multiplier'] = percent_of(base_xp, int(multiplier_percentage) - 100)
        if local_completion.weekday() >= 5:
            bonuses['weekend'] = percent_of(base_xp, WEEKEND_BONUS_PCT)
        streak_pct = min((streak_days // 7) * STREAK_BONUS_PCT_PER_WEEK, STREAK_BONUS_MAX_PCT)
        if streak_pct > 0:
            bonuses['streak'] = percent_of(base_xp, streak_pct)
        if local_completion.hour < EARLY_BIRD_HOUR:
            bonuses['early_bird'] = percent_of(base_xp, EARLY_BIRD_BONUS_PCT)
        if is_new_user:
            bonuses['new_user'] = percent_of(base_xp, NEW_USER_BONUS_PCT)
        return {source: amount for source, amount in bonuses.items() if amount > 0}

    # Pipeline

    def award(self, user: UserProfile, activity_type: str, active_seconds: float, distance_km: float,
              completed_at: datetime, multiplier_percentage: Optional[int] = None) -> RewardDecision:
        """
        Compute and apply the reward for one completion.

        Mutates the given profile (callers pass a working copy and commit it
        together with the session). Streak, badge and level-title failures are
        logged and leave their fields empty; the XP award still goes through.
        """
        base_xp = self.calculate_base_xp(activity_type, active_seconds, distance_km)
        local_completion = self.local_time(completed_at, user)
        completion_day = local_completion.date()
        errors = []

        previous_state = StreakState(user.current_streak, user.longest_streak, user.last_activity_date)
        previous_streak = current_streak_as_of(previous_state, completion_day)
        new_state = None
        try:
            new_state = extend_streak(previous_state, completion_day, history=user.completion_dates)
        except Exception as e:
            failure = EnrichmentFailure('streak', e)
            logger.error(f"Error updating streak for user {user.user_id}: {failure}")
            errors.append('streak')
        user.record_completion_date(completion_day)
        if new_state is not None:
            user.current_streak = new_state.current
            user.longest_streak = new_state.longest
            user.last_activity_date = new_state.last_date

        streak_days = new_state.current if new_state is not None else 0
        is_new_user = user.created_at is not None and completed_at - user.created_at < NEW_USER_WINDOW
        bonuses = self.calculate_bonuses(base_xp, local_completion, streak_days, is_new_user, multiplier_percentage)
        bonus_xp = sum(bonuses.values())
        total_xp = base_xp + bonus_xp

        previous_xp = user.experience_points
        previous_level = user.level
        user.add_experience(total_xp)
        user.raise_level(level_for_xp(user.experience_points))
        leveled_up = user.level > previous_level

        decision = RewardDecision(
            base_xp=base_xp,
            bonuses=bonuses,
            bonus_xp=bonus_xp,
            total_xp=total_xp,
            previous_xp=previous_xp,
            new_total_xp=user.experience_points,
            previous_level=previous_level,
            current_level=user.level,
            leveled_up=leveled_up,
            new_level=user.level if leveled_up else None,
            xp_to_next_level=cumulative_xp_for_level(user.level + 1) - user.experience_points,
        )

        if leveled_up:
            try:
                details = self.level_catalog.get_level_details(user.level)
                decision.new_level_title = details.title
                decision.unlocked_features = self.level_catalog.unlocks_between(previous_level, user.level)
            except Exception as e:
                failure = EnrichmentFailure('level_title', e)
                logger.error(f"Error looking up level {user.level} details: {failure}")
                errors.append('level_title')
            logger.info(f"User {user.user_id} leveled up: {previous_level} -> {user.level}")

        if new_state is not None:
            decision.streak_days = new_state.current
            decision.longest_streak = new_state.longest
            if new_state.current > previous_streak and new_state.current in STREAK_MILESTONES:
                decision.streak_milestone = new_state.current

        previous_count = user.completed_activities
        user.completed_activities += 1
        try:
            earned = self.badge_evaluator.evaluate(
                ProgressSnapshot(previous_xp, previous_streak, previous_count),
                ProgressSnapshot(user.experience_points, streak_days, user.completed_activities),
                owned=user.badges,
            )
            decision.badges_earned = earned
            user.badges.update(b.code for b in earned)
        except Exception as e:
            failure = EnrichmentFailure('badges', e)
            logger.error(f"Error evaluating badges for user {user.user_id}: {failure}")
            errors.append('badges')

        decision.enrichment_errors = errors
        logger.info(f"Awarded {total_xp} XP to user {user.user_id} (base: {base_xp}, bonus: {bonus_xp} {bonuses})")
        return decision
