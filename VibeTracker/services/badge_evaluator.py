"""
Badge trigger evaluation.

Badges are awarded when a transition crosses their threshold
(previous < threshold <= new), so passing a milestone once never
re-awards it on later activities.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..models.rewards import BadgeAward

logger = logging.getLogger(__name__)

METRIC_XP = 'experience_points'
METRIC_STREAK = 'streak_days'
METRIC_ACTIVITIES = 'completed_activities'


@dataclass(frozen=True)
class BadgeDefinition:
    code: str
    name: str
    description: str
    category: str
    rarity: str
    metric: str
    threshold: int

    def crossed(self, previous: int, new: int) -> bool:
        return previous < self.threshold <= new

    def to_award(self) -> BadgeAward:
        return BadgeAward(
            code=self.code,
            name=self.name,
            description=self.description,
            category=self.category,
            rarity=self.rarity,
        )


BADGE_CATALOG = (
    BadgeDefinition('first_steps', 'First Steps', 'Complete your first activity', 'Activity', 'Common', METRIC_ACTIVITIES, 1),
    BadgeDefinition('getting_serious', 'Getting Serious', 'Complete 10 activities', 'Activity', 'Common', METRIC_ACTIVITIES, 10),
    BadgeDefinition('half_century', 'Half Century', 'Complete 50 activities', 'Activity', 'Rare', METRIC_ACTIVITIES, 50),
    BadgeDefinition('centurion', 'Centurion', 'Complete 100 activities', 'Activity', 'Epic', METRIC_ACTIVITIES, 100),
    BadgeDefinition('xp_100', 'XP Rookie', 'Earn 100 XP', 'Milestone', 'Common', METRIC_XP, 100),
    BadgeDefinition('xp_500', 'XP Climber', 'Earn 500 XP', 'Milestone', 'Uncommon', METRIC_XP, 500),
    BadgeDefinition('xp_1000', 'XP Achiever', 'Earn 1,000 XP', 'Milestone', 'Rare', METRIC_XP, 1000),
    BadgeDefinition('xp_5000', 'XP Champion', 'Earn 5,000 XP', 'Milestone', 'Epic', METRIC_XP, 5000),
    BadgeDefinition('xp_10000', 'XP Legend', 'Earn 10,000 XP', 'Milestone', 'Legendary', METRIC_XP, 10000),
    BadgeDefinition('streak_3', 'Warming Up', 'Keep a 3-day streak', 'Streak', 'Common', METRIC_STREAK, 3),
    BadgeDefinition('streak_7', 'Week Warrior', 'Keep a 7-day streak', 'Streak', 'Uncommon', METRIC_STREAK, 7),
    BadgeDefinition('streak_14', 'Fortnight Fighter', 'Keep a 14-day streak', 'Streak', 'Uncommon', METRIC_STREAK, 14),
    BadgeDefinition('streak_30', 'Monthly Master', 'Keep a 30-day streak', 'Streak', 'Rare', METRIC_STREAK, 30),
    BadgeDefinition('streak_60', 'Habit Hero', 'Keep a 60-day streak', 'Streak', 'Epic', METRIC_STREAK, 60),
    BadgeDefinition('streak_100', 'Century Streak', 'Keep a 100-day streak', 'Streak', 'Epic', METRIC_STREAK, 100),
    BadgeDefinition('streak_365', 'Year of Vibes', 'Keep a 365-day streak', 'Streak', 'Legendary', METRIC_STREAK, 365),
)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Metric values before or after one completion"""

    experience_points: int = 0
    streak_days: int = 0
    completed_activities: int = 0

    def value(self, metric: str) -> int:
        return getattr(self, metric)


class BadgeTriggerEvaluator:
    def __init__(self, catalog: Sequence[BadgeDefinition] = BADGE_CATALOG):
        self.catalog = tuple(catalog)

    def evaluate(self, previous: ProgressSnapshot, new: ProgressSnapshot,
                 owned: Iterable[str] = ()) -> List[BadgeAward]:
        """
        Badges newly earned by moving from previous to new.

        Args:
            previous: Metric values before the completion
            new: Metric values after the completion
            owned: Codes of badges the user already has

        Returns:
            Newly earned badges in catalog order, never one already owned
        """
        owned = set(owned)
        earned = []
        for badge in self.catalog:
            if badge.code in owned:
                continue
            if badge.crossed(previous.value(badge.metric), new.value(badge.metric)):
                earned.append(badge.to_award())
                owned.add(badge.code)
        if earned:
            logger.info(f"Badges earned: {[b.code for b in earned]}")
        return earned

    def get(self, code: str) -> Optional[BadgeDefinition]:
        for badge in self.catalog:
            if badge.code == code:
                return badge
        return None


def collector_title(badge_count: int) -> str:
    if badge_count == 0:
        return 'Getting Started'
    if badge_count < 5:
        return 'Badge Novice'
    if badge_count < 10:
        return 'Rising Achiever'
    if badge_count < 25:
        return 'Badge Collector'
    if badge_count < 50:
        return 'Achievement Hunter'
    if badge_count < 100:
        return 'Trophy Master'
    return 'Legend'
