"""
Celebration and motivation messages shown after a workout
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from ..models.activity_catalog import get_activity_type
from ..models.rewards import RewardDecision

logger = logging.getLogger(__name__)

MOTIVATIONAL_PHRASES = (
    "Keep crushing those goals!",
    "You're on fire!",
    "Unstoppable dedication!",
    "Making serious progress!",
    "That's the spirit!",
    "Excellence in action!",
    "Your hard work is paying off!",
    "Building momentum!",
)

# (phrase count, seed) -> index
PhraseSelector = Callable[[int, int], int]


def seeded_phrase_selector(count: int, seed: int) -> int:
    return seed % count


def pick_phrase(seed: int, selector: Optional[PhraseSelector] = None) -> str:
    selector = selector or seeded_phrase_selector
    index = selector(len(MOTIVATIONAL_PHRASES), seed)
    return MOTIVATIONAL_PHRASES[index % len(MOTIVATIONAL_PHRASES)]


def performance_rating(perceived_exertion: Optional[int]) -> str:
    """Map perceived exertion (1-10, default 5) to a workout rating"""
    effort = perceived_exertion if perceived_exertion is not None else 5
    if effort <= 3:
        return "Easy Recovery"
    if effort <= 5:
        return "Good Effort"
    if effort <= 7:
        return "Strong Performance"
    if effort <= 9:
        return "Excellent Workout"
    return "Beast Mode!"


def time_of_day_label(local_time: datetime) -> str:
    hour = local_time.hour
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 22:
        return "Evening"
    return "Late Night"


def default_activity_name(activity_type: str, local_time: datetime) -> str:
    """e.g. 'Morning Run', 'Evening Yoga Session'"""
    return f"{time_of_day_label(local_time)} {get_activity_type(activity_type).session_noun}"


def celebration_message(activity_type: str, active_minutes: float, reward: RewardDecision,
                        phrase: Optional[str] = None) -> str:
    messages = [
        f"🎉 Workout complete! You crushed {active_minutes:.0f} minutes of {activity_type.lower()}!",
        f"💪 Earned {reward.total_xp} XP!",
    ]
    if reward.leveled_up:
        messages.append(f"🚀 LEVEL UP! Welcome to level {reward.new_level}!")
    if reward.badges_earned:
        count = len(reward.badges_earned)
        messages.append(f"🏆 Unlocked {count} new badge{'s' if count > 1 else ''}!")
    if reward.streak_days and reward.streak_days > 1:
        messages.append(f"⚡ {reward.streak_days}-day streak! Consistency is key!")
    if phrase:
        messages.append(phrase)
    return " ".join(messages)


def achievements_list(reward: RewardDecision) -> List[str]:
    achievements = []
    if reward.leveled_up:
        achievements.append(f"Reached Level {reward.new_level}!")
    for badge in reward.badges_earned:
        achievements.append(f"Earned '{badge.name}' badge!")
    if reward.streak_milestone:
        achievements.append(f"{reward.streak_milestone}-day streak milestone!")
    return achievements
