"""
Level progression: XP to level mapping and level titles/unlocks.

Going from level L to L+1 costs L x 100 XP, so reaching level L takes
50 x L x (L - 1) cumulative XP.
"""
import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple

from ..errors import ValidationError

logger = logging.getLogger(__name__)

XP_PER_LEVEL_STEP = 100


def cumulative_xp_for_level(level: int) -> int:
    if level < 1:
        raise ValidationError(f"Level must be at least 1, got {level}")
    return (XP_PER_LEVEL_STEP // 2) * level * (level - 1)


def xp_to_advance(level: int) -> int:
    """XP needed to go from level to level + 1"""
    if level < 1:
        raise ValidationError(f"Level must be at least 1, got {level}")
    return level * XP_PER_LEVEL_STEP


def level_for_xp(xp: int) -> int:
    """
    Largest level L with 50 x L x (L - 1) <= xp.

    Solved in closed form with an integer square root, so huge XP values
    take constant work and never hit float rounding.
    """
    if xp < 0:
        raise ValidationError(f"XP cannot be negative, got {xp}")
    q = int(xp) // (XP_PER_LEVEL_STEP // 2)
    return (1 + math.isqrt(1 + 4 * q)) // 2


@dataclass(frozen=True)
class LevelDetails:
    level: int
    title: str
    unlocked_features: Tuple[str, ...] = ()


class LevelCatalog:
    """Titles and unlocked features per level. Levels without an entry get a generic title."""

    DEFAULT_TITLES = {
        1: 'Fitness Newbie',
        2: 'Getting Moving',
        3: 'Active Starter',
        5: 'Rising Mover',
        8: 'Dedicated Athlete',
        10: 'Fitness Enthusiast',
        15: 'Endurance Builder',
        20: 'Fitness Warrior',
        25: 'Elite Performer',
        30: 'Fitness Master',
        40: 'Legendary Athlete',
        50: 'Fitness Legend',
    }

    DEFAULT_UNLOCKS = {
        2: ('Custom activity names',),
        3: ('Weekly goals',),
        5: ('Challenges', 'Friend leaderboards'),
        8: ('Route sharing',),
        10: ('Advanced analytics',),
        15: ('Custom challenges',),
        20: ('Profile themes',),
        25: ('Coach mode',),
        30: ('Legendary badge showcase',),
    }

    def __init__(self, titles: Optional[Dict[int, str]] = None, unlocks: Optional[Dict[int, Tuple[str, ...]]] = None):
        self.titles = dict(titles if titles is not None else self.DEFAULT_TITLES)
        self.unlocks = dict(unlocks if unlocks is not None else self.DEFAULT_UNLOCKS)

    def get_level_details(self, level: int) -> LevelDetails:
        title = self.titles.get(level, f"Level {level}")
        return LevelDetails(level=level, title=title, unlocked_features=tuple(self.unlocks.get(level, ())))

    def unlocks_between(self, previous_level: int, new_level: int) -> List[str]:
        """Features unlocked by every level in (previous_level, new_level]"""
        features = []
        for level in range(previous_level + 1, new_level + 1):
            features.extend(self.unlocks.get(level, ()))
        return features


@dataclass
class LevelProgress:
    level: int
    title: str
    experience_points: int
    xp_for_current_level: int
    xp_for_next_level: int
    xp_to_next_level: int
    progress_percentage: float
    next_level_title: str
    next_level_unlocks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def level_progress(xp: int, catalog: Optional[LevelCatalog] = None) -> LevelProgress:
    """Where xp sits between the current level's threshold and the next one"""
    catalog = catalog or LevelCatalog()
    level = level_for_xp(xp)
    current_floor = cumulative_xp_for_level(level)
    next_floor = cumulative_xp_for_level(level + 1)
    span = next_floor - current_floor
    progress = min(100.0, round((xp - current_floor) * 100.0 / span, 1))
    current = catalog.get_level_details(level)
    upcoming = catalog.get_level_details(level + 1)
    return LevelProgress(
        level=level,
        title=current.title,
        experience_points=xp,
        xp_for_current_level=current_floor,
        xp_for_next_level=next_floor,
        xp_to_next_level=next_floor - xp,
        progress_percentage=progress,
        next_level_title=upcoming.title,
        next_level_unlocks=list(upcoming.unlocked_features),
    )
