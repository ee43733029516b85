"""
Gamification-relevant subset of a user's profile.
Sessions refer to users by id only.
"""

import bisect
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Set

from dateutil import tz

from ..errors import ValidationError


@dataclass
class UserProfile:
    user_id: str
    display_name: Optional[str] = None
    weight_kg: Optional[float] = None
    timezone: Optional[str] = None
    created_at: Optional[datetime] = None

    # Progression
    experience_points: int = 0
    level: int = 1
    completed_activities: int = 0
    badges: Set[str] = field(default_factory=set)

    # Streak state, calendar days in the reward clock's timezone
    completion_dates: List[date] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Check profile invariants; also run after edits."""
        if not self.user_id:
            raise ValidationError("user_id is required")
        if self.experience_points < 0:
            raise ValidationError("Experience points cannot be negative")
        if self.level < 1:
            raise ValidationError("Level must be at least 1")
        if self.weight_kg is not None and self.weight_kg <= 0:
            raise ValidationError("Weight must be positive")
        if self.timezone and tz.gettz(self.timezone) is None:
            raise ValidationError(f"Unknown timezone: {self.timezone}")
        self.completion_dates = sorted(set(self.completion_dates))
        self.badges = set(self.badges)

    def add_experience(self, amount: int):
        """XP only ever grows."""
        if amount < 0:
            raise ValidationError("XP award cannot be negative")
        self.experience_points += amount

    def raise_level(self, level: int):
        self.level = max(self.level, level)

    def record_completion_date(self, day: date):
        index = bisect.bisect_left(self.completion_dates, day)
        if index == len(self.completion_dates) or self.completion_dates[index] != day:
            self.completion_dates.insert(index, day)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'user_id': self.user_id,
            'display_name': self.display_name,
            'weight_kg': self.weight_kg,
            'timezone': self.timezone,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'experience_points': self.experience_points,
            'level': self.level,
            'completed_activities': self.completed_activities,
            'badges': sorted(self.badges),
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'last_activity_date': self.last_activity_date.isoformat() if self.last_activity_date else None,
        }
