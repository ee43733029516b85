"""
Supported activity types with their category, MET value and default session name.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class ActivityType:
    """Catalog entry for one supported activity type."""

    name: str
    category: str
    met: float
    session_noun: str = 'Workout'


# Flat XP bonus added to base XP per category
CATEGORY_BONUS = {
    'outdoor': 12,
    'strength': 8,
    'sport': 6,
    'cardio': 5,
    'flexibility': 3,
    'mind_body': 3,
    'other': 0,
}

# MET values from the Compendium of Physical Activities (moderate effort)
_ACTIVITY_TYPES = [
    ActivityType('Running', 'outdoor', 9.8, 'Run'),
    ActivityType('Cycling', 'outdoor', 7.5, 'Ride'),
    ActivityType('Swimming', 'cardio', 6.0, 'Swim'),
    ActivityType('Walking', 'outdoor', 3.5, 'Walk'),
    ActivityType('Hiking', 'outdoor', 6.0, 'Hike'),
    ActivityType('Gym', 'strength', 5.0),
    ActivityType('WeightLifting', 'strength', 6.0),
    ActivityType('Cardio', 'cardio', 7.0),
    ActivityType('Yoga', 'flexibility', 2.5, 'Yoga Session'),
    ActivityType('Pilates', 'flexibility', 3.0, 'Pilates Session'),
    ActivityType('CrossFit', 'strength', 8.0),
    ActivityType('Boxing', 'cardio', 7.8),
    ActivityType('MartialArts', 'sport', 10.3),
    ActivityType('Dance', 'cardio', 5.0, 'Dance Session'),
    ActivityType('Climbing', 'outdoor', 8.0, 'Climb'),
    ActivityType('Rowing', 'cardio', 7.0, 'Row'),
    ActivityType('Skiing', 'outdoor', 7.0, 'Ski'),
    ActivityType('Snowboarding', 'outdoor', 5.3, 'Ride'),
    ActivityType('Tennis', 'sport', 7.3, 'Match'),
    ActivityType('Basketball', 'sport', 6.5, 'Game'),
    ActivityType('Football', 'sport', 8.0, 'Game'),
    ActivityType('Soccer', 'sport', 7.0, 'Game'),
    ActivityType('Baseball', 'sport', 5.0, 'Game'),
    ActivityType('Golf', 'sport', 4.8, 'Round'),
    ActivityType('Volleyball', 'sport', 4.0, 'Game'),
    ActivityType('Badminton', 'sport', 5.5, 'Match'),
    ActivityType('TableTennis', 'sport', 4.0, 'Match'),
    ActivityType('Surfing', 'outdoor', 3.0, 'Surf'),
    ActivityType('Kayaking', 'outdoor', 5.0, 'Paddle'),
    ActivityType('Paddleboarding', 'outdoor', 6.0, 'Paddle'),
    ActivityType('RockClimbing', 'outdoor', 8.0, 'Climb'),
    ActivityType('Bouldering', 'strength', 5.8, 'Climb'),
    ActivityType('Skateboarding', 'outdoor', 5.0, 'Skate'),
    ActivityType('Rollerblading', 'outdoor', 7.5, 'Skate'),
    ActivityType('Triathlon', 'outdoor', 10.0, 'Race'),
    ActivityType('Duathlon', 'outdoor', 9.5, 'Race'),
    ActivityType('Marathon', 'outdoor', 9.8, 'Race'),
    ActivityType('HalfMarathon', 'outdoor', 9.8, 'Race'),
    ActivityType('5K', 'outdoor', 9.8, 'Race'),
    ActivityType('10K', 'outdoor', 9.8, 'Race'),
    ActivityType('HIIT', 'cardio', 8.0),
    ActivityType('Calisthenics', 'strength', 3.8),
    ActivityType('Stretching', 'flexibility', 2.3, 'Stretch'),
    ActivityType('Meditation', 'mind_body', 1.3, 'Meditation'),
    ActivityType('Other', 'other', 4.0),
]

ACTIVITY_TYPES: Dict[str, ActivityType] = {a.name: a for a in _ACTIVITY_TYPES}
_BY_LOWER = {a.name.lower(): a for a in _ACTIVITY_TYPES}


def find_activity_type(name: Optional[str]) -> Optional[ActivityType]:
    """Case-insensitive lookup; None for unsupported names."""
    if not name:
        return None
    return _BY_LOWER.get(name.strip().lower())


def get_activity_type(name: str) -> ActivityType:
    """Lookup that falls back to 'Other' for unknown names."""
    return find_activity_type(name) or ACTIVITY_TYPES['Other']


def category_bonus(activity_type: str) -> int:
    return CATEGORY_BONUS.get(get_activity_type(activity_type).category, 0)
