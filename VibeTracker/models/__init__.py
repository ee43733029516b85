"""
Models package for VibeTracker.
Exports all data models for use throughout the application.
"""

from .activity_catalog import ActivityType, ACTIVITY_TYPES, CATEGORY_BONUS
from .activity_session import ActivitySession, GpsPoint, PauseInterval
from .rewards import (
    BadgeAward,
    CancelResult,
    CompletionResult,
    PauseResult,
    ResumeResult,
    RewardDecision,
    StartResult,
    WorkoutStats,
    XpTransaction,
)
from .user_profile import UserProfile

__all__ = [
    'ActivityType',
    'ACTIVITY_TYPES',
    'CATEGORY_BONUS',
    'ActivitySession',
    'GpsPoint',
    'PauseInterval',
    'BadgeAward',
    'CancelResult',
    'CompletionResult',
    'PauseResult',
    'ResumeResult',
    'RewardDecision',
    'StartResult',
    'WorkoutStats',
    'XpTransaction',
    'UserProfile',
]
