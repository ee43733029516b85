"""
Result types returned by session commands and the XP reward engine.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List


@dataclass
class WorkoutStats:
    """Final (or partial) metrics for a session"""

    duration_minutes: float
    active_seconds: float
    paused_seconds: float
    distance_km: float
    calories: int
    average_speed_kmh: Optional[float]
    max_speed_kmh: Optional[float]
    pace_min_per_km: Optional[float]
    elevation_gain_m: float
    route_points: int
    perceived_exertion: Optional[int] = None
    performance_rating: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BadgeAward:
    code: str
    name: str
    description: str
    category: str
    rarity: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RewardDecision:
    """Everything one completion awarded. Computed once and never re-derived."""

    base_xp: int
    bonuses: Dict[str, int] = field(default_factory=dict)
    bonus_xp: int = 0
    total_xp: int = 0
    previous_xp: int = 0
    new_total_xp: int = 0
    previous_level: int = 1
    current_level: int = 1
    leveled_up: bool = False
    new_level: Optional[int] = None
    new_level_title: Optional[str] = None
    unlocked_features: List[str] = field(default_factory=list)
    badges_earned: List[BadgeAward] = field(default_factory=list)
    streak_days: Optional[int] = None
    longest_streak: Optional[int] = None
    streak_milestone: Optional[int] = None
    xp_to_next_level: int = 0
    enrichment_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['bonuses'] = dict(self.bonuses)
        return data


@dataclass
class XpTransaction:
    """Audit record for an XP award, handed to the ledger"""

    user_id: str
    amount: int
    base_amount: int
    bonus_amount: int
    reason: str
    source: str
    source_id: Optional[str]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        return data


@dataclass
class StartResult:
    session_id: str
    start_time: Optional[datetime]
    status: str
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'status': self.status,
            'name': self.name,
        }


@dataclass
class PauseResult:
    paused_at: datetime
    current_duration_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'paused_at': self.paused_at.isoformat(),
            'current_duration_minutes': self.current_duration_minutes,
        }


@dataclass
class ResumeResult:
    resumed_at: datetime
    pause_duration_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'resumed_at': self.resumed_at.isoformat(),
            'pause_duration_minutes': self.pause_duration_minutes,
        }


@dataclass
class CompletionResult:
    session_id: str
    completed_at: datetime
    reward: RewardDecision
    stats: WorkoutStats
    celebration_message: str = ''
    achievements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'completed_at': self.completed_at.isoformat(),
            'reward': self.reward.to_dict(),
            'stats': self.stats.to_dict(),
            'celebration_message': self.celebration_message,
            'achievements': list(self.achievements),
        }


@dataclass
class CancelResult:
    session_id: str
    cancelled_at: datetime
    final_duration_minutes: float
    partial_stats: WorkoutStats
    reason: str
    xp_awarded: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'cancelled_at': self.cancelled_at.isoformat(),
            'final_duration_minutes': self.final_duration_minutes,
            'partial_stats': self.partial_stats.to_dict(),
            'reason': self.reason,
            'xp_awarded': self.xp_awarded,
        }
