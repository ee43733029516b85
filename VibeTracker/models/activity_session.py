"""
ActivitySession model: the state machine for one user's workout.
Owns the raw GPS route and the metrics derived from it.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from ..errors import InvalidStateError, ValidationError
from ..utils.calculations import (
    calculate_average_speed,
    calculate_calories,
    calculate_pace,
    elevation_gain_delta,
    mps_to_kmh,
    point_distance_m,
    window_speed_kmh,
)
from .rewards import WorkoutStats

STATUS_PLANNED = 'planned'
STATUS_ACTIVE = 'active'
STATUS_PAUSED = 'paused'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

SESSION_STATUSES = (STATUS_PLANNED, STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED, STATUS_CANCELLED)
LIVE_STATUSES = (STATUS_ACTIVE, STATUS_PAUSED)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

# Number of trailing points used for the current speed
SPEED_WINDOW_POINTS = 5

MIN_ELEVATION_M = -500.0
MAX_ELEVATION_M = 10000.0
MAX_TAGS = 10
MAX_TAG_LENGTH = 30


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_tags(tags) -> List[str]:
    tags = list(tags or [])
    if len(tags) > MAX_TAGS:
        raise ValidationError(f"Maximum {MAX_TAGS} tags allowed")
    cleaned = []
    for tag in tags:
        if not isinstance(tag, str) or not tag.strip():
            raise ValidationError("Tags cannot be empty")
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tags cannot exceed {MAX_TAG_LENGTH} characters")
        cleaned.append(tag.strip())
    return cleaned


def _check_number(name, value, low=None, high=None):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")
    if low is not None and value < low:
        raise ValidationError(f"{name} must be >= {low}, got {value}")
    if high is not None and value > high:
        raise ValidationError(f"{name} must be <= {high}, got {value}")


@dataclass(frozen=True)
class GpsPoint:
    """A single route sample. Speed is device-reported in m/s."""

    latitude: float
    longitude: float
    timestamp: datetime
    elevation: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None

    def __post_init__(self):
        """Validate coordinate ranges after initialization."""
        if self.latitude is None or self.longitude is None:
            raise ValidationError("Latitude and longitude are required")
        _check_number('latitude', self.latitude, -90.0, 90.0)
        _check_number('longitude', self.longitude, -180.0, 180.0)
        _check_number('elevation', self.elevation, MIN_ELEVATION_M, MAX_ELEVATION_M)
        _check_number('speed', self.speed, 0.0)
        _check_number('accuracy', self.accuracy, 0.0)
        if not isinstance(self.timestamp, datetime):
            raise ValidationError("timestamp must be a datetime")
        # Frozen dataclass, so bypass __setattr__ to normalize the timezone
        object.__setattr__(self, 'timestamp', ensure_aware(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'elevation': self.elevation,
            'speed': self.speed,
            'accuracy': self.accuracy,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class PauseInterval:
    paused_at: datetime
    resumed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.resumed_at is None

    def duration_seconds(self, until: datetime) -> float:
        end = self.resumed_at or until
        return max(0.0, (end - self.paused_at).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'paused_at': self.paused_at.isoformat(),
            'resumed_at': self.resumed_at.isoformat() if self.resumed_at else None,
        }


@dataclass
class ActivitySession:
    """One workout, from planning through completion or cancellation."""

    # Core identification
    id: str
    user_id: str
    activity_type: str
    name: Optional[str] = None
    is_public: bool = True
    tags: List[str] = field(default_factory=list)

    status: str = STATUS_PLANNED

    # Timeline
    created_at: Optional[datetime] = None
    planned_start: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    pause_intervals: List[PauseInterval] = field(default_factory=list)

    # Route and derived metrics
    route: List[GpsPoint] = field(default_factory=list)
    distance_m: float = 0.0
    elevation_gain_m: float = 0.0
    max_speed_kmh: Optional[float] = None
    current_speed_kmh: Optional[float] = None
    calories: float = 0.0

    # Completion input
    manual_calories: Optional[float] = None
    manual_distance_km: Optional[float] = None
    perceived_exertion: Optional[int] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    # Stored outcome (CompletionResult / CancelResult) returned on retries
    outcome: Optional[Any] = None

    def __post_init__(self):
        """Validate session data after initialization."""
        if self.status not in SESSION_STATUSES:
            raise ValueError(f"Invalid status: {self.status}")
        if not self.user_id:
            raise ValueError("Session must belong to a user")
        if self.started_at and self.ended_at and self.ended_at < self.started_at:
            raise ValueError("ended_at cannot be before started_at")

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def open_pause(self) -> Optional[PauseInterval]:
        if self.pause_intervals and self.pause_intervals[-1].is_open:
            return self.pause_intervals[-1]
        return None

    @property
    def last_point(self) -> Optional[GpsPoint]:
        return self.route[-1] if self.route else None

    # Durations

    def _end_for(self, at: Optional[datetime]) -> Optional[datetime]:
        if self.started_at is None:
            return None
        return self.ended_at or at or self.started_at

    def elapsed_seconds(self, at: Optional[datetime] = None) -> float:
        end = self._end_for(at)
        if end is None:
            return 0.0
        return max(0.0, (end - self.started_at).total_seconds())

    def paused_seconds(self, at: Optional[datetime] = None) -> float:
        end = self._end_for(at)
        if end is None:
            return 0.0
        return sum(p.duration_seconds(end) for p in self.pause_intervals)

    def active_seconds(self, at: Optional[datetime] = None) -> float:
        return max(0.0, self.elapsed_seconds(at) - self.paused_seconds(at))

    # Transitions

    def require_status(self, action: str, *allowed: str):
        if self.status not in allowed:
            raise InvalidStateError(
                f"Cannot {action} a session that is {self.status}",
                details={'session_id': self.id, 'status': self.status},
            )

    def start(self, at: datetime):
        self.require_status('start', STATUS_PLANNED)
        self.started_at = at
        self.status = STATUS_ACTIVE

    def add_point(self, point: GpsPoint) -> bool:
        """
        Append a point and update distance, elevation gain and speeds incrementally.

        Returns False (session unchanged) for points earlier than the latest
        recorded point or the session start, and for exact duplicates.
        """
        self.require_status('add route points to', STATUS_ACTIVE)
        if point.timestamp < self.started_at:
            return False

        last = self.last_point
        if last is not None:
            if point.timestamp < last.timestamp or point == last:
                return False
            self.distance_m += point_distance_m(last, point)
            self.elevation_gain_m += elevation_gain_delta(last.elevation, point.elevation)

        self.route.append(point)

        self.current_speed_kmh = window_speed_kmh(self.route[-SPEED_WINDOW_POINTS:])
        candidates = [s for s in (self.max_speed_kmh, self.current_speed_kmh) if s is not None]
        if point.speed is not None:
            candidates.append(mps_to_kmh(point.speed))
        self.max_speed_kmh = max(candidates) if candidates else None
        return True

    def pause(self, at: datetime) -> PauseInterval:
        self.require_status('pause', STATUS_ACTIVE)
        at = max(at, self.started_at)
        if self.pause_intervals and self.pause_intervals[-1].resumed_at:
            at = max(at, self.pause_intervals[-1].resumed_at)
        interval = PauseInterval(paused_at=at)
        self.pause_intervals.append(interval)
        self.status = STATUS_PAUSED
        return interval

    def resume(self, at: datetime) -> float:
        """Close the open pause. Returns the pause length in seconds."""
        self.require_status('resume', STATUS_PAUSED)
        interval = self.open_pause
        interval.resumed_at = max(at, interval.paused_at)
        self.status = STATUS_ACTIVE
        return interval.duration_seconds(interval.resumed_at)

    def earliest_end_time(self) -> Optional[datetime]:
        """Start, last route point, last pause boundary: the end cannot precede any of them"""
        if self.started_at is None:
            return None
        candidates = [self.started_at]
        if self.route:
            candidates.append(self.route[-1].timestamp)
        for interval in self.pause_intervals:
            candidates.append(interval.resumed_at or interval.paused_at)
        return max(candidates)

    def validate_end_time(self, end_time: datetime, latest: Optional[datetime] = None):
        """
        Raises:
            InvalidStateError: the session was never started
            ValidationError: end_time is before the start, the last route point
                or a pause boundary, or after latest
        """
        if self.started_at is None:
            raise InvalidStateError("Session was never started", details={'session_id': self.id})
        if end_time < self.started_at:
            raise ValidationError("End time cannot be before start time")
        last = self.last_point
        if last is not None and end_time < last.timestamp:
            raise ValidationError("End time cannot be before the last route point")
        open_pause = self.open_pause
        if open_pause and end_time < open_pause.paused_at:
            raise ValidationError("End time cannot be before the session was paused")
        resumed = [p.resumed_at for p in self.pause_intervals if p.resumed_at is not None]
        if resumed and end_time < max(resumed):
            raise ValidationError("End time cannot be before the session was last resumed")
        if latest is not None and end_time > latest:
            raise ValidationError("End time cannot be in the future")

    def complete(self, end_time: datetime, manual_calories=None, manual_distance_km=None,
                 perceived_exertion=None, rating=None, notes=None):
        """Finalize the session. An open pause is closed at end_time."""
        self.require_status('complete', STATUS_ACTIVE, STATUS_PAUSED)
        self.validate_end_time(end_time)
        if self.open_pause:
            self.open_pause.resumed_at = end_time
        self.ended_at = end_time
        self.manual_calories = manual_calories
        self.manual_distance_km = manual_distance_km
        self.perceived_exertion = perceived_exertion
        self.rating = rating
        self.notes = notes
        self.status = STATUS_COMPLETED

    def cancel(self, at: datetime, reason: str):
        self.require_status('cancel', STATUS_PLANNED, STATUS_ACTIVE, STATUS_PAUSED)
        if self.started_at is not None:
            end = max(at, self.earliest_end_time())
            open_pause = self.open_pause
            if open_pause:
                open_pause.resumed_at = end
            self.ended_at = end
        self.cancel_reason = reason
        self.status = STATUS_CANCELLED

    # Metrics

    def refresh_calories(self, met: float, body_weight_kg: float, at: Optional[datetime] = None) -> float:
        self.calories = calculate_calories(met, body_weight_kg, self.active_seconds(at))
        return self.calories

    @property
    def effective_distance_km(self) -> float:
        if self.manual_distance_km is not None:
            return float(self.manual_distance_km)
        return self.distance_m / 1000.0

    @property
    def effective_calories(self) -> float:
        if self.manual_calories is not None:
            return float(self.manual_calories)
        return self.calories

    def average_speed_kmh(self, at: Optional[datetime] = None) -> Optional[float]:
        return calculate_average_speed(self.effective_distance_km, self.active_seconds(at))

    def pace_min_per_km(self, at: Optional[datetime] = None) -> Optional[float]:
        return calculate_pace(self.effective_distance_km, self.active_seconds(at))

    def build_stats(self, at: Optional[datetime] = None, performance_rating: Optional[str] = None) -> WorkoutStats:
        active = self.active_seconds(at)
        average_speed = self.average_speed_kmh(at)
        pace = self.pace_min_per_km(at)
        return WorkoutStats(
            duration_minutes=round(active / 60.0, 2),
            active_seconds=round(active, 3),
            paused_seconds=round(self.paused_seconds(at), 3),
            distance_km=round(self.effective_distance_km, 3),
            calories=int(self.effective_calories),
            average_speed_kmh=round(average_speed, 2) if average_speed is not None else None,
            max_speed_kmh=round(self.max_speed_kmh, 2) if self.max_speed_kmh is not None else None,
            pace_min_per_km=round(pace, 2) if pace is not None else None,
            elevation_gain_m=round(self.elevation_gain_m, 1),
            route_points=len(self.route),
            perceived_exertion=self.perceived_exertion,
            performance_rating=performance_rating,
        )

    def to_dict(self, at: Optional[datetime] = None, include_route: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        average_speed = self.average_speed_kmh(at)
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'activity_type': self.activity_type,
            'name': self.name,
            'is_public': self.is_public,
            'tags': list(self.tags),
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'planned_start': self.planned_start.isoformat() if self.planned_start else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
            'pause_intervals': [p.to_dict() for p in self.pause_intervals],
            'active_duration_seconds': round(self.active_seconds(at), 3),
            'paused_duration_seconds': round(self.paused_seconds(at), 3),
            'distance_km': round(self.effective_distance_km, 3),
            'elevation_gain_m': round(self.elevation_gain_m, 1),
            'average_speed_kmh': round(average_speed, 2) if average_speed is not None else None,
            'max_speed_kmh': round(self.max_speed_kmh, 2) if self.max_speed_kmh is not None else None,
            'current_speed_kmh': round(self.current_speed_kmh, 2) if self.current_speed_kmh is not None else None,
            'calories': int(self.effective_calories),
            'route_point_count': len(self.route),
            'perceived_exertion': self.perceived_exertion,
            'rating': self.rating,
            'notes': self.notes,
            'cancel_reason': self.cancel_reason,
        }
        if include_route:
            data['route'] = [p.to_dict() for p in self.route]
        return data
