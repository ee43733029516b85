"""
Activity session command service.

Serializes every mutation of a session under that session's lock, guards
the one-live-session-per-user rule with a per-user lock, and commits the
reward and the terminal transition of a completed session together.
Lock order is always session, then user.
"""
import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Any

from ..errors import ConcurrentSessionError, NotFoundError, ValidationError
from ..models.activity_catalog import find_activity_type, get_activity_type
from ..models.activity_session import (
    STATUS_COMPLETED,
    ActivitySession,
    GpsPoint,
    ensure_aware,
    validate_tags,
)
from ..models.rewards import (
    CancelResult,
    CompletionResult,
    PauseResult,
    ResumeResult,
    StartResult,
    XpTransaction,
)
from ..models.user_profile import UserProfile
from ..utils.calculations import summarize_route
from . import event_publisher as events
from .badge_evaluator import BadgeTriggerEvaluator, collector_title
from .level_progression import level_progress
from .motivation import (
    PhraseSelector,
    achievements_list,
    celebration_message,
    default_activity_name,
    performance_rating,
    pick_phrase,
)
from .session_store import InMemorySessionRepository, InMemoryUserRepository, InMemoryXpLedger
from .streak_tracker import StreakState, streak_info
from .xp_reward_engine import XpRewardEngine

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "User cancelled"
MAX_NOTES_LENGTH = 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _minutes(seconds: float) -> float:
    return round(seconds / 60.0, 2)


def _check_range(name, value, low=None, high=None):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number")
    if low is not None and value < low:
        raise ValidationError(f"{name} must be at least {low}")
    if high is not None and value > high:
        raise ValidationError(f"{name} must be at most {high}")


class ActivitySessionService:
    def __init__(self, sessions=None, users=None, ledger=None,
                 reward_engine: Optional[XpRewardEngine] = None, publisher=None,
                 clock: Callable[[], datetime] = utc_now,
                 default_body_weight_kg: float = 70.0,
                 max_clock_skew_seconds: float = 120.0,
                 phrase_selector: Optional[PhraseSelector] = None,
                 id_factory: Callable[[], str] = None):
        self.sessions = sessions or InMemorySessionRepository()
        self.users = users or InMemoryUserRepository()
        self.ledger = ledger or InMemoryXpLedger()
        self.reward_engine = reward_engine or XpRewardEngine()
        self.publisher = publisher
        self.clock = clock
        self.default_body_weight_kg = default_body_weight_kg
        self.max_clock_skew = timedelta(seconds=max_clock_skew_seconds)
        self.phrase_selector = phrase_selector
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self._locks_guard = threading.Lock()
        self._session_locks: Dict[str, threading.Lock] = {}
        self._user_locks: Dict[str, threading.Lock] = {}

    @classmethod
    def from_config(cls, config, **kwargs):
        kwargs.setdefault('reward_engine', XpRewardEngine.from_config(config))
        kwargs.setdefault('default_body_weight_kg', config.DEFAULT_BODY_WEIGHT_KG)
        kwargs.setdefault('max_clock_skew_seconds', config.MAX_CLOCK_SKEW_SECONDS)
        return cls(**kwargs)

    # Locking

    def _lock_for(self, registry: Dict[str, threading.Lock], key: str) -> threading.Lock:
        with self._locks_guard:
            lock = registry.get(key)
            if lock is None:
                lock = registry[key] = threading.Lock()
            return lock

    @contextmanager
    def _session_lock(self, session_id: str):
        with self._lock_for(self._session_locks, session_id):
            yield

    @contextmanager
    def _user_lock(self, user_id: str):
        with self._lock_for(self._user_locks, user_id):
            yield

    # Helpers

    def now(self) -> datetime:
        return ensure_aware(self.clock())

    def _load_session(self, session_id: str, user_id: str) -> ActivitySession:
        session = self.sessions.get(session_id)
        # Other users' sessions are reported as missing
        if session is None or session.user_id != user_id:
            raise NotFoundError(f"Session {session_id} not found", details={'session_id': session_id})
        return session

    def _load_user(self, user_id: str) -> UserProfile:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={'user_id': user_id})
        return user

    def _body_weight(self, user: Optional[UserProfile]) -> float:
        if user is not None and user.weight_kg:
            return user.weight_kg
        return self.default_body_weight_kg

    def _refresh_calories(self, session: ActivitySession, at: Optional[datetime] = None):
        met = get_activity_type(session.activity_type).met
        session.refresh_calories(met, self._body_weight(self.users.get(session.user_id)), at)

    def _publish(self, event_type: str, payload: Dict[str, Any]):
        if self.publisher is None:
            return
        try:
            self.publisher.publish(event_type, payload)
        except Exception as e:
            logger.error(f"Error publishing {event_type} event: {e}")

    def _normalize_activity_type(self, activity_type: str) -> str:
        entry = find_activity_type(activity_type)
        if entry is None:
            raise ValidationError(f"Unsupported activity type: {activity_type}")
        return entry.name

    # Users

    def ensure_user(self, user_id: str) -> UserProfile:
        """Return the user's profile, creating an empty one on first sight"""
        if not user_id:
            raise ValidationError("user_id is required")
        with self._user_lock(user_id):
            user = self.users.get(user_id)
            if user is None:
                user = UserProfile(user_id=user_id, created_at=self.now())
                self.users.save(user)
                logger.info(f"Created gamification profile for user {user_id}")
            return user

    def upsert_profile(self, user_id: str, display_name: Optional[str] = None,
                       weight_kg: Optional[float] = None, timezone_name: Optional[str] = None,
                       created_at: Optional[datetime] = None) -> UserProfile:
        _check_range('weight_kg', weight_kg, low=1)
        with self._user_lock(user_id):
            existing = self.users.get(user_id)
            draft = copy.deepcopy(existing) if existing else UserProfile(user_id=user_id, created_at=self.now())
            if display_name is not None:
                draft.display_name = display_name
            if weight_kg is not None:
                draft.weight_kg = weight_kg
            if timezone_name is not None:
                draft.timezone = timezone_name or None
            if created_at is not None:
                draft.created_at = ensure_aware(created_at)
            draft.validate()
            self.users.save(draft)
            return draft

    # Commands

    def plan_session(self, user_id: str, activity_type: str, planned_start: Optional[datetime] = None,
                     is_public: bool = True, tags: Iterable[str] = (), name: Optional[str] = None) -> StartResult:
        activity_type = self._normalize_activity_type(activity_type)
        tags = validate_tags(tags)
        user = self._load_user(user_id)
        now = self.now()
        session = ActivitySession(
            id=self.id_factory(),
            user_id=user_id,
            activity_type=activity_type,
            name=name,
            is_public=is_public,
            tags=tags,
            created_at=now,
            planned_start=ensure_aware(planned_start) if planned_start else None,
        )
        if session.name is None and session.planned_start is not None:
            session.name = default_activity_name(
                activity_type, self.reward_engine.local_time(session.planned_start, user))
        self.sessions.save(session)
        logger.info(f"[SESSION_PLAN] Planned {activity_type} session {session.id} for user {user_id}")
        return StartResult(session_id=session.id, start_time=None, status=session.status, name=session.name)

    def start_session(self, user_id: str, activity_type: Optional[str] = None,
                      planned_start: Optional[datetime] = None, is_public: bool = True,
                      tags: Iterable[str] = (), name: Optional[str] = None,
                      session_id: Optional[str] = None) -> StartResult:
        """
        Start a new session, or a previously planned one when session_id is given.

        Raises:
            ConcurrentSessionError: the user already has an active or paused session
            InvalidStateError: session_id refers to a session that is not planned
        """
        if session_id is not None:
            with self._session_lock(session_id):
                session = self._load_session(session_id, user_id)
                session.require_status('start', 'planned')
                with self._user_lock(user_id):
                    user = self._load_user(user_id)
                    self._ensure_no_live_session(user_id)
                    self._begin(session, user)
            return self._started(session)

        activity_type = self._normalize_activity_type(activity_type)
        tags = validate_tags(tags)
        with self._user_lock(user_id):
            user = self._load_user(user_id)
            self._ensure_no_live_session(user_id)
            session = ActivitySession(
                id=self.id_factory(),
                user_id=user_id,
                activity_type=activity_type,
                name=name,
                is_public=is_public,
                tags=tags,
                created_at=self.now(),
                planned_start=ensure_aware(planned_start) if planned_start else None,
            )
            self._begin(session, user)
        return self._started(session)

    def _ensure_no_live_session(self, user_id: str):
        live = self.sessions.find_live_for_user(user_id)
        if live is not None:
            logger.warning(f"[SESSION_START] User {user_id} already has live session {live.id}")
            raise ConcurrentSessionError(
                "You already have an active session. Complete or cancel it before starting a new one.",
                details={'session_id': live.id, 'status': live.status},
            )

    def _begin(self, session: ActivitySession, user: UserProfile):
        now = self.now()
        session.start(now)
        if not session.name:
            session.name = default_activity_name(session.activity_type, self.reward_engine.local_time(now, user))
        self.sessions.save(session)

    def _started(self, session: ActivitySession) -> StartResult:
        logger.info(f"[SESSION_START] Started {session.activity_type} session {session.id} for user {session.user_id}")
        self._publish(events.ACTIVITY_STARTED, {
            'session_id': session.id,
            'user_id': session.user_id,
            'activity_type': session.activity_type,
            'start_time': session.started_at,
            'is_public': session.is_public,
        })
        return StartResult(session_id=session.id, start_time=session.started_at, status=session.status,
                           name=session.name)

    def _build_point(self, latitude, longitude, timestamp, elevation=None, speed=None, accuracy=None) -> GpsPoint:
        if not isinstance(timestamp, datetime):
            raise ValidationError("timestamp must be a datetime")
        point = GpsPoint(latitude=latitude, longitude=longitude, timestamp=timestamp,
                         elevation=elevation, speed=speed, accuracy=accuracy)
        if point.timestamp > self.now() + self.max_clock_skew:
            raise ValidationError("Route point timestamp cannot be in the future")
        return point

    def add_route_point(self, session_id: str, user_id: str, latitude: float, longitude: float,
                        timestamp: datetime, elevation: Optional[float] = None,
                        speed: Optional[float] = None, accuracy: Optional[float] = None) -> bool:
        """
        Append one GPS point. Returns False for out-of-order or duplicate points,
        which leave the route and metrics untouched.
        """
        point = self._build_point(latitude, longitude, timestamp, elevation, speed, accuracy)
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            accepted = session.add_point(point)
            if accepted:
                self._refresh_calories(session, point.timestamp)
                self.sessions.save(session)
            else:
                logger.debug(f"Ignored out-of-order or duplicate point for session {session_id}")
        return accepted

    def add_route_points(self, session_id: str, user_id: str, points: List[Dict[str, Any]]) -> Dict[str, int]:
        """Batch upload. Every point is validated before any is applied."""
        built = [self._build_point(**p) for p in points]
        accepted = 0
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            for point in built:
                if session.add_point(point):
                    accepted += 1
            if accepted:
                self._refresh_calories(session, session.last_point.timestamp)
                self.sessions.save(session)
        return {'accepted': accepted, 'ignored': len(built) - accepted}

    def pause_session(self, session_id: str, user_id: str) -> PauseResult:
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            interval = session.pause(self.now())
            self._refresh_calories(session, interval.paused_at)
            self.sessions.save(session)
            active_minutes = _minutes(session.active_seconds(interval.paused_at))
        logger.info(f"[SESSION_PAUSE] Session {session_id} paused after {active_minutes} active minutes")
        self._publish(events.ACTIVITY_PAUSED, {'session_id': session_id, 'user_id': user_id,
                                               'paused_at': interval.paused_at})
        return PauseResult(paused_at=interval.paused_at, current_duration_minutes=active_minutes)

    def resume_session(self, session_id: str, user_id: str) -> ResumeResult:
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            paused_seconds = session.resume(self.now())
            resumed_at = session.pause_intervals[-1].resumed_at
            self.sessions.save(session)
        logger.info(f"[SESSION_RESUME] Session {session_id} resumed after {paused_seconds:.0f}s pause")
        self._publish(events.ACTIVITY_RESUMED, {'session_id': session_id, 'user_id': user_id,
                                                'resumed_at': resumed_at})
        return ResumeResult(resumed_at=resumed_at, pause_duration_minutes=_minutes(paused_seconds))

    def complete_session(self, session_id: str, user_id: str, end_time: Optional[datetime] = None,
                         manual_calories: Optional[float] = None, manual_distance_km: Optional[float] = None,
                         perceived_exertion: Optional[int] = None, rating: Optional[int] = None,
                         notes: Optional[str] = None, multiplier_percentage: Optional[int] = None) -> CompletionResult:
        """
        Complete a session and apply its reward.

        The user's XP, level, streak and badges and the session's completed
        state are committed together. Completing an already completed session
        returns the stored result and awards nothing.

        Raises:
            ValidationError: bad overrides, ratings or an end time before the start
            InvalidStateError: the session is planned or cancelled
            NotFoundError: unknown session or user
        """
        _check_range('manual_calories', manual_calories, low=0)
        _check_range('manual_distance_km', manual_distance_km, low=0)
        _check_range('perceived_exertion', perceived_exertion, low=1, high=10)
        _check_range('rating', rating, low=1, high=5)
        _check_range('multiplier_percentage', multiplier_percentage, low=0)
        if notes is not None and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")

        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            if session.status == STATUS_COMPLETED and session.outcome is not None:
                logger.info(f"[SESSION_COMPLETE] Session {session_id} already completed, returning stored result")
                return copy.deepcopy(session.outcome)
            session.require_status('complete', 'active', 'paused')

            now = self.now()
            if end_time is None:
                # Points may carry device timestamps slightly ahead of the server clock
                end_time = max(now, session.earliest_end_time())
            else:
                end_time = ensure_aware(end_time)
            session.validate_end_time(end_time, latest=now + self.max_clock_skew)

            with self._user_lock(user_id):
                user = self._load_user(user_id)
                draft_session = copy.deepcopy(session)
                draft_user = copy.deepcopy(user)

                draft_session.complete(end_time, manual_calories=manual_calories,
                                       manual_distance_km=manual_distance_km,
                                       perceived_exertion=perceived_exertion, rating=rating, notes=notes)
                met = get_activity_type(draft_session.activity_type).met
                draft_session.refresh_calories(met, self._body_weight(draft_user))
                active_seconds = draft_session.active_seconds()

                reward = self.reward_engine.award(
                    draft_user,
                    draft_session.activity_type,
                    active_seconds,
                    draft_session.effective_distance_km,
                    end_time,
                    multiplier_percentage=multiplier_percentage,
                )
                stats = draft_session.build_stats(performance_rating=performance_rating(perceived_exertion))
                phrase = pick_phrase(draft_user.experience_points, self.phrase_selector)
                result = CompletionResult(
                    session_id=session_id,
                    completed_at=end_time,
                    reward=reward,
                    stats=stats,
                    celebration_message=celebration_message(
                        draft_session.activity_type, active_seconds / 60.0, reward, phrase),
                    achievements=achievements_list(reward),
                )
                draft_session.outcome = result

                self.users.save(draft_user)
                try:
                    self.sessions.save(draft_session)
                except Exception:
                    logger.error(f"[SESSION_COMPLETE] Failed to save session {session_id}; rolling back reward")
                    self.users.restore(user)
                    raise

        logger.info(f"[SESSION_COMPLETE] Session {session_id} completed: {reward.total_xp} XP, "
                    f"{stats.distance_km} km, {stats.duration_minutes} active minutes")
        self._record_transaction(user_id, session_id, reward, end_time)
        self._publish_completion(user_id, result)
        return copy.deepcopy(result)

    def _record_transaction(self, user_id, session_id, reward, created_at):
        try:
            self.ledger.record(XpTransaction(
                user_id=user_id,
                amount=reward.total_xp,
                base_amount=reward.base_xp,
                bonus_amount=reward.bonus_xp,
                reason='Activity completion',
                source='activity_completion',
                source_id=session_id,
                created_at=created_at,
            ))
        except Exception as e:
            logger.error(f"Error recording XP transaction for session {session_id}: {e}")

    def _publish_completion(self, user_id: str, result: CompletionResult):
        reward = result.reward
        self._publish(events.ACTIVITY_COMPLETED, {
            'session_id': result.session_id,
            'user_id': user_id,
            'completed_at': result.completed_at,
            'total_xp': reward.total_xp,
            'stats': result.stats.to_dict(),
        })
        if reward.leveled_up:
            self._publish(events.USER_LEVELED_UP, {
                'user_id': user_id,
                'new_level': reward.new_level,
                'title': reward.new_level_title,
                'unlocked_features': reward.unlocked_features,
            })
        for badge in reward.badges_earned:
            self._publish(events.BADGE_EARNED, {'user_id': user_id, 'badge': badge.to_dict()})

    def cancel_session(self, session_id: str, user_id: str, reason: Optional[str] = None) -> CancelResult:
        """Cancel a planned or live session. Awards no XP; partial stats are returned."""
        reason = reason.strip() if reason and reason.strip() else DEFAULT_CANCEL_REASON
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            now = self.now()
            session.cancel(now, reason)
            self._refresh_calories(session)
            stats = session.build_stats()
            result = CancelResult(
                session_id=session_id,
                cancelled_at=now,
                final_duration_minutes=stats.duration_minutes,
                partial_stats=stats,
                reason=reason,
            )
            session.outcome = result
            self.sessions.save(session)
        logger.info(f"[SESSION_CANCEL] Session {session_id} cancelled: {reason}")
        self._publish(events.ACTIVITY_CANCELLED, {'session_id': session_id, 'user_id': user_id,
                                                  'reason': reason, 'cancelled_at': now})
        return result

    # Queries

    def get_session(self, session_id: str, user_id: str) -> Dict[str, Any]:
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            data = session.to_dict(at=self.now())
            if session.outcome is not None:
                data['outcome'] = session.outcome.to_dict()
        return data

    def get_route(self, session_id: str, user_id: str) -> Dict[str, Any]:
        with self._session_lock(session_id):
            session = self._load_session(session_id, user_id)
            points = list(session.route)
        return {
            'session_id': session_id,
            'points': [p.to_dict() for p in points],
            'stats': summarize_route(points),
        }

    def get_gamification_profile(self, user_id: str) -> Dict[str, Any]:
        user = self._load_user(user_id)
        today = self.reward_engine.local_time(self.now(), user).date()
        state = StreakState(user.current_streak, user.longest_streak, user.last_activity_date)
        evaluator: BadgeTriggerEvaluator = self.reward_engine.badge_evaluator
        badges = []
        for code in sorted(user.badges):
            definition = evaluator.get(code)
            badges.append(definition.to_award().to_dict() if definition else {'code': code})
        return {
            'user_id': user_id,
            'display_name': user.display_name,
            'experience_points': user.experience_points,
            'level': level_progress(user.experience_points, self.reward_engine.level_catalog).to_dict(),
            'streak': streak_info(state, today),
            'completed_activities': user.completed_activities,
            'badges': badges,
            'badge_title': collector_title(len(user.badges)),
            'recent_xp_transactions': [t.to_dict() for t in self.ledger.list_for_user(user_id)[-10:]],
        }
