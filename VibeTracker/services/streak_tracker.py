"""
Consecutive-day streak tracking over a user's completion dates.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Dict, Any

logger = logging.getLogger(__name__)

STREAK_MILESTONES = (7, 14, 30, 60, 100, 365)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_date: Optional[date] = None


def compute_streaks(dates: Iterable[date], today: date) -> StreakState:
    """
    Compute current and longest streaks in one pass over the completion dates.

    The current streak is the run ending today or yesterday; a run whose last
    day is older than yesterday has been broken and counts as 0.

    Args:
        dates: Calendar days with at least one completed activity (any order, duplicates allowed)
        today: The current calendar day in the user's policy timezone

    Returns:
        StreakState with current, longest and the last activity date
    """
    run = 0
    longest = 0
    previous = None
    for day in sorted(set(dates)):
        if previous is not None and day == previous + ONE_DAY:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    if previous is None:
        return StreakState()

    current = run if previous >= today - ONE_DAY else 0
    return StreakState(current=current, longest=longest, last_date=previous)


def extend_streak(state: StreakState, completion_date: date, history: Optional[Iterable[date]] = None) -> StreakState:
    """
    Incrementally update a streak for a new completion date.

    Same day keeps the streak, the next day extends it by one and a gap resets
    it to one. A back-dated completion (before the last activity date) needs
    the full history and is recomputed.
    """
    last = state.last_date
    if last is None:
        return StreakState(current=1, longest=max(state.longest, 1), last_date=completion_date)

    if completion_date == last:
        return state

    if completion_date == last + ONE_DAY:
        current = state.current + 1
        return StreakState(current=current, longest=max(state.longest, current), last_date=completion_date)

    if completion_date > last:
        return StreakState(current=1, longest=max(state.longest, 1), last_date=completion_date)

    if history is None:
        raise ValueError("Back-dated completion requires the completion history")
    logger.debug(f"Back-dated completion {completion_date} before {last}; recomputing streak")
    recomputed = compute_streaks(list(history) + [completion_date], today=last)
    return StreakState(
        current=recomputed.current,
        longest=max(state.longest, recomputed.longest),
        last_date=recomputed.last_date,
    )


def current_streak_as_of(state: StreakState, today: date) -> int:
    """The stored streak, or 0 if a full day has been missed since."""
    if state.last_date is None or state.last_date < today - ONE_DAY:
        return 0
    return state.current


def next_milestone(streak_days: int) -> Optional[int]:
    for milestone in STREAK_MILESTONES:
        if streak_days < milestone:
            return milestone
    return None


def streak_info(state: StreakState, today: date) -> Dict[str, Any]:
    """Current/longest streak plus days remaining to the next milestone"""
    current = current_streak_as_of(state, today)
    milestone = next_milestone(current)
    return {
        'current_streak': current,
        'longest_streak': state.longest,
        'last_activity_date': state.last_date.isoformat() if state.last_date else None,
        'next_milestone': milestone,
        'days_until_next_milestone': milestone - current if milestone else None,
        'is_active_today': state.last_date == today,
    }
