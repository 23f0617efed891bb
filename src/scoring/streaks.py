"""Consecutive-active-day streaks."""

from datetime import date, timedelta
from typing import Iterable

from src.scoring.schemas import StreakState


def compute_streak(user_id: str, event_id: str, activity_dates: Iterable[date]) -> StreakState:
    """Derive streaks from a participant's activity dates.

    The current streak is the run ending at the latest recorded date; it
    does not decay when the participant stops being active.

    Parameters
    ----------
    user_id : str
        Participant ID
    event_id : str
        Event ID
    activity_dates : Iterable[date]
        Activity dates, duplicates and any order allowed

    Returns
    -------
    StreakState
        Current, longest and total active days (all 0 without dates)
    """
    dates = sorted(set(activity_dates))
    if not dates:
        return StreakState(user_id=user_id, event_id=event_id)

    running = 1
    longest = 1
    for previous, current in zip(dates, dates[1:]):
        if current - previous == timedelta(days=1):
            running += 1
            longest = max(longest, running)
        else:
            running = 1

    return StreakState(
        user_id=user_id,
        event_id=event_id,
        current_streak=running,
        longest_streak=longest,
        total_active_days=len(dates),
    )
