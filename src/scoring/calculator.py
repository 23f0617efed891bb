"""Pure functions for scoring calculations.

No database access - these are the unit conversions and calendar helpers
shared by the validators, the bonus resolver and the evaluators.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator

from src.rules.exceptions import CorruptRecordError


def to_distance_km(distance_meters: float) -> float:
    """Convert meters to kilometers."""
    return distance_meters / 1000


def calculate_pace(moving_time_seconds: int, distance_km: float) -> float | None:
    """Pace in minutes per kilometer.

    Parameters
    ----------
    moving_time_seconds : int
        Activity moving time in seconds
    distance_km : float
        Activity distance in kilometers

    Returns
    -------
    float | None
        Minutes per km, or None when there is no distance to divide by
    """
    if distance_km <= 0:
        return None
    return (moving_time_seconds / 60) / distance_km


def to_activity_date(start_local: datetime) -> date:
    """Local calendar date of an activity.

    ``start_local`` is the athlete's wall-clock time. Any attached offset is
    ignored rather than converted, so a 23:30 run stays on its own day.
    """
    return start_local.date()


def to_clock_minute(start_local: datetime) -> time:
    """Local clock time truncated to the minute."""
    return start_local.time().replace(second=0, microsecond=0)


def sunday_weekday(day: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def as_date(value: date | datetime) -> date:
    """Normalise an event boundary to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def inclusive_day_count(start: date | datetime, end: date | datetime) -> int:
    """Number of calendar days in ``[start, end]``.

    Raises
    ------
    CorruptRecordError
        If the window ends before it starts
    """
    start_day, end_day = as_date(start), as_date(end)
    if end_day < start_day:
        raise CorruptRecordError(f"Event window ends ({end_day}) before it starts ({start_day})")
    return (end_day - start_day).days + 1


def iter_days(start: date | datetime, end: date | datetime) -> Iterator[date]:
    """Yield every calendar day in ``[start, end]``."""
    start_day = as_date(start)
    for offset in range(inclusive_day_count(start, end)):
        yield start_day + timedelta(days=offset)


def distinct_dates_in_window(
    dates: Iterable[date], start: date | datetime, end: date | datetime
) -> set[date]:
    """Distinct dates falling inside ``[start, end]``."""
    start_day, end_day = as_date(start), as_date(end)
    return {d for d in dates if start_day <= d <= end_day}
