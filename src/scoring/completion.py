"""Completion and penalty evaluation.

Both evaluators are pure: they recompute from the participant's activity
dates every time, so running them again on the same input always gives
the same answer.
"""

import math
from datetime import date, datetime
from typing import Iterable, Sequence

from src.config import Settings
from src.rules.schemas import MinActiveDaysConfig, PenaltyConfig
from src.scoring.calculator import (
    distinct_dates_in_window,
    inclusive_day_count,
    iter_days,
    sunday_weekday,
)
from src.scoring.schemas import BadgeTier, CompletionResult, PenaltyResult


def required_days_for(config: MinActiveDaysConfig, total_days: int) -> int:
    """Days required before grace: absolute if configured, else a percentage rounded up."""
    if config.required_days is not None:
        return config.required_days
    return math.ceil(total_days * config.min_percentage / 100)


def evaluate_completion(
    activity_dates: Iterable[date],
    event_start: date | datetime,
    event_end: date | datetime,
    config: MinActiveDaysConfig,
) -> CompletionResult:
    """Evaluate the minimum-active-days rule for one participant.

    Parameters
    ----------
    activity_dates : Iterable[date]
        The participant's activity dates; dates outside the event are ignored
    event_start, event_end : date | datetime
        Event window, both ends inclusive
    config : MinActiveDaysConfig
        Rule configuration

    Returns
    -------
    CompletionResult
        Valid when ``active_days >= required_days - grace_days``
    """
    total_days = inclusive_day_count(event_start, event_end)
    active_days = len(distinct_dates_in_window(activity_dates, event_start, event_end))
    required_days = required_days_for(config, total_days)
    grace_days = config.grace_days

    return CompletionResult(
        is_valid=active_days >= required_days - grace_days,
        active_days=active_days,
        total_days=total_days,
        required_days=required_days,
        grace_days=grace_days,
        missed_days=total_days - active_days,
        completion_percentage=round(active_days / total_days * 100, 2),
    )


def badge_tiers_from_settings(settings: Settings) -> list[BadgeTier]:
    return [BadgeTier(**tier.model_dump()) for tier in settings.BADGE_TIERS]


def determine_badge(
    completion_percentage: float, tiers: Sequence[BadgeTier]
) -> BadgeTier | None:
    """Highest tier whose threshold the percentage reaches, or None."""
    for tier in sorted(tiers, key=lambda t: t.min_percentage, reverse=True):
        if completion_percentage >= tier.min_percentage:
            return tier
    return None


def format_completion_message(result: CompletionResult) -> str:
    if result.is_valid:
        grace_info = (
            f" ({result.grace_days} rest days allowed)" if result.grace_days > 0 else ""
        )
        return (
            f"Completed: {result.active_days}/{result.required_days} active days "
            f"({result.total_days} days in total){grace_info}"
        )

    remaining = result.required_days - result.grace_days - result.active_days
    grace_info = ""
    if result.grace_days > 0:
        used = min(result.missed_days, result.grace_days)
        grace_info = f" ({used}/{result.grace_days} rest days used)"
    return (
        f"Not yet: {result.active_days}/{result.required_days} active days, "
        f"{remaining} more needed{grace_info}"
    )


def evaluate_penalty(
    activity_dates: Iterable[date],
    event_start: date | datetime,
    event_end: date | datetime,
    config: PenaltyConfig,
    default_currency: str = "VND",
) -> PenaltyResult:
    """Compute the missed-day penalty for one participant.

    Weekdays listed in ``config.exclude_days`` (0 = Sunday) are taken out
    of the calendar entirely: they neither count as missed nor as active.

    Returns
    -------
    PenaltyResult
        ``penalty_amount = missed_days * penalty_per_day``
    """
    active = distinct_dates_in_window(activity_dates, event_start, event_end)

    if config.exclude_days:
        excluded = set(config.exclude_days)
        total_days = sum(
            1 for day in iter_days(event_start, event_end) if sunday_weekday(day) not in excluded
        )
        active_days = sum(1 for day in active if sunday_weekday(day) not in excluded)
    else:
        total_days = inclusive_day_count(event_start, event_end)
        active_days = len(active)

    missed_days = total_days - active_days
    return PenaltyResult(
        total_days=total_days,
        active_days=active_days,
        missed_days=missed_days,
        penalty_per_day=config.penalty_per_day,
        penalty_amount=missed_days * config.penalty_per_day,
        currency=config.currency or default_currency,
        fund_name=config.fund_name,
    )


def format_penalty_message(result: PenaltyResult) -> str:
    if result.missed_days > 0:
        fund = f" (fund: {result.fund_name})" if result.fund_name else ""
        return (
            f"Penalty for {result.missed_days} missed days = "
            f"{result.penalty_amount:,.0f} {result.currency}{fund}"
        )
    return f"No penalty: active {result.active_days}/{result.total_days} days"
