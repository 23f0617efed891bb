"""Bonus resolution: exactly one bonus wins.

Every bonus rule present on the event is evaluated on its own. The passing
ones are ordered by their fixed priority (tet > lucky distance > multiplier
day); the first is applied and the others are reported as rejected. Bonuses
never stack.
"""

import logging

from src.rules.schemas import (
    BONUS_PRIORITIES,
    LuckyDistanceConfig,
    MultiplierDayConfig,
    RuleSet,
    RuleType,
    TetBonusConfig,
)
from src.scoring.calculator import sunday_weekday, to_clock_minute
from src.scoring.schemas import Activity, BonusCheck, BonusOutcome, ScoredActivity

logger = logging.getLogger(__name__)

BONUS_NAMES = {
    RuleType.TET_BONUS: "New Year Lucky Money",
    RuleType.LUCKY_DISTANCE: "Lucky Distance",
    RuleType.MULTIPLIER_DAY: "Multiplier Day",
}

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def check_tet_bonus(activity: Activity, config: TetBonusConfig) -> BonusCheck:
    """New Year morning bonus.

    Requires the activity to be on ``tet_date``, start inside the
    configured time range (inclusive, minute precision) and reach
    ``min_km``.
    """
    if activity.activity_date != config.tet_date:
        return BonusCheck(passed=False, message="Not the New Year day")

    start_time = to_clock_minute(activity.start_local)
    window = config.time_range
    if not window.start <= start_time <= window.end:
        return BonusCheck(
            passed=False,
            message=(
                f"Outside the bonus hours ({window.start:%H:%M} - {window.end:%H:%M})"
            ),
        )

    if activity.distance_km < config.min_km:
        return BonusCheck(
            passed=False,
            message=(
                f"Needs {config.min_km} km for the bonus "
                f"({activity.distance_km:.2f} km)"
            ),
        )

    return BonusCheck(
        passed=True,
        multiplier=config.multiplier,
        message=f"New Year morning run x {config.multiplier:g} points",
    )


def check_lucky_distance(activity: Activity, config: LuckyDistanceConfig) -> BonusCheck:
    """Distance within ``tolerance`` of a lucky number; first declared match wins."""
    distance_km = activity.distance_km
    for lucky in config.lucky_distances:
        if abs(distance_km - lucky.distance) <= config.tolerance:
            label = lucky.name or f"{lucky.distance:g} km"
            return BonusCheck(
                passed=True,
                multiplier=lucky.multiplier,
                message=(
                    f"Lucky distance {label} ({distance_km:.2f} km ~ "
                    f"{lucky.distance:g} km) x {lucky.multiplier:g} points"
                ),
            )
    return BonusCheck(passed=False, message="No lucky distance matched")


def check_multiplier_day(activity: Activity, config: MultiplierDayConfig) -> BonusCheck:
    weekday = sunday_weekday(activity.activity_date)
    if weekday != config.multiplier_day:
        return BonusCheck(passed=False, message="Not a multiplier day")
    return BonusCheck(
        passed=True,
        multiplier=config.multiplier,
        message=f"{WEEKDAY_NAMES[weekday]} x {config.multiplier:g} points",
    )


def _outcome(rule_type: RuleType, check: BonusCheck) -> BonusOutcome:
    return BonusOutcome(
        bonus_type=rule_type.value,
        name=BONUS_NAMES[rule_type],
        multiplier=check.multiplier,
        message=check.message,
        priority=BONUS_PRIORITIES[rule_type],
    )


def available_bonuses(activity: Activity, rules: RuleSet) -> list[BonusOutcome]:
    """Every bonus the activity qualifies for, highest priority first."""
    bonuses: list[BonusOutcome] = []

    if rules.tet_bonus is not None:
        check = check_tet_bonus(activity, rules.tet_bonus.config)
        if check.passed:
            bonuses.append(_outcome(RuleType.TET_BONUS, check))

    if rules.lucky_distance is not None:
        check = check_lucky_distance(activity, rules.lucky_distance.config)
        if check.passed:
            bonuses.append(_outcome(RuleType.LUCKY_DISTANCE, check))

    if rules.multiplier_day is not None:
        check = check_multiplier_day(activity, rules.multiplier_day.config)
        if check.passed:
            bonuses.append(_outcome(RuleType.MULTIPLIER_DAY, check))

    bonuses.sort(key=lambda b: b.priority, reverse=True)
    return bonuses


def score(activity: Activity, rules: RuleSet) -> ScoredActivity:
    """Compute the points of an admitted activity.

    Parameters
    ----------
    activity : Activity
        Canonical activity that passed validation
    rules : RuleSet
        Active rules of the event

    Returns
    -------
    ScoredActivity
        Base points are the distance in km; at most one bonus multiplier
        is applied
    """
    base_points = activity.distance_km
    bonuses = available_bonuses(activity, rules)

    applied = bonuses[0] if bonuses else None
    rejected = bonuses[1:]
    final_points = base_points * (applied.multiplier if applied else 1)

    if rejected:
        logger.info(
            f"Bonus {applied.bonus_type} applied for {activity.user_id} on "
            f"{activity.activity_date}; not applied (lower priority): "
            f"{[b.bonus_type for b in rejected]}"
        )

    return ScoredActivity(
        **activity.model_dump(
            exclude={"activity_date", "distance_km", "pace_min_per_km"}
        ),
        base_points=base_points,
        applied_bonus=applied,
        final_points=final_points,
        rejected_bonuses=rejected,
    )
