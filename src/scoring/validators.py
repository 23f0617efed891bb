"""Blocking validators: the admission gate for an (activity, event) pair.

Validators never raise for business outcomes; they return a
``ValidationResult`` whose failures explain which rule refused the
activity, the measured value and the threshold.
"""

import logging

from src.rules.schemas import MinDistanceConfig, PaceRangeConfig, RuleSet
from src.scoring.schemas import Activity, ValidationFailure, ValidationResult

logger = logging.getLogger(__name__)


def check_min_distance(
    activity: Activity, config: MinDistanceConfig
) -> ValidationFailure | None:
    """Reject when the distance is below the configured floor."""
    if activity.distance_km >= config.min_km:
        return None
    return ValidationFailure(
        rule_type="min_distance",
        reason=(
            f"Distance {activity.distance_km:.2f} km is below the "
            f"{config.min_km} km minimum"
        ),
        measured=activity.distance_km,
        threshold=f">= {config.min_km} km",
    )


def check_pace_range(
    activity: Activity, config: PaceRangeConfig
) -> ValidationFailure | None:
    """Reject when the pace falls outside the allowed window.

    Activities without a defined pace (zero distance) are not applicable
    here; they are refused by the zero-distance guard instead.
    """
    pace = activity.pace_min_per_km
    if pace is None:
        return None
    if config.min_pace <= pace <= config.max_pace:
        return None
    return ValidationFailure(
        rule_type="pace_range",
        reason=(
            f"Pace {pace:.2f} min/km is outside the allowed range "
            f"({config.min_pace}-{config.max_pace})"
        ),
        measured=pace,
        threshold=f"{config.min_pace}-{config.max_pace} min/km",
    )


def validate(activity: Activity, rules: RuleSet) -> ValidationResult:
    """Run every blocking check for one event.

    Parameters
    ----------
    activity : Activity
        Canonical activity
    rules : RuleSet
        Active rules of the event

    Returns
    -------
    ValidationResult
        ``is_valid`` is False if any check failed; all failures are
        reported, not only the first
    """
    failures: list[ValidationFailure] = []

    # A blocking rule we cannot read must not let everything through
    for invalid in rules.invalid_blocking:
        failures.append(
            ValidationFailure(rule_type=invalid.rule_type, reason=invalid.reason)
        )

    if activity.distance_km <= 0:
        failures.append(
            ValidationFailure(
                rule_type=None,
                reason="Activity has no distance",
                measured=activity.distance_km,
                threshold="> 0 km",
            )
        )

    if rules.min_distance is not None:
        failure = check_min_distance(activity, rules.min_distance.config)
        if failure:
            failures.append(failure)

    if rules.pace_range is not None:
        failure = check_pace_range(activity, rules.pace_range.config)
        if failure:
            failures.append(failure)

    if failures:
        logger.debug(
            f"Activity of {activity.user_id} on {activity.activity_date} rejected "
            f"for event {activity.event_id}: {[f.reason for f in failures]}"
        )

    return ValidationResult(is_valid=not failures, failures=failures)
