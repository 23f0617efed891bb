"""Admission pipeline for one (activity, event) pair.

Blocking validators first; only an accepted activity reaches the bonus
resolver. Pure computation, no I/O.
"""

from src.rules.schemas import RuleSet
from src.scoring.bonuses import score
from src.scoring.schemas import Activity, AdmissionResult
from src.scoring.validators import validate


def evaluate_admission(activity: Activity, rules: RuleSet) -> AdmissionResult:
    validation = validate(activity, rules)
    if not validation.is_valid:
        return AdmissionResult(accepted=False, validation=validation)
    return AdmissionResult(
        accepted=True, validation=validation, scored=score(activity, rules)
    )
