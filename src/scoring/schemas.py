"""Pydantic schemas for the scoring engine and its API responses."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.scoring.calculator import calculate_pace, to_activity_date, to_distance_km

# =========================================================================
# Engine types
# =========================================================================


class Activity(BaseModel):
    """Canonical activity for one (user, event) pair.

    Attributes
    ----------
    user_id : str
        Participant ID
    event_id : str
        Event the activity is evaluated for
    start_local : datetime
        Start time in the athlete's local wall-clock time
    distance_meters : float
        Distance in meters
    moving_time_seconds : int
        Moving time in seconds
    source_activity_id : int | None
        ID of the activity in the tracking source
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    event_id: str
    start_local: datetime
    distance_meters: float = Field(..., ge=0)
    moving_time_seconds: int = Field(..., ge=0)
    source_activity_id: Optional[int] = None

    @computed_field
    @property
    def activity_date(self) -> date:
        return to_activity_date(self.start_local)

    @computed_field
    @property
    def distance_km(self) -> float:
        return to_distance_km(self.distance_meters)

    @computed_field
    @property
    def pace_min_per_km(self) -> Optional[float]:
        return calculate_pace(self.moving_time_seconds, self.distance_km)


class ValidationFailure(BaseModel):
    """Why an activity was refused by a blocking check.

    ``rule_type`` is None for checks that apply regardless of rules
    (e.g. zero distance).
    """

    rule_type: Optional[str]
    reason: str
    measured: Optional[float] = None
    threshold: Optional[str] = None


class ValidationResult(BaseModel):
    is_valid: bool
    failures: list[ValidationFailure] = Field(default_factory=list)


class BonusCheck(BaseModel):
    """Outcome of one bonus predicate, kept for diagnostics."""

    passed: bool
    multiplier: float = 1.0
    message: str


class BonusOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    bonus_type: str
    name: str
    multiplier: float
    message: str
    priority: int


class ScoredActivity(Activity):
    """Activity with its computed points.

    ``final_points = base_points * applied_bonus.multiplier`` (or the base
    points when no bonus applies).
    """

    base_points: float
    applied_bonus: Optional[BonusOutcome] = None
    final_points: float
    rejected_bonuses: list[BonusOutcome] = Field(default_factory=list)


class AdmissionResult(BaseModel):
    """Result of running one activity through the pipeline for one event."""

    accepted: bool
    validation: ValidationResult
    scored: Optional[ScoredActivity] = None


class ParticipantStanding(BaseModel):
    user_id: str
    event_id: str
    total_km: float = 0.0
    total_points: float = 0.0
    active_day_count: int = 0


class StreakState(BaseModel):
    user_id: str
    event_id: str
    current_streak: int = 0
    longest_streak: int = 0
    total_active_days: int = 0


class BadgeTier(BaseModel):
    badge_type: str
    name: str
    icon: str = ""
    min_percentage: float


class CompletionResult(BaseModel):
    """Minimum-active-days evaluation for one participant.

    Attributes
    ----------
    is_valid : bool
        ``active_days >= required_days - grace_days``
    required_days : int
        Requirement before grace is applied
    completion_percentage : float
        ``active_days / total_days * 100``, two decimals
    """

    is_valid: bool
    active_days: int
    total_days: int
    required_days: int
    grace_days: int
    missed_days: int
    completion_percentage: float


class PenaltyResult(BaseModel):
    total_days: int
    active_days: int
    missed_days: int
    penalty_per_day: float
    penalty_amount: float
    currency: str
    fund_name: Optional[str] = None


class LeaderboardEntry(BaseModel):
    """Single entry in an event leaderboard.

    Both leaderboards are built from the same entries; only the ordering
    and the rank differ.
    """

    user_id: str
    display_name: str
    total_km: float
    total_points: float
    active_days: int
    longest_streak: int
    current_streak: int
    rank: int = 0


class DualLeaderboard(BaseModel):
    endurance: list[LeaderboardEntry] = Field(default_factory=list)
    consistency: list[LeaderboardEntry] = Field(default_factory=list)
    total_participants: int = 0


# =========================================================================
# API responses
# =========================================================================


class CompletionDetails(BaseModel):
    active_days: int
    required_days: int
    total_days: int
    grace_days: int
    missed_days: int
    percentage: float


class CompletionStatus(BaseModel):
    """Completion check response for one participant."""

    has_rule: bool
    event_ended: bool = False
    completed: bool = False
    message: str
    details: Optional[CompletionDetails] = None
    badge: Optional[BadgeTier] = None


class PenaltyStatus(BaseModel):
    """Live penalty and streak status for one participant."""

    has_penalty_rule: bool
    penalty: Optional[PenaltyResult] = None
    message: Optional[str] = None
    streak: StreakState


class PenaltyEntry(BaseModel):
    user_id: str
    display_name: str
    total_days: int
    active_days: int
    missed_days: int
    penalty_amount: float
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class PenaltySummary(BaseModel):
    total_participants: int
    total_penalties: float
    participants_with_penalties: int
    participants_without_penalties: int
    paid_count: int
    unpaid_count: int
    total_paid: float
    total_unpaid: float
    currency: str


class PenaltyReport(BaseModel):
    event_id: str
    summary: PenaltySummary
    participants: list[PenaltyEntry]


class FinalizeReport(BaseModel):
    """Outcome of evaluating every participant of an event."""

    event_id: str
    participants: int
    completed: int
    penalised: int
    finalized_at: datetime


class PenaltyPaymentUpdate(BaseModel):
    is_paid: bool = True
