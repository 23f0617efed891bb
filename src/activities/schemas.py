"""Pydantic schemas for activity ingestion."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.scoring.schemas import Activity, BonusOutcome, ValidationFailure


class InboundActivity(BaseModel):
    """Activity record handed over by the ingestion collaborator.

    Accepts both camelCase (``startLocal``) and snake_case keys.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_activity_id: int
    user_id: str
    type: str  # Run, Walk, Ride, ...
    distance_meters: float = Field(..., ge=0)
    moving_time_seconds: int = Field(..., ge=0)
    start_local: datetime

    def to_canonical(self, event_id: str) -> Activity:
        return Activity(
            user_id=self.user_id,
            event_id=event_id,
            start_local=self.start_local,
            distance_meters=self.distance_meters,
            moving_time_seconds=self.moving_time_seconds,
            source_activity_id=self.source_activity_id,
        )


class EventAdmission(BaseModel):
    """What happened to the activity for one event."""

    event_id: str
    action: Literal["created", "updated", "rejected", "skipped"]
    reason: Optional[str] = None
    failures: list[ValidationFailure] = Field(default_factory=list)
    final_points: Optional[float] = None
    applied_bonus: Optional[BonusOutcome] = None
    rejected_bonuses: list[BonusOutcome] = Field(default_factory=list)


class IngestResult(BaseModel):
    """Outcome of ingesting one activity across all of the user's events."""

    success: bool
    source_activity_id: int
    activity_date: date
    reason: Optional[str] = None  # invalid_type, no_events
    events: list[EventAdmission] = Field(default_factory=list)


class ActivityResponse(BaseModel):
    """Stored activity response schema."""

    id: int
    user_id: str
    event_id: str
    activity_date: date
    source_activity_id: Optional[int] = None
    activity_type: str
    start_local: datetime
    distance_km: float
    moving_time_seconds: int
    pace_min_per_km: Optional[float] = None
    base_points: float
    final_points: float
    bonus_type: Optional[str] = None
    bonus_message: Optional[str] = None
    bonus_multiplier: float

    model_config = ConfigDict(from_attributes=True)


class RateLimitStatus(BaseModel):
    used: int
    limit: int
    window_seconds: int
    percentage: float


class DeletionResult(BaseModel):
    source_activity_id: int
    deleted: int
    events: list[str] = Field(default_factory=list)
