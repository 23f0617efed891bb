"""Activity database models."""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    UniqueConstraint,
)

from src.core.database import Base, JSONType


class EventActivity(Base):
    """Scored activity of one participant in one event.

    At most one row per (user, event, activity date): a later activity on
    the same day overwrites the row instead of adding a second one.
    """

    __tablename__ = "event_activities"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "event_id", "activity_date", name="uq_event_activity_user_event_date"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String, nullable=False, index=True)
    event_id = Column(String, nullable=False, index=True)
    activity_date = Column(Date, nullable=False)

    # Activity in the tracking source that last wrote this row
    source_activity_id = Column(BigInteger, nullable=True, index=True)
    activity_type = Column(String, nullable=False)  # Run, Walk

    # Metrics
    start_local = Column(DateTime, nullable=False)  # athlete wall-clock time
    distance_meters = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    moving_time_seconds = Column(Integer, nullable=False)
    pace_min_per_km = Column(Float, nullable=True)

    # Scoring
    base_points = Column(Float, nullable=False)
    final_points = Column(Float, nullable=False)
    bonus_type = Column(String, nullable=True)
    bonus_message = Column(String, nullable=True)
    bonus_multiplier = Column(Float, nullable=False, default=1.0)
    rejected_bonuses = Column(JSONType, nullable=False, default=list)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<EventActivity(user_id={self.user_id}, event_id={self.event_id}, "
            f"date={self.activity_date}, points={self.final_points})>"
        )
