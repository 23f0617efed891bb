"""Event, rule and per-participant result models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)

from src.core.database import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    # Inclusive calendar window, in participants' local dates
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(String, nullable=False, default="pending", index=True)  # pending, active, completed, cancelled
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self):
        return f"<Event(id={self.id}, name='{self.name}', status='{self.status}')>"


class Rule(Base):
    """Rule as written by the admin surface; config is validated on load."""

    __tablename__ = "rules"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    rule_type = Column(String, nullable=False)
    config = Column(JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def as_raw(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.rule_type,
            "config": self.config,
        }


class EventRule(Base):
    __tablename__ = "event_rules"

    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    rule_id = Column(String, ForeignKey("rules.id", ondelete="CASCADE"), primary_key=True)


class EventParticipant(Base):
    """Participation plus the participant's recomputed standing."""

    __tablename__ = "event_participants"

    event_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True, index=True)

    total_km = Column(Float, nullable=False, default=0.0)
    total_points = Column(Float, nullable=False, default=0.0)
    active_days = Column(Integer, nullable=False, default=0)

    joined_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class UserStreak(Base):
    __tablename__ = "user_streaks"

    event_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True)

    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    total_active_days = Column(Integer, nullable=False, default=0)

    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class EventCompletion(Base):
    __tablename__ = "event_completions"

    event_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True)

    active_days = Column(Integer, nullable=False)
    total_days = Column(Integer, nullable=False)
    required_days = Column(Integer, nullable=False)
    grace_days = Column(Integer, nullable=False, default=0)
    missed_days = Column(Integer, nullable=False)
    completion_percentage = Column(Float, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    badge_type = Column(String, nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)


class EventPenalty(Base):
    __tablename__ = "event_penalties"

    event_id = Column(String, primary_key=True)
    user_id = Column(String, primary_key=True)

    total_days = Column(Integer, nullable=False)
    active_days = Column(Integer, nullable=False)
    missed_days = Column(Integer, nullable=False)
    penalty_amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False)

    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
