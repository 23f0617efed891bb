"""Pydantic schemas for event endpoints."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from src.rules.schemas import SkippedRule


class ActiveRule(BaseModel):
    rule_id: str
    rule_type: str
    name: str | None = None
    config: dict[str, Any]


class RuleSetDiagnostics(BaseModel):
    """Which rules of an event are in force and which were left out."""

    event_id: str
    active: list[ActiveRule] = Field(default_factory=list)
    skipped: list[SkippedRule] = Field(default_factory=list)
    invalid_blocking: list[SkippedRule] = Field(default_factory=list)


class StatusRefreshResult(BaseModel):
    today: date
    activated: list[str] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)
    finalized: list[str] = Field(default_factory=list)
