"""Typed rule configuration.

Each rule kind has its own config schema. Raw rules (as stored by the admin
surface) are parsed once into a tagged union and collected into a
``RuleSet`` with at most one active rule per kind. Parsing fails closed:

- unknown type or malformed config: the rule is skipped and reported
- malformed *blocking* rule: reported in ``invalid_blocking`` so admission
  for the event is refused instead of silently passing every activity
"""

import logging
from datetime import date, time
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from src.rules.exceptions import RuleConfigurationError, UnknownRuleType

logger = logging.getLogger(__name__)


class RuleType(str, Enum):
    MIN_DISTANCE = "min_distance"
    PACE_RANGE = "pace_range"
    MIN_ACTIVE_DAYS = "min_active_days"
    TET_BONUS = "tet_bonus"
    LUCKY_DISTANCE = "lucky_distance"
    MULTIPLIER_DAY = "multiplier_day"
    PENALTY_MISSED_DAY = "penalty_missed_day"


BLOCKING_RULE_TYPES = frozenset({RuleType.MIN_DISTANCE.value, RuleType.PACE_RANGE.value})

# Higher wins; only one bonus is ever applied to an activity
BONUS_PRIORITIES = {
    RuleType.TET_BONUS: 3,
    RuleType.LUCKY_DISTANCE: 2,
    RuleType.MULTIPLIER_DAY: 1,
}


class _Config(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    description: Optional[str] = None


# =========================================================================
# Blocking rules
# =========================================================================


class MinDistanceConfig(_Config):
    min_km: float = Field(2.0, ge=0)


class PaceRangeConfig(_Config):
    """Allowed pace window in minutes per km (inclusive)."""

    min_pace: float = Field(4.0, ge=0)
    max_pace: float = Field(12.0, gt=0)

    @model_validator(mode="after")
    def check_window(self) -> "PaceRangeConfig":
        if self.min_pace > self.max_pace:
            raise ValueError(
                f"min_pace {self.min_pace} is greater than max_pace {self.max_pace}"
            )
        return self


# =========================================================================
# Completion / penalty rules
# =========================================================================


class MinActiveDaysConfig(_Config):
    """Minimum number of active days over the event window.

    The requirement is either an absolute ``required_days`` or a
    ``min_percentage`` of the event's days (rounded up). ``required_days``
    wins when both are present.
    """

    required_days: Optional[int] = Field(None, ge=1)
    min_percentage: float = Field(66.67, gt=0, le=100)
    grace_days: int = Field(0, ge=0)


class PenaltyConfig(_Config):
    penalty_per_day: float = Field(..., ge=0)
    currency: Optional[str] = None
    fund_name: Optional[str] = None
    # Weekdays that don't count toward the penalty calendar (0 = Sunday)
    exclude_days: list[Annotated[int, Field(ge=0, le=6)]] = Field(
        default_factory=list
    )


# =========================================================================
# Bonus rules
# =========================================================================


class TimeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError(f"time_range start {self.start} is after end {self.end}")
        return self


class TetBonusConfig(_Config):
    tet_date: date
    time_range: TimeRange
    min_km: float = Field(..., ge=0)
    multiplier: float = Field(..., gt=0)


class LuckyDistance(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance: float = Field(..., gt=0)
    multiplier: float = Field(..., gt=0)
    name: str = ""


class LuckyDistanceConfig(_Config):
    # Declaration order matters: the first matching entry is authoritative
    lucky_distances: list[LuckyDistance] = Field(..., min_length=1)
    tolerance: float = Field(0.1, ge=0)


class MultiplierDayConfig(_Config):
    multiplier_day: int = Field(..., ge=0, le=6)  # 0 = Sunday
    multiplier: float = Field(..., gt=0)


# =========================================================================
# Tagged union
# =========================================================================


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None


class MinDistanceRule(_Rule):
    type: Literal["min_distance"]
    config: MinDistanceConfig


class PaceRangeRule(_Rule):
    type: Literal["pace_range"]
    config: PaceRangeConfig


class MinActiveDaysRule(_Rule):
    type: Literal["min_active_days"]
    config: MinActiveDaysConfig


class PenaltyRule(_Rule):
    type: Literal["penalty_missed_day"]
    config: PenaltyConfig


class TetBonusRule(_Rule):
    type: Literal["tet_bonus"]
    config: TetBonusConfig


class LuckyDistanceRule(_Rule):
    type: Literal["lucky_distance"]
    config: LuckyDistanceConfig


class MultiplierDayRule(_Rule):
    type: Literal["multiplier_day"]
    config: MultiplierDayConfig


Rule = Annotated[
    Union[
        MinDistanceRule,
        PaceRangeRule,
        MinActiveDaysRule,
        PenaltyRule,
        TetBonusRule,
        LuckyDistanceRule,
        MultiplierDayRule,
    ],
    Field(discriminator="type"),
]

_rule_adapter: TypeAdapter[Rule] = TypeAdapter(Rule)


class SkippedRule(BaseModel):
    """A rule that was left out of the active set, with the reason."""

    rule_id: Optional[str]
    rule_type: Optional[str]
    reason: str


class RuleSet(BaseModel):
    """Active rules of one event, at most one per kind.

    Evaluation order is decided by rule kind, never by the order rules
    were attached to the event.
    """

    min_distance: Optional[MinDistanceRule] = None
    pace_range: Optional[PaceRangeRule] = None
    min_active_days: Optional[MinActiveDaysRule] = None
    penalty_missed_day: Optional[PenaltyRule] = None
    tet_bonus: Optional[TetBonusRule] = None
    lucky_distance: Optional[LuckyDistanceRule] = None
    multiplier_day: Optional[MultiplierDayRule] = None

    skipped: list[SkippedRule] = Field(default_factory=list)
    invalid_blocking: list[SkippedRule] = Field(default_factory=list)

    @property
    def active_rules(self) -> list[Any]:
        return [
            getattr(self, rule_type.value)
            for rule_type in RuleType
            if getattr(self, rule_type.value) is not None
        ]

    @property
    def is_empty(self) -> bool:
        return not self.active_rules and not self.invalid_blocking


def parse_rule(raw: Mapping[str, Any]) -> Rule:
    """Parse one raw rule into its typed form.

    Accepts both ``type`` and ``rule_type`` keys for the discriminator.

    Raises
    ------
    UnknownRuleType
        If the type is missing or not a supported rule kind
    RuleConfigurationError
        If the config does not validate against the schema for its type
    """
    rule_id = raw.get("id")
    rule_id = str(rule_id) if rule_id is not None else None
    rule_type = raw.get("type") or raw.get("rule_type")

    if not isinstance(rule_type, str) or rule_type not in {t.value for t in RuleType}:
        raise UnknownRuleType(rule_id, str(rule_type))

    payload = {
        "id": rule_id or "",
        "name": raw.get("name"),
        "type": rule_type,
        "config": raw.get("config") or {},
    }
    try:
        return _rule_adapter.validate_python(payload)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][2:]) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise RuleConfigurationError(rule_id, rule_type, detail) from e


def load_rule_set(raw_rules: Iterable[Mapping[str, Any]]) -> RuleSet:
    """Build the active rule set for an event from raw rule records.

    Parameters
    ----------
    raw_rules : Iterable[Mapping[str, Any]]
        Rules as ``{"id", "type", "config"}`` mappings, any order

    Returns
    -------
    RuleSet
        Typed rules; skipped and invalid blocking rules are listed for
        diagnostics rather than raised
    """
    rule_set = RuleSet()

    for raw in raw_rules:
        try:
            rule = parse_rule(raw)
        except UnknownRuleType as e:
            logger.warning(f"Skipping rule: {e}")
            rule_set.skipped.append(
                SkippedRule(rule_id=e.rule_id, rule_type=e.rule_type, reason=str(e))
            )
            continue
        except RuleConfigurationError as e:
            logger.warning(f"Skipping rule: {e}")
            skipped = SkippedRule(
                rule_id=e.rule_id, rule_type=e.rule_type, reason=str(e)
            )
            if e.rule_type in BLOCKING_RULE_TYPES:
                rule_set.invalid_blocking.append(skipped)
            else:
                rule_set.skipped.append(skipped)
            continue

        if getattr(rule_set, rule.type) is not None:
            existing = getattr(rule_set, rule.type)
            logger.warning(
                f"Duplicate {rule.type} rule {rule.id} ignored, "
                f"keeping {existing.id}"
            )
            rule_set.skipped.append(
                SkippedRule(
                    rule_id=rule.id,
                    rule_type=rule.type,
                    reason=f"Duplicate {rule.type} rule, {existing.id} is active",
                )
            )
            continue

        setattr(rule_set, rule.type, rule)

    return rule_set
