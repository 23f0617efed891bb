from src.scoring.validators import validate
from tests.factories import make_activity, raw_rule, rule_set

BLOCKING = (
    raw_rule("min_distance", {"min_km": 2}),
    raw_rule("pace_range", {"min_pace": 4, "max_pace": 12}),
)


class TestValidate:
    def test_valid_activity(self):
        result = validate(make_activity(km=5, minutes=30), rule_set(*BLOCKING))

        assert result.is_valid
        assert result.failures == []

    def test_no_rules_accepts_any_distance(self):
        result = validate(make_activity(km=0.5, minutes=3), rule_set())

        assert result.is_valid

    def test_below_min_distance(self):
        result = validate(make_activity(km=1.5, minutes=9), rule_set(*BLOCKING))

        assert not result.is_valid
        (failure,) = result.failures
        assert failure.rule_type == "min_distance"
        assert failure.measured == 1.5
        assert failure.threshold.startswith(">= 2")

    def test_min_distance_boundary_is_inclusive(self):
        result = validate(make_activity(km=2, minutes=12), rule_set(*BLOCKING))

        assert result.is_valid

    def test_pace_too_fast(self):
        # 5 km in 15 min = 3 min/km
        result = validate(make_activity(km=5, minutes=15), rule_set(*BLOCKING))

        assert [f.rule_type for f in result.failures] == ["pace_range"]
        assert result.failures[0].measured == 3.0

    def test_pace_boundaries_are_inclusive(self):
        rules = rule_set(*BLOCKING)

        assert validate(make_activity(km=5, minutes=20), rules).is_valid
        assert validate(make_activity(km=5, minutes=60), rules).is_valid

    def test_all_failures_are_reported(self):
        # 1 km in 20 min: too short and too slow
        result = validate(make_activity(km=1, minutes=20), rule_set(*BLOCKING))

        assert [f.rule_type for f in result.failures] == ["min_distance", "pace_range"]

    def test_zero_distance_is_rejected_without_pace_error(self):
        result = validate(make_activity(km=0, minutes=30), rule_set(*BLOCKING))

        assert not result.is_valid
        assert [f.rule_type for f in result.failures] == [None, "min_distance"]

    def test_zero_distance_rejected_even_without_rules(self):
        result = validate(make_activity(km=0, minutes=10), rule_set())

        assert not result.is_valid
        assert result.failures[0].reason == "Activity has no distance"

    def test_unreadable_blocking_rule_refuses_admission(self):
        rules = rule_set(raw_rule("pace_range", {"min_pace": 9, "max_pace": 5}))

        result = validate(make_activity(km=5, minutes=30), rules)

        assert not result.is_valid
        assert result.failures[0].rule_type == "pace_range"
