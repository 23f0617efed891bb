import random
from dataclasses import dataclass
from datetime import date

from src.scoring.schemas import ParticipantStanding, StreakState
from src.scoring.standings import aggregate, rank


@dataclass
class Record:
    activity_date: date
    distance_km: float
    final_points: float


def standing(user_id, km, points=None, days=1):
    return ParticipantStanding(
        user_id=user_id,
        event_id="evt-1",
        total_km=km,
        total_points=km if points is None else points,
        active_day_count=days,
    )


def streak(user_id, longest, current=None):
    return StreakState(
        user_id=user_id,
        event_id="evt-1",
        longest_streak=longest,
        current_streak=longest if current is None else current,
        total_active_days=longest,
    )


class TestAggregate:
    def test_sums_all_records(self):
        records = [
            Record(date(2026, 3, 1), 5.0, 10.0),
            Record(date(2026, 3, 2), 3.5, 3.5),
        ]

        result = aggregate("runner-1", "evt-1", records)

        assert result.total_km == 8.5
        assert result.total_points == 13.5
        assert result.active_day_count == 2

    def test_empty(self):
        result = aggregate("runner-1", "evt-1", [])

        assert (result.total_km, result.total_points, result.active_day_count) == (0, 0, 0)


class TestRank:
    def test_endurance_ties_share_rank(self):
        board = rank(
            [standing("carol", 4.0), standing("bob", 10.0), standing("alice", 10.0)],
            [],
        )

        assert [(e.user_id, e.rank) for e in board.endurance] == [
            ("alice", 1),
            ("bob", 1),
            ("carol", 3),
        ]
        assert board.total_participants == 3

    def test_endurance_orders_by_km_not_points(self):
        board = rank([standing("alice", 5.0, points=20.0), standing("bob", 8.0)], [])

        assert [e.user_id for e in board.endurance] == ["bob", "alice"]

    def test_consistency_excludes_zero_streaks(self):
        board = rank(
            [standing("alice", 10.0), standing("bob", 3.0), standing("carol", 0.0, days=0)],
            [streak("alice", 2), streak("bob", 5)],
        )

        assert [e.user_id for e in board.consistency] == ["bob", "alice"]
        assert "carol" in [e.user_id for e in board.endurance]

    def test_consistency_tie_break_by_current_streak(self):
        board = rank(
            [standing("alice", 10.0), standing("bob", 3.0)],
            [streak("alice", 4, current=1), streak("bob", 4, current=4)],
        )

        assert [(e.user_id, e.rank) for e in board.consistency] == [("bob", 1), ("alice", 1)]

    def test_display_names(self):
        board = rank(
            [standing("alice", 1.0), standing("ghost", 1.0)],
            [],
            display_names={"alice": "Alice N."},
        )

        names = {e.user_id: e.display_name for e in board.endurance}
        assert names == {"alice": "Alice N.", "ghost": "Unknown User"}

    def test_order_is_stable_for_shuffled_input(self):
        standings = [standing(f"runner-{i}", float(i % 3)) for i in range(9)]
        streaks = [streak(f"runner-{i}", i % 4) for i in range(9)]
        expected = rank(standings, streaks)

        shuffled = standings[:]
        random.Random(7).shuffle(shuffled)
        again = rank(shuffled, list(reversed(streaks)))

        assert again == expected
