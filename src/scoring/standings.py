"""Participant standings and the two event leaderboards."""

from datetime import date
from typing import Callable, Hashable, Iterable, Mapping, Protocol

from src.scoring.schemas import (
    DualLeaderboard,
    LeaderboardEntry,
    ParticipantStanding,
    StreakState,
)

# Float sums of the same distances can differ in the last bits
_KEY_PRECISION = 6


class ScoredRecord(Protocol):
    activity_date: date
    distance_km: float
    final_points: float


def aggregate(user_id: str, event_id: str, activities: Iterable[ScoredRecord]) -> ParticipantStanding:
    """Recompute a participant's totals from all their scored activities.

    Always a full recompute, never a delta on previous totals, so edits,
    deletions and replays cannot make the totals drift.
    """
    activities = list(activities)
    return ParticipantStanding(
        user_id=user_id,
        event_id=event_id,
        total_km=sum(a.distance_km for a in activities),
        total_points=sum(a.final_points for a in activities),
        active_day_count=len({a.activity_date for a in activities}),
    )


def assign_ranks(
    entries: list[LeaderboardEntry], key: Callable[[LeaderboardEntry], Hashable]
) -> list[LeaderboardEntry]:
    """Standard competition ranking over already sorted entries (1, 1, 3)."""
    ranked: list[LeaderboardEntry] = []
    previous_key = None
    rank = 0
    for position, entry in enumerate(entries, start=1):
        entry_key = key(entry)
        if position == 1 or entry_key != previous_key:
            rank = position
        previous_key = entry_key
        ranked.append(entry.model_copy(update={"rank": rank}))
    return ranked


def rank(
    standings: Iterable[ParticipantStanding],
    streaks: Iterable[StreakState],
    display_names: Mapping[str, str] | None = None,
) -> DualLeaderboard:
    """Build the endurance and consistency leaderboards.

    Parameters
    ----------
    standings : Iterable[ParticipantStanding]
        One standing per participant
    streaks : Iterable[StreakState]
        Streaks by participant; participants without one count as 0
    display_names : Mapping[str, str] | None
        Names to show; falls back to ``"Unknown User"``

    Returns
    -------
    DualLeaderboard
        Endurance sorted by total km; consistency sorted by longest streak
        and without participants whose longest streak is 0. Ties share a
        rank and the ordering is deterministic for identical input.
    """
    display_names = display_names or {}
    streak_map = {s.user_id: s for s in streaks}

    entries = []
    for standing in standings:
        streak = streak_map.get(standing.user_id)
        entries.append(
            LeaderboardEntry(
                user_id=standing.user_id,
                display_name=display_names.get(standing.user_id) or "Unknown User",
                total_km=standing.total_km,
                total_points=standing.total_points,
                active_days=standing.active_day_count,
                longest_streak=streak.longest_streak if streak else 0,
                current_streak=streak.current_streak if streak else 0,
            )
        )

    endurance = sorted(
        entries,
        key=lambda e: (
            -round(e.total_km, _KEY_PRECISION),
            -round(e.total_points, _KEY_PRECISION),
            e.user_id,
        ),
    )
    consistency = sorted(
        (e for e in entries if e.longest_streak > 0),
        key=lambda e: (
            -e.longest_streak,
            -e.current_streak,
            -round(e.total_km, _KEY_PRECISION),
            e.user_id,
        ),
    )

    return DualLeaderboard(
        endurance=assign_ranks(endurance, key=lambda e: round(e.total_km, _KEY_PRECISION)),
        consistency=assign_ranks(consistency, key=lambda e: e.longest_streak),
        total_participants=len(entries),
    )
