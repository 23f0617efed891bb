from datetime import date

from src.scoring.streaks import compute_streak


class TestComputeStreak:
    def test_gap_resets_current_streak(self):
        streak = compute_streak(
            "runner-1",
            "evt-1",
            [date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 3), date(2026, 1, 5)],
        )

        assert streak.longest_streak == 3
        assert streak.current_streak == 1
        assert streak.total_active_days == 4

    def test_no_dates(self):
        streak = compute_streak("runner-1", "evt-1", [])

        assert (streak.current_streak, streak.longest_streak, streak.total_active_days) == (0, 0, 0)

    def test_order_and_duplicates_do_not_matter(self):
        dates = [date(2026, 1, 3), date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 2)]

        streak = compute_streak("runner-1", "evt-1", dates)

        assert streak.current_streak == 3
        assert streak.longest_streak == 3
        assert streak.total_active_days == 3

    def test_current_streak_can_be_longest(self):
        dates = [date(2026, 1, 1), date(2026, 1, 3), date(2026, 1, 4)]

        streak = compute_streak("runner-1", "evt-1", dates)

        assert streak.current_streak == 2
        assert streak.longest_streak == 2

    def test_crosses_month_boundary(self):
        dates = [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1)]

        assert compute_streak("runner-1", "evt-1", dates).longest_streak == 3
