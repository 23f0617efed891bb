from datetime import date

import pytest
from sqlalchemy import func, select

from src.activities.models import EventActivity
from src.events.models import EventCompletion, EventParticipant, EventPenalty, UserStreak
from src.scoring.service import scoring_service
from tests.factories import create_event, inbound, raw_rule

BLOCKING = [
    raw_rule("min_distance", {"min_km": 2}),
    raw_rule("pace_range", {"min_pace": 4, "max_pace": 12}),
]
SUNDAY_X2 = raw_rule("multiplier_day", {"multiplier_day": 0, "multiplier": 2})


async def count_activities(db) -> int:
    return await db.scalar(select(func.count()).select_from(EventActivity))


async def ingest_days(db, locks, user_id, days, km=5.0):
    """Ingest one 6 min/km activity per given day of March 2026."""
    for day in days:
        await scoring_service.ingest_activity(
            db,
            inbound(
                user_id=user_id,
                km=km,
                minutes=km * 6,
                start=f"2026-03-{day:02d}T06:30:00",
                source_activity_id=hash((user_id, day)) % 10**9,
            ),
            locks,
        )


class TestIngestActivity:
    async def test_creates_record_and_standing(self, db, locks):
        await create_event(db, rules=BLOCKING)

        result, notifications = await scoring_service.ingest_activity(db, inbound(), locks)

        assert result.success
        assert result.activity_date == date(2026, 3, 2)
        (admission,) = result.events
        assert admission.action == "created"
        assert admission.final_points == 5.0
        assert notifications == []

        participant = await db.get(EventParticipant, ("evt-1", "runner-1"))
        assert participant.total_km == 5.0
        assert participant.total_points == 5.0
        assert participant.active_days == 1

    async def test_replaying_is_idempotent(self, db, locks):
        await create_event(db, rules=BLOCKING)

        await scoring_service.ingest_activity(db, inbound(), locks)
        result, _ = await scoring_service.ingest_activity(db, inbound(), locks)

        assert result.events[0].action == "updated"
        assert await count_activities(db) == 1
        participant = await db.get(EventParticipant, ("evt-1", "runner-1"))
        assert participant.total_km == 5.0
        assert participant.total_points == 5.0

    async def test_second_activity_same_day_replaces_first(self, db, locks):
        await create_event(db, rules=BLOCKING)

        await scoring_service.ingest_activity(db, inbound(km=5, minutes=30), locks)
        await scoring_service.ingest_activity(
            db,
            inbound(km=8, minutes=48, start="2026-03-02T18:00:00", source_activity_id=2002),
            locks,
        )

        rows = (await db.execute(select(EventActivity))).scalars().all()
        assert len(rows) == 1
        assert rows[0].source_activity_id == 2002
        participant = await db.get(EventParticipant, ("evt-1", "runner-1"))
        assert participant.total_km == 8.0

    async def test_rejected_activity(self, db, locks):
        await create_event(db, rules=BLOCKING)

        result, _ = await scoring_service.ingest_activity(
            db, inbound(km=1.5, minutes=9), locks
        )

        (admission,) = result.events
        assert admission.action == "rejected"
        assert admission.reason == "blocking_rule_failed"
        assert admission.failures[0].rule_type == "min_distance"
        assert await count_activities(db) == 0

    async def test_rejection_leaves_existing_record_untouched(self, db, locks):
        await create_event(db, rules=BLOCKING)
        await scoring_service.ingest_activity(db, inbound(km=5, minutes=30), locks)

        await scoring_service.ingest_activity(
            db,
            inbound(km=1, minutes=6, start="2026-03-02T19:00:00", source_activity_id=2002),
            locks,
        )

        row = (await db.execute(select(EventActivity))).scalar_one()
        assert row.source_activity_id == 1001
        assert row.distance_km == 5.0

    async def test_outside_event_window_is_skipped(self, db, locks):
        await create_event(db, rules=BLOCKING)

        result, _ = await scoring_service.ingest_activity(
            db, inbound(start="2026-03-11T06:30:00"), locks
        )

        assert result.events[0].action == "skipped"
        assert result.events[0].reason == "outside_event_dates"
        assert await count_activities(db) == 0

    async def test_disallowed_type(self, db, locks):
        await create_event(db)

        result, _ = await scoring_service.ingest_activity(
            db, inbound(activity_type="Ride"), locks
        )

        assert not result.success
        assert result.reason == "invalid_type"
        assert result.events == []

    async def test_user_without_events(self, db, locks):
        await create_event(db, participants=["someone-else"])

        result, _ = await scoring_service.ingest_activity(db, inbound(), locks)

        assert not result.success
        assert result.reason == "no_events"

    async def test_event_without_rules_scores_base_points(self, db, locks):
        await create_event(db, rules=[])

        result, _ = await scoring_service.ingest_activity(db, inbound(km=1, minutes=6), locks)

        assert result.events[0].action == "created"
        assert result.events[0].final_points == 1.0

    async def test_unreadable_blocking_rule_rejects(self, db, locks):
        await create_event(
            db, rules=[raw_rule("pace_range", {"min_pace": 9, "max_pace": 5})]
        )

        result, _ = await scoring_service.ingest_activity(db, inbound(), locks)

        assert result.events[0].action == "rejected"
        assert await count_activities(db) == 0

    async def test_bonus_produces_notification(self, db, locks):
        await create_event(db, rules=BLOCKING + [SUNDAY_X2])

        result, notifications = await scoring_service.ingest_activity(
            db, inbound(start="2026-03-01T06:30:00"), locks
        )

        assert result.events[0].applied_bonus.bonus_type == "multiplier_day"
        assert result.events[0].final_points == 10.0
        (notification,) = notifications
        assert notification.final_points == 10.0
        assert notification.message == "Sunday x 2 points"

    async def test_evaluated_per_event(self, db, locks):
        await create_event(db, event_id="strict", rules=[raw_rule("min_distance", {"min_km": 10})])
        await create_event(db, event_id="casual", rules=[SUNDAY_X2])

        result, _ = await scoring_service.ingest_activity(db, inbound(), locks)

        actions = {e.event_id: e.action for e in result.events}
        assert actions == {"strict": "rejected", "casual": "created"}

    async def test_streak_is_stored(self, db, locks):
        await create_event(db, rules=BLOCKING)

        await ingest_days(db, locks, "runner-1", [1, 2, 3, 5])

        row = await db.get(UserStreak, ("evt-1", "runner-1"))
        assert (row.longest_streak, row.current_streak, row.total_active_days) == (3, 1, 4)


class TestRemoveSourceActivity:
    async def test_removes_and_recomputes(self, db, locks):
        await create_event(db, rules=BLOCKING)
        await scoring_service.ingest_activity(db, inbound(source_activity_id=1), locks)
        await scoring_service.ingest_activity(
            db, inbound(start="2026-03-03T06:30:00", source_activity_id=2), locks
        )

        result = await scoring_service.remove_source_activity(db, 1, locks)

        assert result.deleted == 1
        assert result.events == ["evt-1"]
        participant = await db.get(EventParticipant, ("evt-1", "runner-1"))
        assert participant.total_km == 5.0
        assert participant.active_days == 1

    async def test_unknown_source_id(self, db, locks):
        result = await scoring_service.remove_source_activity(db, 999, locks)

        assert result.deleted == 0


class TestCompletion:
    rules = [raw_rule("min_active_days", {"required_days": 7, "grace_days": 1})]

    async def test_without_rule(self, db):
        await create_event(db)

        status = await scoring_service.check_completion(db, "evt-1", "runner-1")

        assert not status.has_rule

    async def test_unknown_event(self, db):
        assert await scoring_service.check_completion(db, "missing", "runner-1") is None

    async def test_stored_once_event_ended(self, db, locks):
        await create_event(db, rules=self.rules)
        await ingest_days(db, locks, "runner-1", range(1, 7))

        status = await scoring_service.check_completion(
            db, "evt-1", "runner-1", today=date(2026, 3, 15)
        )

        assert status.completed
        assert status.event_ended
        assert status.details.active_days == 6
        assert status.badge.badge_type == "basic_completion"
        row = await db.get(EventCompletion, ("evt-1", "runner-1"))
        assert row.is_completed
        assert row.badge_type == "basic_completion"

    async def test_not_stored_while_running(self, db, locks):
        await create_event(db, rules=self.rules)
        await ingest_days(db, locks, "runner-1", range(1, 7))

        status = await scoring_service.check_completion(
            db, "evt-1", "runner-1", today=date(2026, 3, 8)
        )

        assert status.completed
        assert not status.event_ended
        assert await db.get(EventCompletion, ("evt-1", "runner-1")) is None

    async def test_not_completed(self, db, locks):
        await create_event(db, rules=self.rules)
        await ingest_days(db, locks, "runner-1", range(1, 6))

        status = await scoring_service.check_completion(
            db, "evt-1", "runner-1", today=date(2026, 3, 15)
        )

        assert not status.completed
        assert status.badge is None
        assert await db.get(EventCompletion, ("evt-1", "runner-1")) is None

    async def test_finalize_stores_only_completers(self, db, locks):
        event = await create_event(db, rules=self.rules, participants=["runner-1", "runner-2"])
        await ingest_days(db, locks, "runner-1", range(1, 7))
        await ingest_days(db, locks, "runner-2", range(1, 3))

        report = await scoring_service.finalize_event(db, event, today=date(2026, 3, 11))

        assert report.completed == 1
        row = await db.get(EventCompletion, ("evt-1", "runner-1"))
        assert row.is_completed
        assert row.completed_at is not None
        assert await db.get(EventCompletion, ("evt-1", "runner-2")) is None

    async def test_refinalize_keeps_completion(self, db, locks):
        event = await create_event(db, rules=self.rules)
        await ingest_days(db, locks, "runner-1", range(1, 7))
        await scoring_service.finalize_event(db, event, today=date(2026, 3, 11))
        first = (await db.get(EventCompletion, ("evt-1", "runner-1"))).completed_at

        await scoring_service.remove_source_activity(
            db, hash(("runner-1", 6)) % 10**9, locks
        )
        report = await scoring_service.finalize_event(db, event, today=date(2026, 3, 12))

        assert report.completed == 0
        row = await db.get(EventCompletion, ("evt-1", "runner-1"))
        assert row.is_completed
        assert row.completed_at == first


class TestPenalties:
    rules = [raw_rule("penalty_missed_day", {"penalty_per_day": 50000})]

    async def test_live_status(self, db, locks):
        await create_event(db, rules=self.rules)
        await ingest_days(db, locks, "runner-1", range(1, 8))

        status = await scoring_service.get_penalty_status(db, "evt-1", "runner-1")

        assert status.has_penalty_rule
        assert status.penalty.missed_days == 3
        assert status.penalty.penalty_amount == 150000
        assert status.streak.longest_streak == 7

    async def test_without_rule(self, db):
        await create_event(db)

        status = await scoring_service.get_penalty_status(db, "evt-1", "runner-1")

        assert not status.has_penalty_rule
        assert status.penalty is None

    async def test_finalize_keeps_payment_status(self, db, locks):
        event = await create_event(db, rules=self.rules, participants=["runner-1", "runner-2"])
        await ingest_days(db, locks, "runner-1", range(1, 8))
        await ingest_days(db, locks, "runner-2", range(1, 11))

        report = await scoring_service.finalize_event(db, event, today=date(2026, 3, 11))
        await scoring_service.set_penalty_paid(db, "evt-1", "runner-1", True)
        await scoring_service.finalize_event(db, event, today=date(2026, 3, 12))

        assert report.participants == 2
        assert report.penalised == 1
        row = await db.get(EventPenalty, ("evt-1", "runner-1"))
        assert row.penalty_amount == 150000
        assert row.is_paid
        assert event.status == "completed"

    async def test_finalize_before_end(self, db):
        event = await create_event(db, rules=self.rules)

        with pytest.raises(ValueError):
            await scoring_service.finalize_event(db, event, today=date(2026, 3, 10))

    async def test_report(self, db, locks):
        event = await create_event(
            db, rules=self.rules, participants=["runner-1", "runner-2", "runner-3"]
        )
        await ingest_days(db, locks, "runner-1", range(1, 8))
        await ingest_days(db, locks, "runner-2", range(1, 11))
        await ingest_days(db, locks, "runner-3", range(1, 6))
        await scoring_service.finalize_event(db, event, today=date(2026, 3, 11))
        await scoring_service.set_penalty_paid(db, "evt-1", "runner-1", True)

        report = await scoring_service.get_penalty_report(db, "evt-1")

        assert [p.user_id for p in report.participants] == ["runner-3", "runner-1", "runner-2"]
        assert report.summary.total_penalties == 400000
        assert report.summary.participants_with_penalties == 2
        assert report.summary.participants_without_penalties == 1
        assert report.summary.total_paid == 150000
        assert report.summary.total_unpaid == 250000
        assert report.summary.currency == "VND"

    async def test_mark_paid_without_record(self, db):
        await create_event(db)

        assert await scoring_service.set_penalty_paid(db, "evt-1", "runner-1", True) is None


class TestLeaderboard:
    async def test_dual_leaderboard(self, db, locks):
        await create_event(
            db, participants=["alice", "bob", "carol", "dave"], rules=BLOCKING
        )
        await ingest_days(db, locks, "alice", [1, 2], km=5)
        await ingest_days(db, locks, "bob", [4], km=10)
        await ingest_days(db, locks, "carol", [1], km=4)

        board = await scoring_service.get_dual_leaderboard(db, "evt-1")

        assert [(e.user_id, e.rank) for e in board.endurance] == [
            ("alice", 1),
            ("bob", 1),
            ("carol", 3),
            ("dave", 4),
        ]
        assert [e.user_id for e in board.consistency] == ["alice", "bob", "carol"]
        assert board.endurance[0].display_name == "alice"
        assert board.total_participants == 4

    async def test_unknown_event(self, db):
        assert await scoring_service.get_dual_leaderboard(db, "missing") is None
