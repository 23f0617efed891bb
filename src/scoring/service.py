"""Service layer tying the scoring engine to persisted events and activities."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.activities.schemas import DeletionResult, EventAdmission, InboundActivity, IngestResult
from src.activities.service import activity_service
from src.config import get_settings
from src.core.locks import PairLockRegistry
from src.events.models import Event, EventCompletion, EventPenalty, UserStreak
from src.events.service import event_service, is_event_ended
from src.notifications.service import BonusNotification
from src.rules.schemas import RuleSet
from src.scoring.calculator import to_activity_date
from src.scoring.completion import (
    badge_tiers_from_settings,
    determine_badge,
    evaluate_completion,
    evaluate_penalty,
    format_completion_message,
    format_penalty_message,
)
from src.scoring.pipeline import evaluate_admission
from src.scoring.schemas import (
    BadgeTier,
    CompletionDetails,
    CompletionResult,
    CompletionStatus,
    DualLeaderboard,
    FinalizeReport,
    ParticipantStanding,
    PenaltyEntry,
    PenaltyReport,
    PenaltyResult,
    PenaltyStatus,
    PenaltySummary,
    StreakState,
)
from src.scoring.standings import aggregate, rank
from src.scoring.streaks import compute_streak

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now().date()


class ScoringService:
    """Service for admitting activities and evaluating event results."""

    async def ingest_activity(
        self,
        db: AsyncSession,
        record: InboundActivity,
        locks: PairLockRegistry,
    ) -> tuple[IngestResult, list[BonusNotification]]:
        """Run one inbound activity through every event of its user.

        Parameters
        ----------
        db : AsyncSession
            Database session
        record : InboundActivity
            Activity as handed over by the ingestion collaborator
        locks : PairLockRegistry
            Serialises work per (event, user) pair

        Returns
        -------
        tuple[IngestResult, list[BonusNotification]]
            Per-event outcomes and the bonus notifications to send
        """
        settings = get_settings()
        activity_date = to_activity_date(record.start_local)
        result = IngestResult(
            success=True,
            source_activity_id=record.source_activity_id,
            activity_date=activity_date,
        )

        if record.type not in settings.ALLOWED_ACTIVITY_TYPES:
            logger.info(
                f"Ignoring activity {record.source_activity_id} of type {record.type}"
            )
            result.success = False
            result.reason = "invalid_type"
            return result, []

        events = await event_service.get_user_events(db, record.user_id)
        if not events:
            result.success = False
            result.reason = "no_events"
            return result, []

        notifications: list[BonusNotification] = []
        for event in events:
            if not event.start_date <= activity_date <= event.end_date:
                result.events.append(
                    EventAdmission(
                        event_id=event.id, action="skipped", reason="outside_event_dates"
                    )
                )
                continue

            rules = await event_service.get_rule_set(db, event.id)
            admission = evaluate_admission(record.to_canonical(event.id), rules)

            if not admission.accepted:
                logger.info(
                    f"Activity {record.source_activity_id} rejected for event "
                    f"{event.id}: "
                    + "; ".join(f.reason for f in admission.validation.failures)
                )
                result.events.append(
                    EventAdmission(
                        event_id=event.id,
                        action="rejected",
                        reason="blocking_rule_failed",
                        failures=admission.validation.failures,
                    )
                )
                continue

            scored = admission.scored
            async with locks.hold(event.id, record.user_id):
                _, created = await activity_service.upsert_scored_activity(
                    db, scored, record.type
                )
                await self.recompute_participant(db, event.id, record.user_id)

            result.events.append(
                EventAdmission(
                    event_id=event.id,
                    action="created" if created else "updated",
                    final_points=scored.final_points,
                    applied_bonus=scored.applied_bonus,
                    rejected_bonuses=scored.rejected_bonuses,
                )
            )
            if scored.applied_bonus:
                notifications.append(
                    BonusNotification(
                        user_id=record.user_id,
                        event_id=event.id,
                        message=scored.applied_bonus.message,
                        final_points=scored.final_points,
                    )
                )

        return result, notifications

    async def recompute_participant(
        self, db: AsyncSession, event_id: str, user_id: str
    ) -> tuple[ParticipantStanding, StreakState]:
        """Recompute and store a participant's totals and streak.

        Always rebuilt from every stored activity of the pair. The caller
        holds the pair lock.
        """
        activities = await activity_service.get_pair_activities(db, event_id, user_id)
        standing = aggregate(user_id, event_id, activities)
        streak = compute_streak(user_id, event_id, [a.activity_date for a in activities])

        participant = await event_service.get_participant(db, event_id, user_id)
        if participant is None:
            logger.warning(
                f"No participation for user {user_id} in event {event_id}, "
                "standing not stored"
            )
            return standing, streak

        participant.total_km = standing.total_km
        participant.total_points = standing.total_points
        participant.active_days = standing.active_day_count

        row = await db.get(UserStreak, (event_id, user_id))
        if row is None:
            row = UserStreak(event_id=event_id, user_id=user_id)
            db.add(row)
        row.current_streak = streak.current_streak
        row.longest_streak = streak.longest_streak
        row.total_active_days = streak.total_active_days

        await db.commit()
        return standing, streak

    async def remove_source_activity(
        self,
        db: AsyncSession,
        source_activity_id: int,
        locks: PairLockRegistry,
    ) -> DeletionResult:
        """Delete every record written by one source activity.

        Parameters
        ----------
        db : AsyncSession
            Database session
        source_activity_id : int
            Activity ID in the tracking source
        locks : PairLockRegistry
            Serialises work per (event, user) pair

        Returns
        -------
        DeletionResult
            Events whose records were removed
        """
        records = await activity_service.get_by_source_id(db, source_activity_id)
        events: list[str] = []

        for record in records:
            async with locks.hold(record.event_id, record.user_id):
                await activity_service.delete_activity(db, record)
                await self.recompute_participant(db, record.event_id, record.user_id)
            events.append(record.event_id)

        return DeletionResult(
            source_activity_id=source_activity_id,
            deleted=len(records),
            events=events,
        )

    async def _pair_dates(
        self, db: AsyncSession, event_id: str, user_id: str
    ) -> list[date]:
        activities = await activity_service.get_pair_activities(db, event_id, user_id)
        return [a.activity_date for a in activities]

    async def _save_completion(
        self,
        db: AsyncSession,
        event_id: str,
        user_id: str,
        result: CompletionResult,
        badge: Optional[BadgeTier],
        now: datetime,
    ) -> EventCompletion:
        """Upsert the record of a qualifying participant; the first completion time is kept."""
        row = await db.get(EventCompletion, (event_id, user_id))
        if row is None:
            row = EventCompletion(event_id=event_id, user_id=user_id)
            db.add(row)

        row.active_days = result.active_days
        row.total_days = result.total_days
        row.required_days = result.required_days
        row.grace_days = result.grace_days
        row.missed_days = result.missed_days
        row.completion_percentage = result.completion_percentage
        row.badge_type = badge.badge_type if badge else None
        if row.completed_at is None:
            row.completed_at = now
        row.is_completed = True
        return row

    async def _save_penalty(
        self, db: AsyncSession, event_id: str, user_id: str, result: PenaltyResult
    ) -> EventPenalty:
        """Upsert the penalty record; payment status is left as it was."""
        row = await db.get(EventPenalty, (event_id, user_id))
        if row is None:
            row = EventPenalty(event_id=event_id, user_id=user_id, is_paid=False)
            db.add(row)

        row.total_days = result.total_days
        row.active_days = result.active_days
        row.missed_days = result.missed_days
        row.penalty_amount = result.penalty_amount
        row.currency = result.currency
        return row

    async def check_completion(
        self,
        db: AsyncSession,
        event_id: str,
        user_id: str,
        today: Optional[date] = None,
    ) -> Optional[CompletionStatus]:
        """Evaluate the minimum-active-days rule for one participant.

        The completion record is stored once the event has ended and the
        participant qualifies.

        Returns
        -------
        CompletionStatus | None
            None if the event does not exist
        """
        event = await event_service.get_event(db, event_id)
        if event is None:
            return None

        today = today or _today()
        rules = await event_service.get_rule_set(db, event_id)
        if rules.min_active_days is None:
            return CompletionStatus(
                has_rule=False,
                message="Event has no minimum active days requirement",
            )

        result = evaluate_completion(
            await self._pair_dates(db, event_id, user_id),
            event.start_date,
            event.end_date,
            rules.min_active_days.config,
        )
        ended = is_event_ended(event, today)
        badge = None
        if result.is_valid:
            badge = determine_badge(
                result.completion_percentage, badge_tiers_from_settings(get_settings())
            )

        if ended and result.is_valid:
            await self._save_completion(
                db, event_id, user_id, result, badge, datetime.now(timezone.utc)
            )
            await db.commit()

        return CompletionStatus(
            has_rule=True,
            event_ended=ended,
            completed=result.is_valid,
            message=format_completion_message(result),
            details=CompletionDetails(
                active_days=result.active_days,
                required_days=result.required_days,
                total_days=result.total_days,
                grace_days=result.grace_days,
                missed_days=result.missed_days,
                percentage=result.completion_percentage,
            ),
            badge=badge,
        )

    async def get_penalty_status(
        self, db: AsyncSession, event_id: str, user_id: str
    ) -> Optional[PenaltyStatus]:
        """Live penalty evaluation and streak of one participant.

        Returns
        -------
        PenaltyStatus | None
            None if the event does not exist
        """
        event = await event_service.get_event(db, event_id)
        if event is None:
            return None

        dates = await self._pair_dates(db, event_id, user_id)
        streak = compute_streak(user_id, event_id, dates)
        rules = await event_service.get_rule_set(db, event_id)
        if rules.penalty_missed_day is None:
            return PenaltyStatus(has_penalty_rule=False, streak=streak)

        penalty = evaluate_penalty(
            dates,
            event.start_date,
            event.end_date,
            rules.penalty_missed_day.config,
            default_currency=get_settings().DEFAULT_CURRENCY,
        )
        return PenaltyStatus(
            has_penalty_rule=True,
            penalty=penalty,
            message=format_penalty_message(penalty),
            streak=streak,
        )

    async def finalize_event(
        self, db: AsyncSession, event: Event, today: Optional[date] = None
    ) -> FinalizeReport:
        """Evaluate completion and penalty for every participant and store them.

        Safe to run repeatedly: records are upserted and penalty payment
        status is preserved.

        Raises
        ------
        ValueError
            If the event has not ended yet
        """
        today = today or _today()
        if not is_event_ended(event, today):
            raise ValueError(f"Event {event.id} has not ended yet")

        settings = get_settings()
        tiers = badge_tiers_from_settings(settings)
        rules: RuleSet = await event_service.get_rule_set(db, event.id)
        participants = await event_service.get_participants(db, event.id)
        now = datetime.now(timezone.utc)

        completed = 0
        penalised = 0
        for participant in participants:
            dates = await self._pair_dates(db, event.id, participant.user_id)

            if rules.min_active_days is not None:
                result = evaluate_completion(
                    dates, event.start_date, event.end_date, rules.min_active_days.config
                )
                if result.is_valid:
                    await self._save_completion(
                        db,
                        event.id,
                        participant.user_id,
                        result,
                        determine_badge(result.completion_percentage, tiers),
                        now,
                    )
                completed += int(result.is_valid)

            if rules.penalty_missed_day is not None:
                penalty = evaluate_penalty(
                    dates,
                    event.start_date,
                    event.end_date,
                    rules.penalty_missed_day.config,
                    default_currency=settings.DEFAULT_CURRENCY,
                )
                await self._save_penalty(db, event.id, participant.user_id, penalty)
                penalised += int(penalty.penalty_amount > 0)

        event.status = "completed"
        event.finalized_at = now
        await db.commit()

        logger.info(
            f"Finalized event {event.id}: {len(participants)} participants, "
            f"{completed} completed, {penalised} with penalties"
        )
        return FinalizeReport(
            event_id=event.id,
            participants=len(participants),
            completed=completed,
            penalised=penalised,
            finalized_at=now,
        )

    async def get_dual_leaderboard(
        self, db: AsyncSession, event_id: str
    ) -> Optional[DualLeaderboard]:
        """Endurance and consistency leaderboards of an event.

        Returns
        -------
        DualLeaderboard | None
            None if the event does not exist
        """
        event = await event_service.get_event(db, event_id)
        if event is None:
            return None

        participants = await event_service.get_participants(db, event_id)
        standings = [
            ParticipantStanding(
                user_id=p.user_id,
                event_id=event_id,
                total_km=p.total_km or 0.0,
                total_points=p.total_points or 0.0,
                active_day_count=p.active_days or 0,
            )
            for p in participants
        ]

        result = await db.execute(select(UserStreak).filter(UserStreak.event_id == event_id))
        streaks = [
            StreakState(
                user_id=s.user_id,
                event_id=event_id,
                current_streak=s.current_streak,
                longest_streak=s.longest_streak,
                total_active_days=s.total_active_days,
            )
            for s in result.scalars().all()
        ]

        names = await event_service.get_display_names(db, [p.user_id for p in participants])
        return rank(standings, streaks, names)

    async def get_penalty_report(
        self, db: AsyncSession, event_id: str
    ) -> Optional[PenaltyReport]:
        """Stored penalty records of an event with totals.

        Returns
        -------
        PenaltyReport | None
            None if the event does not exist
        """
        event = await event_service.get_event(db, event_id)
        if event is None:
            return None

        result = await db.execute(
            select(EventPenalty)
            .filter(EventPenalty.event_id == event_id)
            .order_by(EventPenalty.penalty_amount.desc(), EventPenalty.user_id)
        )
        penalties = list(result.scalars().all())
        participants = await event_service.get_participants(db, event_id)
        names = await event_service.get_display_names(db, [p.user_id for p in penalties])

        entries = [
            PenaltyEntry(
                user_id=p.user_id,
                display_name=names.get(p.user_id, "Unknown User"),
                total_days=p.total_days,
                active_days=p.active_days,
                missed_days=p.missed_days,
                penalty_amount=p.penalty_amount,
                is_paid=p.is_paid,
            )
            for p in penalties
        ]

        rules = await event_service.get_rule_set(db, event_id)
        currency = get_settings().DEFAULT_CURRENCY
        if penalties:
            currency = penalties[0].currency
        elif rules.penalty_missed_day and rules.penalty_missed_day.config.currency:
            currency = rules.penalty_missed_day.config.currency

        with_penalty = [e for e in entries if e.penalty_amount > 0]
        paid = [e for e in with_penalty if e.is_paid]
        unpaid = [e for e in with_penalty if not e.is_paid]

        return PenaltyReport(
            event_id=event_id,
            summary=PenaltySummary(
                total_participants=len(participants),
                total_penalties=sum(e.penalty_amount for e in entries),
                participants_with_penalties=len(with_penalty),
                participants_without_penalties=len(participants) - len(with_penalty),
                paid_count=len(paid),
                unpaid_count=len(unpaid),
                total_paid=sum(e.penalty_amount for e in paid),
                total_unpaid=sum(e.penalty_amount for e in unpaid),
                currency=currency,
            ),
            participants=entries,
        )

    async def set_penalty_paid(
        self, db: AsyncSession, event_id: str, user_id: str, is_paid: bool
    ) -> Optional[PenaltyEntry]:
        """Mark a stored penalty as paid or unpaid.

        Returns
        -------
        PenaltyEntry | None
            None if no penalty record exists for the participant
        """
        row = await db.get(EventPenalty, (event_id, user_id))
        if row is None:
            return None

        row.is_paid = is_paid
        row.paid_at = datetime.now(timezone.utc) if is_paid else None
        await db.commit()

        names = await event_service.get_display_names(db, [user_id])
        logger.info(
            f"Penalty of user {user_id} in event {event_id} marked "
            f"{'paid' if is_paid else 'unpaid'}"
        )
        return PenaltyEntry(
            user_id=row.user_id,
            display_name=names.get(user_id, "Unknown User"),
            total_days=row.total_days,
            active_days=row.active_days,
            missed_days=row.missed_days,
            penalty_amount=row.penalty_amount,
            is_paid=row.is_paid,
        )


scoring_service = ScoringService()
