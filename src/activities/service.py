"""Activity service for the per-day scored activity records."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.activities.models import EventActivity
from src.scoring.schemas import ScoredActivity

logger = logging.getLogger(__name__)


class ActivityService:
    """Service for managing scored activities in the database."""

    async def get_activity(
        self, db: AsyncSession, event_id: str, user_id: str, activity_date: date
    ) -> Optional[EventActivity]:
        """Get the record for one (user, event, date) key.

        Parameters
        ----------
        db : AsyncSession
            Database session
        event_id : str
            Event ID
        user_id : str
            Participant ID
        activity_date : date
            Local calendar date of the activity

        Returns
        -------
        EventActivity | None
            Record if found, None otherwise
        """
        result = await db.execute(
            select(EventActivity).filter(
                EventActivity.event_id == event_id,
                EventActivity.user_id == user_id,
                EventActivity.activity_date == activity_date,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_scored_activity(
        self, db: AsyncSession, scored: ScoredActivity, activity_type: str
    ) -> tuple[EventActivity, bool]:
        """Store a scored activity, replacing any record on the same day.

        Last writer wins: the second activity of a day overwrites the
        first one's metrics and points.

        Parameters
        ----------
        db : AsyncSession
            Database session
        scored : ScoredActivity
            Output of the bonus resolver
        activity_type : str
            Activity type reported by the source (Run, Walk)

        Returns
        -------
        tuple[EventActivity, bool]
            Stored record and whether it was newly created
        """
        bonus = scored.applied_bonus
        values = {
            "source_activity_id": scored.source_activity_id,
            "activity_type": activity_type,
            "start_local": scored.start_local.replace(tzinfo=None),
            "distance_meters": scored.distance_meters,
            "distance_km": scored.distance_km,
            "moving_time_seconds": scored.moving_time_seconds,
            "pace_min_per_km": scored.pace_min_per_km,
            "base_points": scored.base_points,
            "final_points": scored.final_points,
            "bonus_type": bonus.bonus_type if bonus else None,
            "bonus_message": bonus.message if bonus else None,
            "bonus_multiplier": bonus.multiplier if bonus else 1.0,
            "rejected_bonuses": [
                b.model_dump(mode="json") for b in scored.rejected_bonuses
            ],
        }

        existing = await self.get_activity(
            db, scored.event_id, scored.user_id, scored.activity_date
        )
        if existing:
            for field, value in values.items():
                setattr(existing, field, value)
            existing.updated_at = datetime.now(timezone.utc)
            await db.commit()
            await db.refresh(existing)
            logger.info(
                f"Replaced activity for user {scored.user_id} in event "
                f"{scored.event_id} on {scored.activity_date} "
                f"({scored.distance_km:.2f}km, {scored.final_points:.2f} pts)"
            )
            return existing, False

        activity = EventActivity(
            user_id=scored.user_id,
            event_id=scored.event_id,
            activity_date=scored.activity_date,
            **values,
        )
        db.add(activity)
        await db.commit()
        await db.refresh(activity)

        logger.info(
            f"Created activity for user {scored.user_id} in event "
            f"{scored.event_id} on {scored.activity_date} "
            f"({scored.distance_km:.2f}km, {scored.final_points:.2f} pts)"
        )
        return activity, True

    async def get_pair_activities(
        self, db: AsyncSession, event_id: str, user_id: str
    ) -> list[EventActivity]:
        """Get all records of one participant in one event, oldest first."""
        result = await db.execute(
            select(EventActivity)
            .filter(
                EventActivity.event_id == event_id,
                EventActivity.user_id == user_id,
            )
            .order_by(EventActivity.activity_date)
        )
        return list(result.scalars().all())

    async def get_by_source_id(
        self, db: AsyncSession, source_activity_id: int
    ) -> list[EventActivity]:
        result = await db.execute(
            select(EventActivity).filter(
                EventActivity.source_activity_id == source_activity_id
            )
        )
        return list(result.scalars().all())

    async def delete_activity(self, db: AsyncSession, activity: EventActivity) -> None:
        """Delete one record.

        Parameters
        ----------
        db : AsyncSession
            Database session
        activity : EventActivity
            Record to delete
        """
        await db.delete(activity)
        await db.commit()

        logger.info(
            f"Deleted activity of user {activity.user_id} in event "
            f"{activity.event_id} on {activity.activity_date}"
        )


activity_service = ActivityService()
