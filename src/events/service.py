"""Event lookup, rule loading and lifecycle transitions."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.events.models import Event, EventParticipant, EventRule, Rule
from src.rules.schemas import RuleSet, load_rule_set
from src.users.models import User

logger = logging.getLogger(__name__)


class EventService:
    """Service for events, their rules and participants."""

    async def get_event(self, db: AsyncSession, event_id: str) -> Optional[Event]:
        result = await db.execute(select(Event).filter(Event.id == event_id))
        return result.scalar_one_or_none()

    async def get_raw_rules(self, db: AsyncSession, event_id: str) -> list[Rule]:
        """Rules attached to an event, in declaration order."""
        result = await db.execute(
            select(Rule)
            .join(EventRule, EventRule.rule_id == Rule.id)
            .filter(EventRule.event_id == event_id)
            .order_by(Rule.created_at, Rule.id)
        )
        return list(result.scalars().all())

    async def get_rule_set(self, db: AsyncSession, event_id: str) -> RuleSet:
        """Load and validate the active rule set of an event.

        Parameters
        ----------
        db : AsyncSession
            Database session
        event_id : str
            Event ID

        Returns
        -------
        RuleSet
            Typed rules. An event without rules yields an empty set.
        """
        rules = await self.get_raw_rules(db, event_id)
        rule_set = load_rule_set(rule.as_raw() for rule in rules)
        if rule_set.skipped or rule_set.invalid_blocking:
            logger.warning(
                f"Event {event_id}: {len(rule_set.skipped)} rules skipped, "
                f"{len(rule_set.invalid_blocking)} blocking rules invalid"
            )
        return rule_set

    async def get_user_events(self, db: AsyncSession, user_id: str) -> list[Event]:
        """Events the user participates in that can still take activities."""
        result = await db.execute(
            select(Event)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .filter(
                EventParticipant.user_id == user_id,
                Event.status != "cancelled",
            )
            .order_by(Event.start_date, Event.id)
        )
        return list(result.scalars().all())

    async def get_participant(
        self, db: AsyncSession, event_id: str, user_id: str
    ) -> Optional[EventParticipant]:
        return await db.get(EventParticipant, (event_id, user_id))

    async def get_participants(
        self, db: AsyncSession, event_id: str
    ) -> list[EventParticipant]:
        result = await db.execute(
            select(EventParticipant)
            .filter(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.user_id)
        )
        return list(result.scalars().all())

    async def get_display_names(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, str]:
        if not user_ids:
            return {}
        result = await db.execute(select(User).filter(User.id.in_(user_ids)))
        return {user.id: user.display_name for user in result.scalars().all()}

    async def update_statuses(
        self, db: AsyncSession, today: date
    ) -> tuple[list[Event], list[Event]]:
        """Move events along pending -> active -> completed.

        Parameters
        ----------
        db : AsyncSession
            Database session
        today : date
            Current local date

        Returns
        -------
        tuple[list[Event], list[Event]]
            Events that became active and events that became completed
        """
        result = await db.execute(
            select(Event).filter(Event.status.in_(["pending", "active"]))
        )
        activated: list[Event] = []
        completed: list[Event] = []

        for event in result.scalars().all():
            if event.end_date < today:
                event.status = "completed"
                completed.append(event)
            elif event.status == "pending" and event.start_date <= today:
                event.status = "active"
                activated.append(event)

        await db.commit()

        if activated or completed:
            logger.info(
                f"Event status refresh: {len(activated)} activated, "
                f"{len(completed)} completed"
            )
        return activated, completed


def is_event_ended(event: Event, today: date) -> bool:
    """An event has ended once its last day is over."""
    return today > event.end_date


event_service = EventService()
