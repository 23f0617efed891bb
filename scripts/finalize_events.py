#!/usr/bin/env python3
"""
Finalise ended events.

Advances event statuses (pending -> active -> completed) and stores the
penalty records of every participant of ended events, plus the completion
records of those who met the minimum active days requirement.

Usage:
    python scripts/finalize_events.py            # events that just completed
    python scripts/finalize_events.py --all      # every ended event again

Re-running is safe: records are upserted, completion times and payment
status are kept.
"""
import argparse
import asyncio
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import get_settings
from src.core.request_context import request_context
from src.events.models import Event
from src.events.service import event_service
from src.scoring.service import scoring_service


async def finalize_events(
    session_maker: async_sessionmaker,
    include_finalized: bool,
    today: Optional[date] = None,
):
    """Finalise events that have ended.

    Returns the number of finalised events and the failures as
    ``{"event_id", "error"}`` dicts.
    """
    today = today or datetime.now().date()

    async with session_maker() as db:
        activated, completed = await event_service.update_statuses(db, today)
        logger.info(f"{len(activated)} events activated, {len(completed)} completed")

        if include_finalized:
            result = await db.execute(
                select(Event).filter(Event.end_date < today, Event.status != "cancelled")
            )
            events = list(result.scalars().all())
        else:
            events = completed

        if not events:
            logger.info("No events to finalise")
            return 0, []

        success = 0
        errors = []
        for i, event in enumerate(events, 1):
            logger.info(f"[{i}/{len(events)}] Finalising {event.id} ({event.name})")
            try:
                report = await scoring_service.finalize_event(db, event, today)
                logger.success(
                    f"✓ {report.participants} participants, "
                    f"{report.completed} completed, {report.penalised} penalised"
                )
                success += 1
            except Exception as e:
                logger.error(f"✗ Failed to finalise event {event.id}: {e}")
                errors.append({"event_id": event.id, "error": str(e)})
                await db.rollback()

        logger.info("=" * 60)
        logger.info(f"Finalised {success}/{len(events)} events")
        for err in errors:
            logger.warning(f"  Event {err['event_id']}: {err['error']}")

        return success, errors


async def main():
    parser = argparse.ArgumentParser(description="Finalise ended events")
    parser.add_argument(
        "--all",
        action="store_true",
        help="re-finalise every ended event, not only those that just completed",
    )
    args = parser.parse_args()

    # Configure logger
    logger.remove()  # Remove default handler
    logger.add(
        sys.stdout,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="INFO",
    )

    engine = create_async_engine(get_settings().DATABASE_URL, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    try:
        with request_context() as run_id:
            logger.info(f"Event finalisation run {run_id}")
            _, errors = await finalize_events(session_maker, args.all)
        return 0 if not errors else 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
