"""API endpoints for events."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.request_context import get_request_id
from src.dependencies import get_session, verify_admin_api_key
from src.events.schemas import ActiveRule, RuleSetDiagnostics, StatusRefreshResult
from src.events.service import event_service
from src.scoring.service import scoring_service

# Public router (no auth required)
public_router = APIRouter(
    prefix="/events",
    tags=["events"],
)

# Protected router (requires admin API key)
router = APIRouter(
    prefix="/events",
    tags=["events"],
    dependencies=[Depends(verify_admin_api_key)],
)


@public_router.get("/{event_id}/rules", response_model=RuleSetDiagnostics)
async def get_event_rules(event_id: str, db: AsyncSession = Depends(get_session)):
    """Show the rules in force for an event and the ones left out.

    Raises
    ------
    HTTPException
        404 if the event does not exist
    """
    event = await event_service.get_event(db, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")

    rule_set = await event_service.get_rule_set(db, event_id)
    return RuleSetDiagnostics(
        event_id=event_id,
        active=[
            ActiveRule(
                rule_id=rule.id,
                rule_type=rule.type,
                name=rule.name,
                config=rule.config.model_dump(mode="json"),
            )
            for rule in rule_set.active_rules
        ],
        skipped=rule_set.skipped,
        invalid_blocking=rule_set.invalid_blocking,
    )


@router.post("/status/refresh", response_model=StatusRefreshResult)
async def refresh_event_statuses(db: AsyncSession = Depends(get_session)):
    """Advance event statuses and finalise events that just completed.

    Meant to be called by a scheduler once a day.
    """
    today = datetime.now().date()
    activated, completed = await event_service.update_statuses(db, today)

    finalized = []
    for event in completed:
        report = await scoring_service.finalize_event(db, event, today)
        finalized.append(report.event_id)

    logger.info(
        "Event statuses refreshed",
        request_id=get_request_id(),
        activated=len(activated),
        completed=len(completed),
        finalized=len(finalized),
    )
    return StatusRefreshResult(
        today=today,
        activated=[e.id for e in activated],
        completed=[e.id for e in completed],
        finalized=finalized,
    )
