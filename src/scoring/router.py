"""API endpoints for event scoring results."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.request_context import get_request_id
from src.dependencies import get_session, verify_admin_api_key
from src.events.service import event_service
from src.scoring.schemas import (
    CompletionStatus,
    DualLeaderboard,
    FinalizeReport,
    PenaltyEntry,
    PenaltyPaymentUpdate,
    PenaltyReport,
    PenaltyStatus,
)
from src.scoring.service import scoring_service

# Public router (no auth required)
public_router = APIRouter(
    prefix="/scoring",
    tags=["scoring"],
)

# Protected router (requires admin API key)
router = APIRouter(
    prefix="/scoring",
    tags=["scoring"],
    dependencies=[Depends(verify_admin_api_key)],
)


def _event_not_found(event_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Event {event_id} not found")


@public_router.get("/events/{event_id}/leaderboard", response_model=DualLeaderboard)
async def get_leaderboard(event_id: str, db: AsyncSession = Depends(get_session)):
    """Get the endurance and consistency leaderboards of an event.

    Endurance is ordered by total km. Consistency is ordered by longest
    streak and leaves out participants without any streak.

    Parameters
    ----------
    event_id : str
        Event ID
    db : AsyncSession
        Database session (injected)

    Returns
    -------
    DualLeaderboard
        Both leaderboards with standard competition ranks

    Raises
    ------
    HTTPException
        404 if the event does not exist
    """
    leaderboard = await scoring_service.get_dual_leaderboard(db, event_id)
    if leaderboard is None:
        raise _event_not_found(event_id)
    return leaderboard


@public_router.get(
    "/events/{event_id}/completion/{user_id}", response_model=CompletionStatus
)
async def get_completion(
    event_id: str, user_id: str, db: AsyncSession = Depends(get_session)
):
    """Check whether a participant meets the minimum active days requirement.

    Raises
    ------
    HTTPException
        404 if the event does not exist
    """
    status = await scoring_service.check_completion(db, event_id, user_id)
    if status is None:
        raise _event_not_found(event_id)
    return status


@public_router.get(
    "/events/{event_id}/penalties/{user_id}", response_model=PenaltyStatus
)
async def get_penalty_status(
    event_id: str, user_id: str, db: AsyncSession = Depends(get_session)
):
    status = await scoring_service.get_penalty_status(db, event_id, user_id)
    if status is None:
        raise _event_not_found(event_id)
    return status


@public_router.get("/events/{event_id}/penalties", response_model=PenaltyReport)
async def get_penalty_report(event_id: str, db: AsyncSession = Depends(get_session)):
    """Stored penalties of an event, highest first, with paid/unpaid totals."""
    report = await scoring_service.get_penalty_report(db, event_id)
    if report is None:
        raise _event_not_found(event_id)
    return report


@router.patch("/events/{event_id}/penalties/{user_id}", response_model=PenaltyEntry)
async def update_penalty_payment(
    event_id: str,
    user_id: str,
    update: PenaltyPaymentUpdate,
    db: AsyncSession = Depends(get_session),
):
    """Mark a participant's penalty as paid or unpaid.

    Raises
    ------
    HTTPException
        404 if no penalty has been recorded for the participant
    """
    entry = await scoring_service.set_penalty_paid(db, event_id, user_id, update.is_paid)
    if entry is None:
        raise HTTPException(
            status_code=404,
            detail=f"No penalty recorded for user {user_id} in event {event_id}",
        )
    return entry


@router.post("/events/{event_id}/finalize", response_model=FinalizeReport)
async def finalize_event(event_id: str, db: AsyncSession = Depends(get_session)):
    """Evaluate and store completion and penalty records for all participants.

    Raises
    ------
    HTTPException
        404 if the event does not exist
        400 if the event has not ended yet
    """
    event = await event_service.get_event(db, event_id)
    if event is None:
        raise _event_not_found(event_id)

    try:
        report = await scoring_service.finalize_event(db, event)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        "Event finalized",
        request_id=get_request_id(),
        event_id=event_id,
        participants=report.participants,
        completed=report.completed,
        penalised=report.penalised,
    )
    return report
