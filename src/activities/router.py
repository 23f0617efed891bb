"""API endpoints for activity ingestion."""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from src.activities.rate_limiter import IngestionRateLimiter
from src.activities.schemas import (
    ActivityResponse,
    DeletionResult,
    InboundActivity,
    IngestResult,
    RateLimitStatus,
)
from src.activities.service import activity_service
from src.core.locks import PairLockRegistry
from src.core.request_context import get_request_id
from src.dependencies import (
    get_bonus_notifier,
    get_ingest_rate_limiter,
    get_pair_locks,
    get_session,
    verify_admin_api_key,
)
from src.notifications.service import BonusNotifier, dispatch_bonus_notifications
from src.scoring.service import scoring_service

# Public router (no auth required)
public_router = APIRouter(
    prefix="/activities",
    tags=["activities"],
)

# Protected router: ingestion collaborator and admin tooling
router = APIRouter(
    prefix="/activities",
    tags=["activities"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.post("/ingest", response_model=IngestResult)
async def ingest_activity(
    record: InboundActivity,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    locks: PairLockRegistry = Depends(get_pair_locks),
    limiter: IngestionRateLimiter = Depends(get_ingest_rate_limiter),
    notifier: BonusNotifier = Depends(get_bonus_notifier),
):
    """Admit one activity into every event of its user.

    Bonus notifications are sent after the response, in the background.

    Parameters
    ----------
    record : InboundActivity
        Activity from the tracking source
    background_tasks : BackgroundTasks
        FastAPI background tasks
    db : AsyncSession
        Database session (injected)

    Returns
    -------
    IngestResult
        Per-event admission outcome

    Raises
    ------
    HTTPException
        429 if the user exceeded the ingestion rate limit
    """
    request_id = get_request_id()

    if not limiter.allow(record.user_id):
        raise HTTPException(status_code=429, detail="Ingestion rate limit exceeded")

    logger.info(
        "Ingesting activity",
        request_id=request_id,
        source_activity_id=record.source_activity_id,
        user_id=record.user_id,
        activity_type=record.type,
    )

    result, notifications = await scoring_service.ingest_activity(db, record, locks)

    if notifications:
        background_tasks.add_task(
            dispatch_bonus_notifications, notifier, notifications, request_id
        )

    logger.info(
        "Activity ingested",
        request_id=request_id,
        source_activity_id=record.source_activity_id,
        success=result.success,
        reason=result.reason,
        outcomes=[f"{e.event_id}:{e.action}" for e in result.events],
    )
    return result


@router.delete("/source/{source_activity_id}", response_model=DeletionResult)
async def delete_source_activity(
    source_activity_id: int,
    db: AsyncSession = Depends(get_session),
    locks: PairLockRegistry = Depends(get_pair_locks),
):
    """Remove every record written by a source activity and recompute standings."""
    result = await scoring_service.remove_source_activity(db, source_activity_id, locks)
    logger.info(
        "Source activity removed",
        request_id=get_request_id(),
        source_activity_id=source_activity_id,
        deleted=result.deleted,
    )
    return result


@router.get("/ingest/rate-limit", response_model=RateLimitStatus)
async def get_rate_limit_status(
    user_id: str,
    limiter: IngestionRateLimiter = Depends(get_ingest_rate_limiter),
):
    return limiter.usage(user_id)


@public_router.get(
    "/events/{event_id}/users/{user_id}", response_model=list[ActivityResponse]
)
async def list_participant_activities(
    event_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Scored activities of one participant in one event, oldest first."""
    return await activity_service.get_pair_activities(db, event_id, user_id)
