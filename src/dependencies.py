"""FastAPI dependencies for accessing application state."""

from typing import AsyncIterator, cast

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.activities.rate_limiter import IngestionRateLimiter
from src.config import get_settings
from src.core.locks import PairLockRegistry
from src.notifications.service import BonusNotifier, bonus_notifier

# Define API key header scheme for Swagger UI
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=True)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Get database session from application state.

    Usage:
        @app.get("/events/{event_id}/rules")
        async def get_rules(session: AsyncSession = Depends(get_session)):
            ...
    """
    session_maker = cast(async_sessionmaker, request.state.session_maker)
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_pair_locks(request: Request) -> PairLockRegistry:
    """Per-(event, user) lock registry created by ``locks_lifespan``."""
    return cast(PairLockRegistry, request.state.pair_locks)


async def get_ingest_rate_limiter(request: Request) -> IngestionRateLimiter:
    return cast(IngestionRateLimiter, request.state.ingest_rate_limiter)


async def get_bonus_notifier() -> BonusNotifier:
    """
    Delivery channel for "bonus applied" notifications.

    Override in ``app.dependency_overrides`` to plug in a real channel.
    """
    return bonus_notifier


async def verify_admin_api_key(api_key: str = Security(api_key_header)) -> None:
    """
    Verify admin API key from X-API-Key header.

    This dependency integrates with Swagger UI's "Authorize" button.

    Usage (on entire router):
        router = APIRouter(prefix="/scoring", dependencies=[Depends(verify_admin_api_key)])

    Raises
    ------
    HTTPException
        403 if API key is invalid or missing
    """
    settings = get_settings()
    if api_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid API key")
