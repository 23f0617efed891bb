"""Outbound "bonus applied" signal.

Delivery belongs to an external collaborator. The engine only hands over
the intent; failures while sending are logged and never undo scoring.
"""

from typing import Optional

from loguru import logger
from pydantic import BaseModel

from src.core.request_context import set_request_id


class BonusNotification(BaseModel):
    user_id: str
    event_id: str
    message: str
    final_points: float


class BonusNotifier:
    """Default notifier: records the intent in the application log.

    Replace with a real delivery channel by overriding the
    ``get_bonus_notifier`` dependency.
    """

    async def send(self, notification: BonusNotification) -> None:
        logger.info(
            "Bonus applied",
            user_id=notification.user_id,
            event_id=notification.event_id,
            message=notification.message,
            final_points=round(notification.final_points, 2),
        )


bonus_notifier = BonusNotifier()


async def dispatch_bonus_notifications(
    notifier: BonusNotifier,
    notifications: list[BonusNotification],
    request_id: Optional[str] = None,
) -> None:
    """Background task: send each notification, swallowing delivery errors.

    Parameters
    ----------
    notifier : BonusNotifier
        Delivery channel
    notifications : list[BonusNotification]
        Intents produced while scoring
    request_id : str | None
        Request ID from the original HTTP request for tracking
    """
    if request_id:
        set_request_id(request_id)

    for notification in notifications:
        try:
            await notifier.send(notification)
        except Exception as e:
            logger.error(
                "Bonus notification failed",
                request_id=request_id,
                user_id=notification.user_id,
                event_id=notification.event_id,
                error=str(e),
                error_type=type(e).__name__,
            )
