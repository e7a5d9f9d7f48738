import logging
from typing import Optional
from uuid import UUID

from circle.models.models import ContentEvent, Notification, NotificationType
from circle.repositories import NotificationRepository

logger = logging.getLogger(__name__)


async def record_notification(
    notifications: NotificationRepository,
    type: NotificationType,
    recipient_id: UUID,
    actor_id: UUID,
    post_id: UUID,
) -> Notification:
    """Append an unseen entry to the recipient's log"""
    return await notifications.create(
        Notification(user_id=recipient_id, type=type, by_user_id=actor_id, post_id=post_id)
    )


async def record_event(notifications: NotificationRepository, event: Optional[ContentEvent]) -> Optional[Notification]:
    """Turn a content event into a notification; acting on one's own post notifies nobody"""
    if event is None or event.actor_id == event.recipient_id:
        return None

    notification = await record_notification(
        notifications,
        type=event.type,
        recipient_id=event.recipient_id,
        actor_id=event.actor_id,
        post_id=event.post_id,
    )
    logger.debug("Recorded %s notification for %s", event.type.value, event.recipient_id)
    return notification


async def list_notifications(notifications: NotificationRepository, user_id: UUID) -> list[Notification]:
    return await notifications.list_for_user(user_id)
