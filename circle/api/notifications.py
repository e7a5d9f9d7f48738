from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from circle.core.auth import get_current_user
from circle.models.models import User
from circle.repositories import NotificationRepository, get_notification_repository
from circle.schemas.schemas import NotificationResponse
from circle.services.notification_service import list_notifications

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/{user_id}", status_code=status.HTTP_200_OK)
async def get_notifications(
    user_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    notifications: Annotated[NotificationRepository, Depends(get_notification_repository)],
) -> list[NotificationResponse]:
    """
    Get a user's notifications, newest first.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the caller is neither the recipient nor an admin
    """
    if current_user.id != user_id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can read only your notifications")

    return [NotificationResponse.from_notification(item) for item in await list_notifications(notifications, user_id)]
