"""Document repositories and their FastAPI dependency providers."""

from circle.repositories.base import (
    DuplicateKeyError,
    NotificationRepository,
    PostRepository,
    UserRepository,
)
from circle.repositories.postgres import (
    PostgresNotificationRepository,
    PostgresPostRepository,
    PostgresUserRepository,
)

__all__ = [
    "DuplicateKeyError",
    "NotificationRepository",
    "PostRepository",
    "UserRepository",
    "get_notification_repository",
    "get_post_repository",
    "get_user_repository",
]


def get_user_repository() -> UserRepository:
    return PostgresUserRepository()


def get_post_repository() -> PostRepository:
    return PostgresPostRepository()


def get_notification_repository() -> NotificationRepository:
    return PostgresNotificationRepository()
