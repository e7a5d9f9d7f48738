"""
Repository interfaces - Define contracts for document access
"""
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from circle.models.models import Comment, Notification, Post, User


class DuplicateKeyError(Exception):
    """Raised when a write would violate a unique key (username)."""


class UserRepository(ABC):
    """User document repository"""

    @abstractmethod
    async def create(self, user: User) -> User:
        """Insert a new user document. Raises DuplicateKeyError on a taken username."""

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        """Find user by ID"""

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]:
        """Find user by username"""

    @abstractmethod
    async def list_all(self) -> list[User]:
        """Return every user, oldest first"""

    @abstractmethod
    async def update(self, user_id: UUID, fields: dict[str, Any]) -> Optional[User]:
        """Set the given fields. Raises DuplicateKeyError on a taken username."""

    @abstractmethod
    async def delete(self, user_id: UUID) -> bool:
        """Remove the user document"""

    @abstractmethod
    async def add_follow_edge(self, follower_id: UUID, followee_id: UUID) -> None:
        """Add follower to followee.followers and followee to follower.followings"""

    @abstractmethod
    async def remove_follow_edge(self, follower_id: UUID, followee_id: UUID) -> None:
        """Inverse of add_follow_edge"""


class PostRepository(ABC):
    """Post document repository, comments are embedded in the post"""

    @abstractmethod
    async def create(self, post: Post) -> Post:
        """Insert a new post document"""

    @abstractmethod
    async def find_by_id(self, post_id: UUID) -> Optional[Post]:
        """Find post by ID"""

    @abstractmethod
    async def list_by_authors(self, author_ids: list[UUID]) -> list[Post]:
        """Posts written by any of the authors, newest first"""

    @abstractmethod
    async def update(self, post_id: UUID, fields: dict[str, Any]) -> Optional[Post]:
        """Set the given top-level fields"""

    @abstractmethod
    async def delete(self, post_id: UUID) -> bool:
        """Remove the post document"""

    @abstractmethod
    async def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[list[UUID]]:
        """Flip user membership in the post's likes, returning the resulting set"""

    @abstractmethod
    async def append_comment(self, post_id: UUID, comment: Comment) -> Optional[Post]:
        """Append one comment to the embedded list"""

    @abstractmethod
    async def replace_comments(self, post_id: UUID, comments: list[Comment]) -> Optional[Post]:
        """Overwrite the embedded comment list"""


class NotificationRepository(ABC):
    """Append-only notification log"""

    @abstractmethod
    async def create(self, notification: Notification) -> Notification:
        """Append an entry"""

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        """Entries addressed to the user, newest first"""
