from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"


# Database models
class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    username: str
    email: str
    password_hash: str
    profile_picture: Optional[str] = None
    followers: list[UUID] = Field(default_factory=list)
    followings: list[UUID] = Field(default_factory=list)
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_followed_by(self, user_id: Optional[UUID]) -> bool:
        return user_id is not None and user_id in self.followers


class Comment(BaseModel):
    """Comment embedded in its parent post's document."""

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    text: str
    likes: list[UUID] = Field(default_factory=list)
    edited: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    desc: str = ""
    img: Optional[str] = None
    likes: list[UUID] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    edited: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_comment(self, comment_id: UUID) -> Optional[Comment]:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None


class Notification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID  # Recipient
    type: NotificationType
    by_user_id: UUID  # Acting user
    post_id: UUID
    date: datetime = Field(default_factory=utcnow)
    seen: bool = False


class ContentEvent(BaseModel):
    """Social event emitted by a content mutation, consumed by the notification log."""

    type: NotificationType
    recipient_id: UUID
    actor_id: UUID
    post_id: UUID
