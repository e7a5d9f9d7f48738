from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from circle.models.models import Comment, Notification, NotificationType, Post, User


class CamelModel(BaseModel):
    """Base schema serialised with the camelCase keys the web client uses"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Auth Schemas
class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=1)


class UserLogin(CamelModel):
    username: str
    password: str


class UserResponse(CamelModel):
    id: UUID = Field(alias="_id")
    username: str
    email: str
    profile_picture: Optional[str] = None
    followers: list[UUID] = Field(default_factory=list)
    followings: list[UUID] = Field(default_factory=list)
    is_admin: bool = False
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            profile_picture=user.profile_picture,
            followers=user.followers,
            followings=user.followings,
            is_admin=user.is_admin,
            created_at=user.created_at,
        )


class UserListItem(UserResponse):
    is_following: bool = False


class LoginResponse(UserResponse):
    access_token: str
    token_type: str = "bearer"


class UserSearchResponse(CamelModel):
    id: UUID


# Requests carrying the acting user. The id is optional because the bearer
# token identifies the actor; when present it must match the token.
class ActorRequest(CamelModel):
    user_id: Optional[UUID] = None


class UserUpdateRequest(ActorRequest):
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=1)
    profile_picture: Optional[str] = None


class AdminFlagRequest(CamelModel):
    is_admin: bool


class CommentCreate(ActorRequest):
    text: str = Field(min_length=1)


class CommentUpdate(ActorRequest):
    text: str = Field(min_length=1)


# Content Schemas
class CommentResponse(CamelModel):
    id: UUID = Field(alias="_id")
    user_id: UUID
    text: str
    likes: list[UUID] = Field(default_factory=list)
    edited: bool = False
    created_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            user_id=comment.user_id,
            text=comment.text,
            likes=comment.likes,
            edited=comment.edited,
            created_at=comment.created_at,
        )


class CommentAuthor(CamelModel):
    id: UUID = Field(alias="_id")
    username: str
    profile_picture: Optional[str] = None


class PopulatedCommentResponse(CommentResponse):
    """Comment whose author reference is replaced by the author's public fields"""

    user_id: Optional[CommentAuthor] = None  # type: ignore[assignment]


class PostResponse(CamelModel):
    id: UUID = Field(alias="_id")
    user_id: UUID
    desc: str
    img: Optional[str] = None
    likes: list[UUID] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    edited: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            user_id=post.user_id,
            desc=post.desc,
            img=post.img,
            likes=post.likes,
            comments=[CommentResponse.from_comment(comment) for comment in post.comments],
            edited=post.edited,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class LikeResponse(CamelModel):
    message: str
    liked: bool
    likes: list[UUID]


class CommentUpdateResponse(CamelModel):
    message: str
    comment: CommentResponse


class MessageResponse(CamelModel):
    message: str


class NotificationResponse(CamelModel):
    id: UUID = Field(alias="_id")
    user_id: UUID
    type: NotificationType
    by_user_id: UUID
    post_id: UUID
    date: datetime
    seen: bool

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type,
            by_user_id=notification.by_user_id,
            post_id=notification.post_id,
            date=notification.date,
            seen=notification.seen,
        )


class UploadResponse(CamelModel):
    success: bool
    filename: str
    url: str
