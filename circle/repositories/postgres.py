"""
Repository implementations - asyncpg access to the document tables
"""
from datetime import UTC, datetime
from typing import Any, Optional
from uuid import UUID

import asyncpg
from asyncpg import Record

from circle.core.db import get_connection
from circle.models.models import Comment, Notification, NotificationType, Post, User
from circle.repositories.base import (
    DuplicateKeyError,
    NotificationRepository,
    PostRepository,
    UserRepository,
)

USER_UPDATABLE_FIELDS = ("username", "email", "password_hash", "profile_picture", "is_admin")

# Post field name -> column name
POST_UPDATABLE_COLUMNS = {"desc": "description", "img": "img", "edited": "edited"}


def _set_clause(columns: list[str], first_param: int) -> str:
    return ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=first_param))


class PostgresUserRepository(UserRepository):
    """User repository backed by the users table"""

    async def create(self, user: User) -> User:
        try:
            async with get_connection() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (
                        id, username, email, password_hash, profile_picture,
                        followers, followings, is_admin, created_at, updated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                    RETURNING *
                    """,
                    user.id,
                    user.username,
                    user.email,
                    user.password_hash,
                    user.profile_picture,
                    user.followers,
                    user.followings,
                    user.is_admin,
                    user.created_at,
                    user.updated_at,
                )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateKeyError(user.username) from exc
        return _user_from_record(row)

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
        return _user_from_record(row) if row else None

    async def find_by_username(self, username: str) -> Optional[User]:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE username = $1", username)
        return _user_from_record(row) if row else None

    async def list_all(self) -> list[User]:
        async with get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM users ORDER BY created_at ASC")
        return [_user_from_record(row) for row in rows]

    async def update(self, user_id: UUID, fields: dict[str, Any]) -> Optional[User]:
        columns = [name for name in USER_UPDATABLE_FIELDS if name in fields]
        values = [fields[name] for name in columns]
        set_clause = _set_clause(columns + ["updated_at"], first_param=2)
        try:
            async with get_connection() as conn:
                row = await conn.fetchrow(
                    f"UPDATE users SET {set_clause} WHERE id = $1 RETURNING *",
                    user_id,
                    *values,
                    datetime.now(UTC),
                )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateKeyError(fields.get("username")) from exc
        return _user_from_record(row) if row else None

    async def delete(self, user_id: UUID) -> bool:
        async with get_connection() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = $1", user_id)
        return result.endswith(" 1")

    async def add_follow_edge(self, follower_id: UUID, followee_id: UUID) -> None:
        now = datetime.now(UTC)
        async with get_connection() as conn, conn.transaction():
            await conn.execute(
                """
                UPDATE users SET followers = array_append(followers, $2), updated_at = $3
                WHERE id = $1 AND NOT ($2 = ANY(followers))
                """,
                followee_id,
                follower_id,
                now,
            )
            await conn.execute(
                """
                UPDATE users SET followings = array_append(followings, $2), updated_at = $3
                WHERE id = $1 AND NOT ($2 = ANY(followings))
                """,
                follower_id,
                followee_id,
                now,
            )

    async def remove_follow_edge(self, follower_id: UUID, followee_id: UUID) -> None:
        now = datetime.now(UTC)
        async with get_connection() as conn, conn.transaction():
            await conn.execute(
                "UPDATE users SET followers = array_remove(followers, $2), updated_at = $3 WHERE id = $1",
                followee_id,
                follower_id,
                now,
            )
            await conn.execute(
                "UPDATE users SET followings = array_remove(followings, $2), updated_at = $3 WHERE id = $1",
                follower_id,
                followee_id,
                now,
            )


class PostgresPostRepository(PostRepository):
    """Post repository backed by the posts table"""

    async def create(self, post: Post) -> Post:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO posts (
                    id, user_id, description, img, likes, comments, edited, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING *
                """,
                post.id,
                post.user_id,
                post.desc,
                post.img,
                post.likes,
                _comments_to_json(post.comments),
                post.edited,
                post.created_at,
                post.updated_at,
            )
        return _post_from_record(row)

    async def find_by_id(self, post_id: UUID) -> Optional[Post]:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM posts WHERE id = $1", post_id)
        return _post_from_record(row) if row else None

    async def list_by_authors(self, author_ids: list[UUID]) -> list[Post]:
        if not author_ids:
            return []
        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM posts
                WHERE user_id = ANY($1::uuid[])
                ORDER BY created_at DESC, id DESC
                """,
                author_ids,
            )
        return [_post_from_record(row) for row in rows]

    async def update(self, post_id: UUID, fields: dict[str, Any]) -> Optional[Post]:
        names = [name for name in POST_UPDATABLE_COLUMNS if name in fields]
        columns = [POST_UPDATABLE_COLUMNS[name] for name in names]
        values = [fields[name] for name in names]
        set_clause = _set_clause(columns + ["updated_at"], first_param=2)
        async with get_connection() as conn:
            row = await conn.fetchrow(
                f"UPDATE posts SET {set_clause} WHERE id = $1 RETURNING *",
                post_id,
                *values,
                datetime.now(UTC),
            )
        return _post_from_record(row) if row else None

    async def delete(self, post_id: UUID) -> bool:
        async with get_connection() as conn:
            result = await conn.execute("DELETE FROM posts WHERE id = $1", post_id)
        return result.endswith(" 1")

    async def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[list[UUID]]:
        # Single statement so concurrent toggles never lose an update
        async with get_connection() as conn:
            likes = await conn.fetchval(
                """
                UPDATE posts
                SET likes = CASE
                    WHEN $2 = ANY(likes) THEN array_remove(likes, $2)
                    ELSE array_append(likes, $2)
                END
                WHERE id = $1
                RETURNING likes
                """,
                post_id,
                user_id,
            )
        return list(likes) if likes is not None else None

    async def append_comment(self, post_id: UUID, comment: Comment) -> Optional[Post]:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                "UPDATE posts SET comments = comments || $2::jsonb WHERE id = $1 RETURNING *",
                post_id,
                _comments_to_json([comment]),
            )
        return _post_from_record(row) if row else None

    async def replace_comments(self, post_id: UUID, comments: list[Comment]) -> Optional[Post]:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                "UPDATE posts SET comments = $2::jsonb WHERE id = $1 RETURNING *",
                post_id,
                _comments_to_json(comments),
            )
        return _post_from_record(row) if row else None


class PostgresNotificationRepository(NotificationRepository):
    """Notification log backed by the notifications table"""

    async def create(self, notification: Notification) -> Notification:
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO notifications (id, user_id, type, by_user_id, post_id, date, seen)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                notification.id,
                notification.user_id,
                notification.type.value,
                notification.by_user_id,
                notification.post_id,
                notification.date,
                notification.seen,
            )
        return notification

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        async with get_connection() as conn:
            rows = await conn.fetch(
                "SELECT * FROM notifications WHERE user_id = $1 ORDER BY date DESC",
                user_id,
            )
        return [_notification_from_record(row) for row in rows]


def _comments_to_json(comments: list[Comment]) -> list[dict[str, Any]]:
    return [comment.model_dump(mode="json") for comment in comments]


def _user_from_record(row: Record) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        profile_picture=row["profile_picture"],
        followers=list(row["followers"]),
        followings=list(row["followings"]),
        is_admin=row["is_admin"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _post_from_record(row: Record) -> Post:
    return Post(
        id=row["id"],
        user_id=row["user_id"],
        desc=row["description"],
        img=row["img"],
        likes=list(row["likes"]),
        comments=[Comment.model_validate(item) for item in row["comments"]],
        edited=row["edited"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _notification_from_record(row: Record) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        type=NotificationType(row["type"]),
        by_user_id=row["by_user_id"],
        post_id=row["post_id"],
        date=row["date"],
        seen=row["seen"],
    )
