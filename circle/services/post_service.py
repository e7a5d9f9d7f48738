import logging
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from circle.models.models import Comment, ContentEvent, NotificationType, Post
from circle.repositories import PostRepository, UserRepository
from circle.schemas.schemas import CommentAuthor, PopulatedCommentResponse
from circle.services import media_service
from circle.services.errors import (
    CommentNotFoundError,
    ForbiddenError,
    PostNotFoundError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


class ToggleResult(BaseModel):
    """Outcome of a like toggle on a post or comment"""

    liked: bool
    likes: list[UUID]
    event: Optional[ContentEvent] = None


def _discard_upload(img: Optional[str]) -> None:
    if img is not None:
        media_service.delete_image(img)


async def create_post(posts: PostRepository, author_id: UUID, desc: str, img: Optional[str] = None) -> Post:
    """Create a new post with empty likes and comments. A stored image is removed if the write fails."""
    try:
        post = await posts.create(Post(user_id=author_id, desc=desc, img=img))
    except Exception:
        _discard_upload(img)
        raise
    logger.info("User %s created post %s", author_id, post.id)
    return post


async def get_post(posts: PostRepository, post_id: UUID) -> Post:
    post = await posts.find_by_id(post_id)
    if post is None:
        raise PostNotFoundError("Post not found")
    return post


async def update_post(
    posts: PostRepository,
    post_id: UUID,
    requester_id: UUID,
    desc: Optional[str] = None,
    img: Optional[str] = None,
) -> Post:
    """
    Replace the text and/or the image of one's own post, marking it edited.

    A field left as None keeps its current value. A newly stored image is
    removed again if the update does not go through.
    """
    try:
        post = await get_post(posts, post_id)
        if post.user_id != requester_id:
            raise ForbiddenError("You can update only your post")

        fields: dict = {"edited": True}
        if desc is not None:
            fields["desc"] = desc
        if img is not None:
            fields["img"] = img

        updated = await posts.update(post_id, fields)
        if updated is None:
            raise PostNotFoundError("Post not found")
    except Exception:
        _discard_upload(img)
        raise

    if img is not None and post.img and post.img != img:
        media_service.delete_image(post.img)
    return updated


async def delete_post(posts: PostRepository, post_id: UUID, requester_id: UUID) -> None:
    """Delete one's own post and its stored image"""
    post = await get_post(posts, post_id)
    if post.user_id != requester_id:
        raise ForbiddenError("You can delete only your posts")

    if not await posts.delete(post_id):
        raise PostNotFoundError("Post not found")

    if post.img:
        media_service.delete_image(post.img)
    logger.info("User %s deleted post %s", requester_id, post_id)


async def toggle_post_like(posts: PostRepository, post_id: UUID, user_id: UUID) -> ToggleResult:
    """Like the post if the user has not liked it yet, otherwise remove the like"""
    post = await get_post(posts, post_id)
    likes = await posts.toggle_like(post_id, user_id)
    if likes is None:
        raise PostNotFoundError("Post not found")

    liked = user_id in likes
    event = None
    if liked:
        event = ContentEvent(type=NotificationType.LIKE, recipient_id=post.user_id, actor_id=user_id, post_id=post_id)
    return ToggleResult(liked=liked, likes=likes, event=event)


async def get_user_posts(posts: PostRepository, user_id: UUID) -> list[Post]:
    return await posts.list_by_authors([user_id])


async def get_timeline(users: UserRepository, posts: PostRepository, user_id: UUID) -> list[Post]:
    """
    Get the user's own posts plus the posts of everyone they follow.

    The result is newest first and unpaginated: one fan-out read across the
    whole following set.
    """
    user = await users.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")

    author_ids = [user.id] + [followee for followee in user.followings if followee != user.id]
    return await posts.list_by_authors(author_ids)


async def add_comment(posts: PostRepository, post_id: UUID, author_id: UUID, text: str) -> tuple[Post, ContentEvent]:
    """Append a comment to the post and return the updated post with its comment event"""
    updated = await posts.append_comment(post_id, Comment(user_id=author_id, text=text))
    if updated is None:
        raise PostNotFoundError("Post not found")

    event = ContentEvent(type=NotificationType.COMMENT, recipient_id=updated.user_id, actor_id=author_id, post_id=post_id)
    return updated, event


async def list_comments(users: UserRepository, posts: PostRepository, post_id: UUID) -> list[PopulatedCommentResponse]:
    """Comments of a post with the author's username and picture filled in"""
    post = await get_post(posts, post_id)

    authors: dict[UUID, Optional[CommentAuthor]] = {}
    for author_id in {comment.user_id for comment in post.comments}:
        author = await users.find_by_id(author_id)
        authors[author_id] = (
            CommentAuthor(id=author.id, username=author.username, profile_picture=author.profile_picture)
            if author
            else None
        )

    return [
        PopulatedCommentResponse(
            id=comment.id,
            user_id=authors[comment.user_id],
            text=comment.text,
            likes=comment.likes,
            edited=comment.edited,
            created_at=comment.created_at,
        )
        for comment in post.comments
    ]


def _locate_comment(post: Post, comment_id: UUID) -> Comment:
    comment = post.find_comment(comment_id)
    if comment is None:
        raise CommentNotFoundError("Comment not found")
    return comment


async def _save_comments(posts: PostRepository, post: Post) -> Post:
    updated = await posts.replace_comments(post.id, post.comments)
    if updated is None:
        raise PostNotFoundError("Post not found")
    return updated


async def edit_comment(
    posts: PostRepository,
    post_id: UUID,
    comment_id: UUID,
    requester_id: UUID,
    text: str,
) -> Comment:
    """Change the text of one's own comment, marking it edited"""
    post = await get_post(posts, post_id)
    comment = _locate_comment(post, comment_id)
    if comment.user_id != requester_id:
        raise ForbiddenError("You can edit only your comments")

    comment.text = text
    comment.edited = True
    await _save_comments(posts, post)
    return comment


async def delete_comment(posts: PostRepository, post_id: UUID, comment_id: UUID, requester_id: UUID) -> None:
    """Remove one's own comment from the post"""
    post = await get_post(posts, post_id)
    comment = _locate_comment(post, comment_id)
    if comment.user_id != requester_id:
        raise ForbiddenError("You can delete only your comments")

    post.comments = [item for item in post.comments if item.id != comment_id]
    await _save_comments(posts, post)


async def toggle_comment_like(posts: PostRepository, post_id: UUID, comment_id: UUID, user_id: UUID) -> ToggleResult:
    """Same toggle as post likes, scoped to the comment's own like set"""
    post = await get_post(posts, post_id)
    comment = _locate_comment(post, comment_id)

    if user_id in comment.likes:
        comment.likes = [liker for liker in comment.likes if liker != user_id]
    else:
        comment.likes.append(user_id)

    await _save_comments(posts, post)
    return ToggleResult(liked=user_id in comment.likes, likes=comment.likes)
