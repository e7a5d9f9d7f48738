from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile, status

from circle.config_secrets import POST_MAX_LENGTH
from circle.core.auth import ensure_actor, get_current_user
from circle.models.models import User
from circle.repositories import (
    NotificationRepository,
    PostRepository,
    UserRepository,
    get_notification_repository,
    get_post_repository,
    get_user_repository,
)
from circle.schemas.schemas import (
    ActorRequest,
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    CommentUpdateResponse,
    LikeResponse,
    MessageResponse,
    PopulatedCommentResponse,
    PostResponse,
)
from circle.services import media_service
from circle.services.errors import ForbiddenError, InvalidMediaError, NotFoundError
from circle.services.notification_service import record_event
from circle.services.post_service import (
    add_comment,
    create_post,
    delete_comment,
    delete_post,
    edit_comment,
    get_post,
    get_timeline,
    list_comments,
    toggle_comment_like,
    toggle_post_like,
    update_post,
)

router = APIRouter(prefix="/api/posts", tags=["posts"])

Users = Annotated[UserRepository, Depends(get_user_repository)]
Posts = Annotated[PostRepository, Depends(get_post_repository)]
Notifications = Annotated[NotificationRepository, Depends(get_notification_repository)]
CurrentUser = Annotated[User, Depends(get_current_user)]


async def _store_upload(image: Optional[UploadFile]) -> Optional[str]:
    """Buffer the whole upload and hand it to media storage"""
    if image is None or not image.filename:
        return None
    content = await image.read()
    try:
        return media_service.save_image(content, image.filename, image.content_type)
    except InvalidMediaError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _actor_from_body(current_user: User, payload: Optional[ActorRequest]) -> UUID:
    return ensure_actor(current_user, payload.user_id if payload else None)


@router.post("", status_code=status.HTTP_200_OK)
async def create_new_post(
    current_user: CurrentUser,
    posts: Posts,
    desc: Annotated[str, Form(max_length=POST_MAX_LENGTH)] = "",
    user_id: Annotated[Optional[UUID], Form(alias="userId")] = None,
    image: Annotated[Optional[UploadFile], File()] = None,
) -> PostResponse:
    """
    Create a new post for the authenticated user.

    Parameters:
    - **desc**: Post text, at most 500 characters
    - **image**: Optional image file (multipart)

    Returns:
    - **PostResponse**: The created post

    Raises:
    - **400 Bad Request**: If the upload is not an image
    - **401 Unauthorized**: If not authenticated
    """
    author_id = ensure_actor(current_user, user_id)
    img = await _store_upload(image)
    post = await create_post(posts, author_id, desc, img)
    return PostResponse.from_post(post)


@router.get("/timeline/all", status_code=status.HTTP_200_OK)
async def timeline(
    user_id: Annotated[UUID, Query(alias="userId")],
    users: Users,
    posts: Posts,
) -> list[PostResponse]:
    """
    Get the user's own posts and the posts of everyone they follow, newest first.

    Raises:
    - **404 Not Found**: If user does not exist
    """
    try:
        timeline_posts = await get_timeline(users, posts, user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [PostResponse.from_post(post) for post in timeline_posts]


@router.get("/{post_id}", status_code=status.HTTP_200_OK)
async def get_post_detail(post_id: UUID, posts: Posts) -> PostResponse:
    """
    Get a post by ID with its embedded comments.

    Raises:
    - **404 Not Found**: If post does not exist
    """
    try:
        return PostResponse.from_post(await get_post(posts, post_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put("/{post_id}", status_code=status.HTTP_200_OK)
async def update_existing_post(
    post_id: UUID,
    current_user: CurrentUser,
    posts: Posts,
    desc: Annotated[Optional[str], Form(max_length=POST_MAX_LENGTH)] = None,
    user_id: Annotated[Optional[UUID], Form(alias="userId")] = None,
    image: Annotated[Optional[UploadFile], File()] = None,
) -> PostResponse:
    """
    Edit one's own post. The post is marked as edited.

    Parameters:
    - **desc**: New post text; omitted keeps the current text
    - **image**: Optional replacement image (multipart)

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the requester is not the author
    - **404 Not Found**: If post does not exist
    """
    requester_id = ensure_actor(current_user, user_id)
    try:
        # Check ownership before anything is written to media storage
        existing = await get_post(posts, post_id)
        if existing.user_id != requester_id:
            raise ForbiddenError("You can update only your post")
        img = await _store_upload(image)
        updated = await update_post(posts, post_id, requester_id, desc, img)
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return PostResponse.from_post(updated)


@router.delete("/{post_id}", status_code=status.HTTP_200_OK)
async def remove_post(
    post_id: UUID,
    current_user: CurrentUser,
    posts: Posts,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> MessageResponse:
    """
    Delete one's own post together with its image.

    Raises:
    - **401 Unauthorized**: If not authenticated or not the author
    - **404 Not Found**: If post does not exist
    """
    requester_id = _actor_from_body(current_user, payload)
    try:
        await delete_post(posts, post_id, requester_id)
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="Post deleted successfully")


@router.put("/{post_id}/like", status_code=status.HTTP_200_OK)
async def like(
    post_id: UUID,
    current_user: CurrentUser,
    posts: Posts,
    notifications: Notifications,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> LikeResponse:
    """
    Like the post, or remove the like if the user already liked it.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If post does not exist
    """
    user_id = _actor_from_body(current_user, payload)
    try:
        result = await toggle_post_like(posts, post_id, user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    await record_event(notifications, result.event)
    message = "The post has been liked" if result.liked else "The post has been disliked"
    return LikeResponse(message=message, liked=result.liked, likes=result.likes)


@router.post("/{post_id}/comments", status_code=status.HTTP_200_OK)
async def comment_on_post(
    post_id: UUID,
    comment_data: CommentCreate,
    current_user: CurrentUser,
    posts: Posts,
    notifications: Notifications,
) -> PostResponse:
    """
    Add a comment to a post.

    Returns:
    - **PostResponse**: The post with the new comment appended

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If post does not exist
    """
    author_id = ensure_actor(current_user, comment_data.user_id)
    try:
        post, event = await add_comment(posts, post_id, author_id, comment_data.text)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    await record_event(notifications, event)
    return PostResponse.from_post(post)


@router.get("/{post_id}/comments", status_code=status.HTTP_200_OK)
async def get_comments(post_id: UUID, users: Users, posts: Posts) -> list[PopulatedCommentResponse]:
    """
    Get the comments of a post with author username and profile picture.

    Raises:
    - **404 Not Found**: If post does not exist
    """
    try:
        return await list_comments(users, posts, post_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put("/{post_id}/comments/{comment_id}", status_code=status.HTTP_200_OK)
async def update_comment(
    post_id: UUID,
    comment_id: UUID,
    comment_data: CommentUpdate,
    current_user: CurrentUser,
    posts: Posts,
) -> CommentUpdateResponse:
    """
    Edit one's own comment. The comment is marked as edited.

    Raises:
    - **401 Unauthorized**: If not authenticated or not the comment's author
    - **404 Not Found**: If post or comment does not exist
    """
    requester_id = ensure_actor(current_user, comment_data.user_id)
    try:
        comment = await edit_comment(posts, post_id, comment_id, requester_id, comment_data.text)
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CommentUpdateResponse(message="Comment updated successfully", comment=CommentResponse.from_comment(comment))


@router.delete("/{post_id}/comments/{comment_id}", status_code=status.HTTP_200_OK)
async def remove_comment(
    post_id: UUID,
    comment_id: UUID,
    current_user: CurrentUser,
    posts: Posts,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> MessageResponse:
    """
    Delete one's own comment.

    Raises:
    - **401 Unauthorized**: If not authenticated or not the comment's author
    - **404 Not Found**: If post or comment does not exist
    """
    requester_id = _actor_from_body(current_user, payload)
    try:
        await delete_comment(posts, post_id, comment_id, requester_id)
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="Comment deleted successfully")


@router.put("/{post_id}/comments/{comment_id}/like", status_code=status.HTTP_200_OK)
async def like_comment(
    post_id: UUID,
    comment_id: UUID,
    current_user: CurrentUser,
    posts: Posts,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> LikeResponse:
    """
    Like the comment, or remove the like if the user already liked it.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If post or comment does not exist
    """
    user_id = _actor_from_body(current_user, payload)
    try:
        result = await toggle_comment_like(posts, post_id, comment_id, user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    message = "The comment has been liked" if result.liked else "The comment has been disliked"
    return LikeResponse(message=message, liked=result.liked, likes=result.likes)
