from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from circle.core.auth import ensure_actor, get_current_user, require_admin_key
from circle.models.models import User
from circle.repositories import PostRepository, UserRepository, get_post_repository, get_user_repository
from circle.schemas.schemas import (
    ActorRequest,
    AdminFlagRequest,
    MessageResponse,
    PostResponse,
    UserListItem,
    UserResponse,
    UserSearchResponse,
    UserUpdateRequest,
)
from circle.services.errors import (
    AlreadyFollowingError,
    DuplicateUsernameError,
    ForbiddenError,
    NotFollowingError,
    SelfFollowError,
    UserNotFoundError,
)
from circle.services.post_service import get_user_posts
from circle.services.user_service import (
    delete_user,
    find_user_id_by_username,
    follow_user,
    get_user_profile,
    list_users,
    set_admin_flag,
    unfollow_user,
    update_user_profile,
)

router = APIRouter(prefix="/api/users", tags=["users"])

Users = Annotated[UserRepository, Depends(get_user_repository)]
CurrentUser = Annotated[User, Depends(get_current_user)]


@router.get("", status_code=status.HTTP_200_OK)
async def get_users(
    users: Users,
    current_user_id: Annotated[Optional[UUID], Query(alias="currentUserId")] = None,
) -> list[UserListItem]:
    """
    List every user except the requester.

    Parameters:
    - **currentUserId**: Requesting user, used for the `isFollowing` flag

    Returns:
    - **list[UserListItem]**: Users without password hashes
    """
    return await list_users(users, current_user_id)


@router.get("/search/{username}", status_code=status.HTTP_200_OK)
async def search_user(username: str, users: Users) -> UserSearchResponse:
    """
    Resolve an exact username to its user id.

    Raises:
    - **404 Not Found**: If no user has that username
    """
    try:
        user_id = await find_user_id_by_username(users, username)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return UserSearchResponse(id=user_id)


@router.get("/{user_id}", status_code=status.HTTP_200_OK)
async def get_user(user_id: UUID, users: Users) -> UserResponse:
    """
    Get a user's profile by their ID.

    Raises:
    - **404 Not Found**: If user does not exist
    """
    try:
        return await get_user_profile(users, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put("/{user_id}", status_code=status.HTTP_200_OK)
async def update_user(
    user_id: UUID,
    update_data: UserUpdateRequest,
    current_user: CurrentUser,
    users: Users,
) -> UserResponse:
    """
    Update a profile. Only the owner or an admin may do so.

    Parameters:
    - **update_data**: Any of username, email, password, profilePicture

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the requester is neither the owner nor an admin
    - **404 Not Found**: If user does not exist
    - **400 Bad Request**: If the new username is taken
    """
    ensure_actor(current_user, update_data.user_id)
    try:
        updated = await update_user_profile(
            users,
            user_id,
            current_user,
            update_data.model_dump(exclude_unset=True, exclude={"user_id"}),
        )
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateUsernameError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return UserResponse.from_user(updated)


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
async def remove_user(
    user_id: UUID,
    current_user: CurrentUser,
    users: Users,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> MessageResponse:
    """
    Delete an account. Only the owner or an admin may do so.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the requester is neither the owner nor an admin
    - **404 Not Found**: If user does not exist
    """
    ensure_actor(current_user, payload.user_id if payload else None)
    try:
        await delete_user(users, user_id, current_user)
    except ForbiddenError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="Account has been deleted")


@router.put("/{user_id}/follow", status_code=status.HTTP_200_OK)
async def follow(
    user_id: UUID,
    current_user: CurrentUser,
    users: Users,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> MessageResponse:
    """
    Follow another user.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If following yourself or already following
    - **404 Not Found**: If either user does not exist
    """
    actor_id = ensure_actor(current_user, payload.user_id if payload else None)
    try:
        await follow_user(users, actor_id, user_id)
    except (SelfFollowError, AlreadyFollowingError) as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="User has been followed")


@router.put("/{user_id}/unfollow", status_code=status.HTTP_200_OK)
async def unfollow(
    user_id: UUID,
    current_user: CurrentUser,
    users: Users,
    payload: Annotated[Optional[ActorRequest], Body()] = None,
) -> MessageResponse:
    """
    Unfollow a currently followed user.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If unfollowing yourself or not following
    - **404 Not Found**: If either user does not exist
    """
    actor_id = ensure_actor(current_user, payload.user_id if payload else None)
    try:
        await unfollow_user(users, actor_id, user_id)
    except (SelfFollowError, NotFollowingError) as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="User has been unfollowed")


@router.put("/{user_id}/admin", dependencies=[Depends(require_admin_key)], status_code=status.HTTP_200_OK)
async def set_admin(user_id: UUID, payload: AdminFlagRequest, users: Users) -> UserResponse:
    """Grant or revoke the admin flag. Requires the operator X-Admin-Key header."""
    try:
        updated = await set_admin_flag(users, user_id, payload.is_admin)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return UserResponse.from_user(updated)


@router.get("/{user_id}/posts", status_code=status.HTTP_200_OK)
async def get_posts_by_user(
    user_id: UUID,
    posts: Annotated[PostRepository, Depends(get_post_repository)],
) -> list[PostResponse]:
    """Posts written by the user, newest first"""
    return [PostResponse.from_post(post) for post in await get_user_posts(posts, user_id)]
