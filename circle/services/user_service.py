import logging
from typing import Any, Optional
from uuid import UUID

from circle.core.auth import get_password_hash, verify_password
from circle.core.cache import (
    cache_user_profile,
    get_cached_user_profile,
    invalidate_user_profile_cache,
)
from circle.models.models import User
from circle.repositories import DuplicateKeyError, UserRepository
from circle.schemas.schemas import UserListItem, UserResponse
from circle.services.errors import (
    AlreadyFollowingError,
    DuplicateUsernameError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFollowingError,
    SelfFollowError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("username", "email", "password", "profile_picture")

# Fields an explicit null resets instead of leaving untouched
CLEARABLE_FIELDS = ("profile_picture",)


async def register_user(users: UserRepository, username: str, email: str, password: str) -> User:
    """Create a new user with a hashed password and an empty follow graph"""
    if await users.find_by_username(username) is not None:
        raise DuplicateUsernameError("Username is already in use")

    user = User(username=username, email=email, password_hash=get_password_hash(password))
    try:
        created = await users.create(user)
    except DuplicateKeyError as exc:
        raise DuplicateUsernameError("Username is already in use") from exc

    logger.info("Registered user %s (%s)", created.username, created.id)
    return created


async def authenticate_user(users: UserRepository, username: str, password: str) -> User:
    """Check a username/password pair and return the matching user"""
    user = await users.find_by_username(username)
    if user is None:
        raise UserNotFoundError("User not found")
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Password is not correct")
    return user


async def get_user(users: UserRepository, user_id: UUID) -> User:
    user = await users.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    return user


async def get_user_profile(users: UserRepository, user_id: UUID) -> UserResponse:
    """Get a public user profile with caching"""
    cached = await get_cached_user_profile(user_id)
    if cached:
        return UserResponse.model_validate(cached)

    profile = UserResponse.from_user(await get_user(users, user_id))
    await cache_user_profile(user_id, profile.model_dump(mode="json", by_alias=True))
    return profile


async def find_user_id_by_username(users: UserRepository, username: str) -> UUID:
    user = await users.find_by_username(username)
    if user is None:
        raise UserNotFoundError("User not found")
    return user.id


async def list_users(users: UserRepository, requester_id: Optional[UUID] = None) -> list[UserListItem]:
    """All users except the requester, flagged with whether the requester follows them"""
    return [
        UserListItem.from_user(user).model_copy(update={"is_following": user.is_followed_by(requester_id)})
        for user in await users.list_all()
        if user.id != requester_id
    ]


def _ensure_can_manage(requester: User, user_id: UUID, action: str) -> None:
    if requester.id != user_id and not requester.is_admin:
        raise ForbiddenError(f"You can {action} only your account!")


async def update_user_profile(
    users: UserRepository,
    user_id: UUID,
    requester: User,
    update_data: dict[str, Any],
) -> User:
    """
    Partially update username, email, password or profile picture.

    Fields missing from update_data are left as they are. An explicit None
    clears the profile picture and is ignored for the other fields.
    """
    _ensure_can_manage(requester, user_id, "update")
    user = await get_user(users, user_id)

    fields = {
        key: value
        for key, value in update_data.items()
        if key in PROFILE_FIELDS and (value is not None or key in CLEARABLE_FIELDS)
    }
    if "password" in fields:
        fields["password_hash"] = get_password_hash(fields.pop("password"))

    new_username = fields.get("username")
    if new_username is not None and new_username != user.username:
        holder = await users.find_by_username(new_username)
        if holder is not None and holder.id != user_id:
            raise DuplicateUsernameError("Username is already in use")

    if not fields:
        return user

    try:
        updated = await users.update(user_id, fields)
    except DuplicateKeyError as exc:
        raise DuplicateUsernameError("Username is already in use") from exc
    if updated is None:
        raise UserNotFoundError("User not found")

    await invalidate_user_profile_cache(user_id)
    return updated


async def delete_user(users: UserRepository, user_id: UUID, requester: User) -> None:
    """Remove the account document. Posts and follow edges are left in place."""
    _ensure_can_manage(requester, user_id, "delete")
    if not await users.delete(user_id):
        raise UserNotFoundError("User not found")

    await invalidate_user_profile_cache(user_id)
    logger.info("Deleted user %s (requested by %s)", user_id, requester.id)


async def set_admin_flag(users: UserRepository, user_id: UUID, is_admin: bool) -> User:
    updated = await users.update(user_id, {"is_admin": is_admin})
    if updated is None:
        raise UserNotFoundError("User not found")

    await invalidate_user_profile_cache(user_id)
    return updated


async def _load_pair(users: UserRepository, actor_id: UUID, target_id: UUID) -> tuple[User, User]:
    target = await users.find_by_id(target_id)
    actor = await users.find_by_id(actor_id)
    if target is None or actor is None:
        raise UserNotFoundError("User not found")
    return actor, target


async def follow_user(users: UserRepository, actor_id: UUID, target_id: UUID) -> None:
    """Add the actor -> target follow edge"""
    if actor_id == target_id:
        raise SelfFollowError("You cannot follow yourself")

    _, target = await _load_pair(users, actor_id, target_id)
    if target.is_followed_by(actor_id):
        raise AlreadyFollowingError("You already follow this user")

    await users.add_follow_edge(actor_id, target_id)
    await invalidate_user_profile_cache(actor_id, target_id)
    logger.info("User %s followed %s", actor_id, target_id)


async def unfollow_user(users: UserRepository, actor_id: UUID, target_id: UUID) -> None:
    """Remove the actor -> target follow edge"""
    if actor_id == target_id:
        raise SelfFollowError("You cannot unfollow yourself")

    _, target = await _load_pair(users, actor_id, target_id)
    if not target.is_followed_by(actor_id):
        raise NotFollowingError("You do not follow this user")

    await users.remove_follow_edge(actor_id, target_id)
    await invalidate_user_profile_cache(actor_id, target_id)
    logger.info("User %s unfollowed %s", actor_id, target_id)
