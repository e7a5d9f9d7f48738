from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from circle.core.auth import create_access_token
from circle.repositories import UserRepository, get_user_repository
from circle.schemas.schemas import LoginResponse, UserCreate, UserLogin, UserResponse
from circle.services.errors import DuplicateUsernameError, InvalidCredentialsError, UserNotFoundError
from circle.services.user_service import authenticate_user, register_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_200_OK)
async def register(
    user_data: UserCreate,
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """
    Register a new user.

    Parameters:
    - **user_data**: username, email and password

    Returns:
    - **UserResponse**: Newly created user, without the password hash

    Raises:
    - **400 Bad Request**: If username is already in use
    """
    try:
        user = await register_user(users, user_data.username, user_data.email, user_data.password)
    except DuplicateUsernameError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return UserResponse.from_user(user)


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(
    credentials: UserLogin,
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> LoginResponse:
    """
    Authenticate a user and return their record with a bearer token.

    Parameters:
    - **credentials**: username and password

    Returns:
    - **LoginResponse**: User record plus `accessToken` for the Authorization header

    Raises:
    - **404 Not Found**: If no user has that username
    - **400 Bad Request**: If the password is wrong
    """
    try:
        user = await authenticate_user(users, credentials.username, credentials.password)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    profile = UserResponse.from_user(user)
    return LoginResponse(**profile.model_dump(), access_token=create_access_token(user.id))
