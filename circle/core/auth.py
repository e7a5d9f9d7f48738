from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Optional, cast
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from fastapi.security.api_key import APIKeyHeader
from jose import JWTError, jwt
from passlib.context import CryptContext

from circle.config_secrets import (
    ADMIN_BOOTSTRAP_KEY,
    BCRYPT_ROUNDS,
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
)
from circle.models.models import User
from circle.repositories import UserRepository, get_user_repository

SECRET_KEY = JWT_SECRET_KEY
ALGORITHM = JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = JWT_ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


class AuthError(HTTPException):
    """Authentication exception with WWW-Authenticate header."""

    def __init__(self, detail: str = "Could not validate credentials") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    return cast(bool, pwd_context.verify(plain_password, hashed_password))


def get_password_hash(password: str) -> str:
    """Hash a plain password with bcrypt."""
    return cast(str, pwd_context.hash(password))


def create_access_token(subject_user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """Create signed JWT token for one user id."""
    expire_at = datetime.now(UTC) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode: dict[str, Any] = {
        "sub": str(subject_user_id),
        "exp": expire_at,
    }
    return cast(str, jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM))


def decode_access_token(token: str) -> UUID:
    """Return the user id a token was issued for."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthError() from exc

    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise AuthError()

    try:
        return UUID(subject)
    except ValueError as exc:
        raise AuthError("Invalid token subject") from exc


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> User:
    """Resolve current user from bearer JWT token."""
    user = await users.find_by_id(decode_access_token(token))
    if user is None:
        raise AuthError()
    return user


def ensure_actor(current_user: User, claimed_user_id: Optional[UUID]) -> UUID:
    """
    Return the acting user id for a mutating request.

    Request bodies may still carry the client's idea of the acting user; it
    must agree with the bearer token.
    """
    if claimed_user_id is not None and claimed_user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="userId does not match the authenticated user",
        )
    return current_user.id


async def require_admin_key(admin_key: Annotated[str | None, Depends(admin_key_header)]) -> None:
    """Validate admin key for operator endpoints."""
    if admin_key is None or admin_key != ADMIN_BOOTSTRAP_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")
