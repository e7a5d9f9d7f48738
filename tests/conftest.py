from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from circle.config_secrets import ADMIN_BOOTSTRAP_KEY
from circle.main import app
from circle.repositories import get_notification_repository, get_post_repository, get_user_repository
from circle.services import media_service
from tests.fakes import InMemoryNotificationRepository, InMemoryPostRepository, InMemoryUserRepository

PASSWORD = "Sup3rSecret!"

RegisteredUser = dict[str, Any]


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def post_repo() -> InMemoryPostRepository:
    return InMemoryPostRepository()


@pytest.fixture
def notification_repo() -> InMemoryNotificationRepository:
    return InMemoryNotificationRepository()


@pytest.fixture
def media_root(tmp_path, monkeypatch: pytest.MonkeyPatch):
    root = tmp_path / "uploads"
    monkeypatch.setattr(media_service, "MEDIA_ROOT", str(root))
    monkeypatch.setattr(media_service, "MEDIA_BACKEND", "local")
    return root


@pytest.fixture
async def async_client(user_repo, post_repo, notification_repo, media_root) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_post_repository] = lambda: post_repo
    app.dependency_overrides[get_notification_repository] = lambda: notification_repo
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def make_user_payload(prefix: str) -> dict[str, str]:
    suffix = uuid4().hex[:8]
    return {
        "username": f"{prefix}_{suffix}",
        "email": f"{prefix}_{suffix}@example.com",
        "password": PASSWORD,
    }


@pytest.fixture
def register_user(async_client: AsyncClient) -> Callable[[str], Awaitable[RegisteredUser]]:
    """Register and log in a user; the result carries its id, username and auth headers"""

    async def _register(prefix: str = "user") -> RegisteredUser:
        payload = make_user_payload(prefix)
        response = await async_client.post("/api/auth/register", json=payload)
        assert response.status_code == 200, response.text
        login = await async_client.post(
            "/api/auth/login",
            json={"username": payload["username"], "password": payload["password"]},
        )
        assert login.status_code == 200, login.text
        body = login.json()
        return {
            "id": body["_id"],
            "username": payload["username"],
            "headers": {"Authorization": f"Bearer {body['accessToken']}"},
        }

    return _register


@pytest.fixture
def make_admin(async_client: AsyncClient) -> Callable[[RegisteredUser], Awaitable[None]]:
    async def _promote(user: RegisteredUser) -> None:
        response = await async_client.put(
            f"/api/users/{user['id']}/admin",
            json={"isAdmin": True},
            headers={"X-Admin-Key": ADMIN_BOOTSTRAP_KEY},
        )
        assert response.status_code == 200, response.text

    return _promote


@pytest.fixture
def create_post(async_client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    async def _create(user: RegisteredUser, desc: str = "hello", image: tuple | None = None) -> dict[str, Any]:
        files = {"image": image} if image else None
        response = await async_client.post("/api/posts", data={"desc": desc}, files=files, headers=user["headers"])
        assert response.status_code == 200, response.text
        return response.json()

    return _create
