"""Tests for registration, login and bearer authentication."""

from uuid import uuid4

from httpx import AsyncClient

from circle.core.auth import create_access_token, decode_access_token
from tests.conftest import PASSWORD, make_user_payload


async def test_register_returns_user_without_password(async_client: AsyncClient):
    payload = make_user_payload("alice")

    response = await async_client.post("/api/auth/register", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == payload["username"]
    assert body["email"] == payload["email"]
    assert body["followers"] == []
    assert body["followings"] == []
    assert body["isAdmin"] is False
    assert "_id" in body
    assert "password" not in body
    assert "passwordHash" not in body


async def test_register_hashes_password(async_client: AsyncClient, user_repo):
    payload = make_user_payload("alice")
    response = await async_client.post("/api/auth/register", json=payload)

    stored = next(iter(user_repo.users.values()))
    assert str(stored.id) == response.json()["_id"]
    assert stored.password_hash != PASSWORD
    assert stored.password_hash.startswith("$2")


async def test_register_duplicate_username(async_client: AsyncClient):
    payload = make_user_payload("alice")
    await async_client.post("/api/auth/register", json=payload)

    response = await async_client.post("/api/auth/register", json={**payload, "email": "other@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Username is already in use"


async def test_register_rejects_invalid_email(async_client: AsyncClient):
    payload = make_user_payload("alice")
    payload["email"] = "not-an-email"

    response = await async_client.post("/api/auth/register", json=payload)

    assert response.status_code == 422


async def test_login_success(async_client: AsyncClient):
    payload = make_user_payload("alice")
    registered = (await async_client.post("/api/auth/register", json=payload)).json()

    response = await async_client.post(
        "/api/auth/login",
        json={"username": payload["username"], "password": PASSWORD},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["_id"] == registered["_id"]
    assert body["tokenType"] == "bearer"
    assert str(decode_access_token(body["accessToken"])) == registered["_id"]
    assert "passwordHash" not in body


async def test_login_unknown_user(async_client: AsyncClient):
    response = await async_client.post("/api/auth/login", json={"username": "ghost", "password": PASSWORD})

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


async def test_login_wrong_password(async_client: AsyncClient):
    payload = make_user_payload("alice")
    await async_client.post("/api/auth/register", json=payload)

    response = await async_client.post(
        "/api/auth/login",
        json={"username": payload["username"], "password": "wrong"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Password is not correct"


async def test_mutation_requires_token(async_client: AsyncClient, register_user):
    alice = await register_user("alice")
    bob = await register_user("bob")

    response = await async_client.put(f"/api/users/{bob['id']}/follow", json={"userId": alice["id"]})

    assert response.status_code == 401


async def test_invalid_token_rejected(async_client: AsyncClient, register_user):
    bob = await register_user("bob")

    response = await async_client.put(
        f"/api/users/{bob['id']}/follow",
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


async def test_token_for_deleted_user_rejected(async_client: AsyncClient, register_user, user_repo):
    alice = await register_user("alice")
    bob = await register_user("bob")
    user_repo.users = {uid: user for uid, user in user_repo.users.items() if str(uid) != alice["id"]}

    response = await async_client.put(f"/api/users/{bob['id']}/follow", headers=alice["headers"])

    assert response.status_code == 401


async def test_body_user_id_must_match_token(async_client: AsyncClient, register_user):
    alice = await register_user("alice")
    bob = await register_user("bob")
    carol = await register_user("carol")

    response = await async_client.put(
        f"/api/users/{carol['id']}/follow",
        json={"userId": bob["id"]},
        headers=alice["headers"],
    )

    assert response.status_code == 403


def test_access_token_round_trip():
    user_id = uuid4()
    assert decode_access_token(create_access_token(user_id)) == user_id
