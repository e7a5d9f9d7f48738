"""Tests for post endpoints: CRUD, likes and the timeline."""

from uuid import uuid4

import asyncpg
from httpx import AsyncClient

from circle.main import app
from circle.repositories import get_post_repository
from tests.fakes import InMemoryPostRepository

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def test_create_and_get_post(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")

    created = await create_post(alice, "First shot!")

    assert created["userId"] == alice["id"]
    assert created["desc"] == "First shot!"
    assert created["likes"] == []
    assert created["comments"] == []
    assert created["edited"] is False
    fetched = await async_client.get(f"/api/posts/{created['_id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


async def test_create_post_with_image(async_client: AsyncClient, register_user, create_post, media_root):
    alice = await register_user("alice")

    created = await create_post(alice, "pic", image=("photo.png", PNG_BYTES, "image/png"))

    assert created["img"].startswith("/uploads/")
    assert created["img"].endswith(".png")
    stored = media_root / created["img"].rsplit("/", 1)[-1]
    assert stored.read_bytes() == PNG_BYTES


async def test_create_post_rejects_non_image(async_client: AsyncClient, register_user, post_repo):
    alice = await register_user("alice")

    response = await async_client.post(
        "/api/posts",
        data={"desc": "oops"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=alice["headers"],
    )

    assert response.status_code == 400
    assert post_repo.posts == {}


async def test_create_post_rejects_too_long_text(async_client: AsyncClient, register_user):
    alice = await register_user("alice")

    response = await async_client.post("/api/posts", data={"desc": "x" * 501}, headers=alice["headers"])

    assert response.status_code == 422


async def test_create_post_requires_token(async_client: AsyncClient):
    response = await async_client.post("/api/posts", data={"desc": "anon"})

    assert response.status_code == 401


async def test_get_unknown_post(async_client: AsyncClient):
    response = await async_client.get(f"/api/posts/{uuid4()}")

    assert response.status_code == 404


async def test_update_own_post_marks_edited(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    post = await create_post(alice, "draft")

    response = await async_client.put(
        f"/api/posts/{post['_id']}",
        data={"desc": "final", "userId": alice["id"]},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    assert response.json()["desc"] == "final"
    assert response.json()["edited"] is True


async def test_update_replaces_image_and_removes_old_file(async_client: AsyncClient, register_user, create_post, media_root):
    alice = await register_user("alice")
    post = await create_post(alice, "pic", image=("a.png", PNG_BYTES, "image/png"))
    old_file = media_root / post["img"].rsplit("/", 1)[-1]

    response = await async_client.put(
        f"/api/posts/{post['_id']}",
        data={"desc": "new pic"},
        files={"image": ("b.jpg", b"jpeg-bytes", "image/jpeg")},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    new_img = response.json()["img"]
    assert new_img != post["img"]
    assert not old_file.exists()
    assert (media_root / new_img.rsplit("/", 1)[-1]).exists()


async def test_cannot_update_other_users_post(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice, "mine")

    response = await async_client.put(f"/api/posts/{post['_id']}", data={"desc": "hijack"}, headers=bob["headers"])

    assert response.status_code == 403
    assert response.json()["detail"] == "You can update only your post"
    assert (await async_client.get(f"/api/posts/{post['_id']}")).json()["desc"] == "mine"


async def test_delete_own_post(async_client: AsyncClient, register_user, create_post, media_root):
    alice = await register_user("alice")
    post = await create_post(alice, "bye", image=("a.png", PNG_BYTES, "image/png"))
    stored = media_root / post["img"].rsplit("/", 1)[-1]

    response = await async_client.request(
        "DELETE",
        f"/api/posts/{post['_id']}",
        json={"userId": alice["id"]},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    assert (await async_client.get(f"/api/posts/{post['_id']}")).status_code == 404
    assert not stored.exists()


async def test_cannot_delete_other_users_post(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice, "mine")

    response = await async_client.delete(f"/api/posts/{post['_id']}", headers=bob["headers"])

    assert response.status_code == 401
    assert (await async_client.get(f"/api/posts/{post['_id']}")).status_code == 200


async def test_like_toggles(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice, "like me")

    liked = await async_client.put(f"/api/posts/{post['_id']}/like", headers=bob["headers"])
    unliked = await async_client.put(f"/api/posts/{post['_id']}/like", headers=bob["headers"])

    assert liked.status_code == 200
    assert liked.json() == {"message": "The post has been liked", "liked": True, "likes": [bob["id"]]}
    assert unliked.json() == {"message": "The post has been disliked", "liked": False, "likes": []}
    assert (await async_client.get(f"/api/posts/{post['_id']}")).json()["likes"] == []


async def test_like_unknown_post(async_client: AsyncClient, register_user):
    alice = await register_user("alice")

    response = await async_client.put(f"/api/posts/{uuid4()}/like", headers=alice["headers"])

    assert response.status_code == 404


async def test_like_creates_notification_for_author(async_client: AsyncClient, register_user, create_post, notification_repo):
    alice = await register_user("alice")
    bob = await register_user("bob")
    post = await create_post(alice, "like me")

    await async_client.put(f"/api/posts/{post['_id']}/like", headers=bob["headers"])
    await async_client.put(f"/api/posts/{post['_id']}/like", headers=bob["headers"])

    assert len(notification_repo.entries) == 1
    entry = notification_repo.entries[0]
    assert str(entry.user_id) == alice["id"]
    assert str(entry.by_user_id) == bob["id"]
    assert entry.type.value == "like"
    assert entry.seen is False


async def test_liking_own_post_does_not_notify(async_client: AsyncClient, register_user, create_post, notification_repo):
    alice = await register_user("alice")
    post = await create_post(alice, "self love")

    response = await async_client.put(f"/api/posts/{post['_id']}/like", headers=alice["headers"])

    assert response.json()["liked"] is True
    assert notification_repo.entries == []


async def test_timeline_includes_own_and_followed_posts(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    carol = await register_user("carol")
    await async_client.put(f"/api/users/{bob['id']}/follow", headers=alice["headers"])

    own = await create_post(alice, "mine")
    followed = await create_post(bob, "bob's")
    await create_post(carol, "carol's")
    latest = await create_post(alice, "mine again")

    response = await async_client.get("/api/posts/timeline/all", params={"userId": alice["id"]})

    assert response.status_code == 200
    assert [post["_id"] for post in response.json()] == [latest["_id"], followed["_id"], own["_id"]]


async def test_timeline_after_unfollow(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    await async_client.put(f"/api/users/{bob['id']}/follow", headers=alice["headers"])
    await create_post(bob, "bob's")
    await async_client.put(f"/api/users/{bob['id']}/unfollow", headers=alice["headers"])

    response = await async_client.get("/api/posts/timeline/all", params={"userId": alice["id"]})

    assert response.json() == []


async def test_timeline_unknown_user(async_client: AsyncClient):
    response = await async_client.get("/api/posts/timeline/all", params={"userId": str(uuid4())})

    assert response.status_code == 404


async def test_deleted_post_leaves_timelines(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")
    await async_client.put(f"/api/users/{bob['id']}/follow", headers=alice["headers"])
    post = await create_post(bob, "short lived")

    await async_client.delete(f"/api/posts/{post['_id']}", headers=bob["headers"])

    for user in (alice, bob):
        response = await async_client.get("/api/posts/timeline/all", params={"userId": user["id"]})
        assert response.json() == []


async def test_follow_post_like_scenario(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    bob = await register_user("bob")

    follow = await async_client.put(f"/api/users/{bob['id']}/follow", headers=alice["headers"])
    assert follow.status_code == 200
    post = await create_post(bob, "hello")

    timeline = (await async_client.get("/api/posts/timeline/all", params={"userId": alice["id"]})).json()
    assert [item["desc"] for item in timeline] == ["hello"]

    await async_client.put(f"/api/posts/{post['_id']}/like", headers=alice["headers"])
    assert (await async_client.get(f"/api/posts/{post['_id']}")).json()["likes"] == [alice["id"]]

    await async_client.put(f"/api/posts/{post['_id']}/like", headers=alice["headers"])
    assert (await async_client.get(f"/api/posts/{post['_id']}")).json()["likes"] == []


async def test_image_only_update_keeps_text(async_client: AsyncClient, register_user, create_post):
    alice = await register_user("alice")
    post = await create_post(alice, "keep me", image=("a.png", PNG_BYTES, "image/png"))

    response = await async_client.put(
        f"/api/posts/{post['_id']}",
        files={"image": ("b.png", PNG_BYTES, "image/png")},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["desc"] == "keep me"
    assert body["img"] != post["img"]
    assert body["edited"] is True


class FailingWritePostRepository(InMemoryPostRepository):
    async def create(self, post):
        raise asyncpg.PostgresError("insert failed")

    async def update(self, post_id, fields):
        raise asyncpg.PostgresError("update failed")


async def test_failed_create_removes_stored_image(async_client: AsyncClient, register_user, media_root):
    alice = await register_user("alice")
    app.dependency_overrides[get_post_repository] = FailingWritePostRepository

    response = await async_client.post(
        "/api/posts",
        data={"desc": "never saved"},
        files={"image": ("a.png", PNG_BYTES, "image/png")},
        headers=alice["headers"],
    )

    assert response.status_code == 500
    assert list(media_root.iterdir()) == []


async def test_failed_update_removes_new_image(async_client: AsyncClient, register_user, create_post, post_repo, media_root):
    alice = await register_user("alice")
    post = await create_post(alice, "pic", image=("a.png", PNG_BYTES, "image/png"))
    broken = FailingWritePostRepository()
    broken.posts = post_repo.posts
    broken._order = post_repo._order
    app.dependency_overrides[get_post_repository] = lambda: broken

    response = await async_client.put(
        f"/api/posts/{post['_id']}",
        data={"desc": "new"},
        files={"image": ("b.png", PNG_BYTES, "image/png")},
        headers=alice["headers"],
    )

    assert response.status_code == 500
    assert [path.name for path in media_root.iterdir()] == [post["img"].rsplit("/", 1)[-1]]
