"""Tests for the paginated feed, post ownership, likes and comments."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Iterator, Tuple
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_socialhub.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from socialhub.constants import ACCOUNT_KIND_GUEST, ACCOUNT_KIND_MEMBER  # noqa: E402
from socialhub.database import Base, SessionLocal, engine  # noqa: E402
from socialhub.main import app  # noqa: E402
from socialhub.models import Comment, Follow, Like, Message, Post, User  # noqa: E402
from socialhub.routers import posts as post_routes  # noqa: E402
from socialhub.schemas import ChangeKind  # noqa: E402
from socialhub.services import create_access_token  # noqa: E402

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for model in (Message, Comment, Like, Follow, Post, User):
            session.execute(delete(model))
        session.commit()
    yield


def _create_user(display_name: str, *, guest: bool = False) -> Tuple[UUID, dict[str, str]]:
    with SessionLocal() as db:
        user = User(
            display_name=display_name,
            email=f"{display_name}@socialhub.io",
            hashed_password="test-hash",
            account_kind=ACCOUNT_KIND_GUEST if guest else ACCOUNT_KIND_MEMBER,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        user_id = user.id
    return user_id, {"Authorization": f"Bearer {create_access_token(user_id)}"}


def _seed_posts(author_id: UUID, count: int) -> list[UUID]:
    """Insert ``count`` posts one minute apart; returns ids newest first."""

    ids: list[UUID] = []
    with SessionLocal() as db:
        for index in range(count):
            post = Post(user_id=author_id, content=f"post {index}", created_at=BASE_TIME + timedelta(minutes=index))
            db.add(post)
            db.flush()
            ids.append(post.id)
        db.commit()
    return list(reversed(ids))


def test_feed_pages_are_newest_first_and_do_not_overlap() -> None:
    author_id, headers = _create_user("writer")
    expected = [str(post_id) for post_id in _seed_posts(author_id, 25)]

    with TestClient(app) as client:
        pages = [client.get("/posts", params={"page": page, "page_size": 10}, headers=headers) for page in range(3)]

    assert all(response.status_code == 200 for response in pages)
    payloads = [response.json() for response in pages]
    assert [len(payload["items"]) for payload in payloads] == [10, 10, 5]
    assert [payload["has_more"] for payload in payloads] == [True, True, False]

    collected = [item["id"] for payload in payloads for item in payload["items"]]
    assert collected == expected
    assert len(set(collected)) == 25
    assert payloads[0]["items"][0]["author"]["display_name"] == "writer"


def test_feed_page_size_defaults_and_bounds() -> None:
    author_id, headers = _create_user("writer")
    _seed_posts(author_id, 12)

    with TestClient(app) as client:
        default = client.get("/posts", headers=headers)
        too_big = client.get("/posts", params={"page_size": 51}, headers=headers)
        negative = client.get("/posts", params={"page": -1}, headers=headers)

    assert default.status_code == 200
    assert default.json()["page_size"] == 10
    assert len(default.json()["items"]) == 10
    assert too_big.status_code == 422
    assert negative.status_code == 422


def test_feed_filters_by_author() -> None:
    first_id, headers = _create_user("first")
    second_id, _ = _create_user("second")
    _seed_posts(first_id, 2)
    _seed_posts(second_id, 3)

    with TestClient(app) as client:
        response = client.get("/posts", params={"author_id": str(second_id)}, headers=headers)

    items = response.json()["items"]
    assert len(items) == 3
    assert {item["user_id"] for item in items} == {str(second_id)}


def test_create_post_requires_text_or_image() -> None:
    _, headers = _create_user("writer")

    with TestClient(app) as client:
        empty = client.post("/posts", data={"content": "   "}, headers=headers)
        created = client.post("/posts", data={"content": "  hello world  "}, headers=headers)

    assert empty.status_code == 422
    assert created.status_code == 201, created.text
    payload = created.json()
    assert payload["content"] == "hello world"
    assert payload["like_count"] == 0
    assert payload["comment_count"] == 0
    assert payload["image_key"] is None


def test_guest_may_post() -> None:
    _, headers = _create_user("guest_abc", guest=True)

    with TestClient(app) as client:
        response = client.post("/posts", data={"content": "guest hello"}, headers=headers)

    assert response.status_code == 201


def test_only_author_can_edit_or_delete_post() -> None:
    author_id, author_headers = _create_user("author")
    _, other_headers = _create_user("other")
    post_id = _seed_posts(author_id, 1)[0]

    with TestClient(app) as client:
        forbidden_edit = client.patch(f"/posts/{post_id}", json={"content": "hijack"}, headers=other_headers)
        forbidden_delete = client.delete(f"/posts/{post_id}", headers=other_headers)
        edited = client.patch(f"/posts/{post_id}", json={"content": "revised"}, headers=author_headers)
        deleted = client.delete(f"/posts/{post_id}", headers=author_headers)
        missing = client.patch(f"/posts/{post_id}", json={"content": "again"}, headers=author_headers)

    assert forbidden_edit.status_code == 403
    assert forbidden_edit.json()["error"] == "permission_denied"
    assert forbidden_delete.status_code == 403
    assert edited.status_code == 200
    assert edited.json()["content"] == "revised"
    assert deleted.status_code == 204
    assert missing.status_code == 404

    with SessionLocal() as db:
        assert db.get(Post, post_id) is None


def test_like_then_unlike_restores_the_count() -> None:
    author_id, _ = _create_user("author")
    _, fan_headers = _create_user("fan")
    post_id = _seed_posts(author_id, 1)[0]

    with TestClient(app) as client:
        before = client.get("/posts", headers=fan_headers).json()["items"][0]
        liked = client.put(f"/posts/{post_id}/like", headers=fan_headers)
        repeat = client.put(f"/posts/{post_id}/like", headers=fan_headers)
        during = client.get("/posts", headers=fan_headers).json()["items"][0]
        unliked = client.delete(f"/posts/{post_id}/like", headers=fan_headers)
        after = client.get("/posts", headers=fan_headers).json()["items"][0]

    assert liked.json()["liked"] is True
    assert repeat.status_code == 200
    assert during["like_count"] == before["like_count"] + 1
    assert during["viewer_has_liked"] is True
    assert unliked.json()["liked"] is False
    assert after["like_count"] == before["like_count"]
    assert after["viewer_has_liked"] is False


def test_repeated_like_requests_publish_only_real_changes(monkeypatch: pytest.MonkeyPatch) -> None:
    author_id, _ = _create_user("author")
    _, fan_headers = _create_user("fan")
    post_id = _seed_posts(author_id, 1)[0]
    published: list[tuple[str, ChangeKind]] = []

    async def record_change(table: str, kind: ChangeKind, row: dict) -> None:
        published.append((table, kind))

    monkeypatch.setattr(post_routes, "publish_change", record_change)

    with TestClient(app) as client:
        client.put(f"/posts/{post_id}/like", headers=fan_headers)
        repeat = client.put(f"/posts/{post_id}/like", headers=fan_headers)
        client.delete(f"/posts/{post_id}/like", headers=fan_headers)
        repeat_unlike = client.delete(f"/posts/{post_id}/like", headers=fan_headers)

    assert repeat.json()["liked"] is True
    assert repeat_unlike.json()["liked"] is False
    assert "changed" not in repeat.json()
    assert published == [("likes", ChangeKind.INSERT), ("likes", ChangeKind.DELETE)]


def test_guest_cannot_like_or_comment() -> None:
    author_id, _ = _create_user("author")
    _, guest_headers = _create_user("guest_xyz", guest=True)
    post_id = _seed_posts(author_id, 1)[0]

    with TestClient(app) as client:
        like = client.put(f"/posts/{post_id}/like", headers=guest_headers)
        comment = client.post(f"/posts/{post_id}/comments", json={"content": "hi"}, headers=guest_headers)

    assert like.status_code == 403
    assert comment.status_code == 403
    with SessionLocal() as db:
        assert db.query(Like).count() == 0
        assert db.query(Comment).count() == 0


def test_like_unknown_post_is_not_found() -> None:
    _, headers = _create_user("fan")

    with TestClient(app) as client:
        response = client.put("/posts/00000000-0000-0000-0000-000000000000/like", headers=headers)

    assert response.status_code == 404


def test_comments_newest_first_with_author_only_edits() -> None:
    author_id, author_headers = _create_user("author")
    _, other_headers = _create_user("other")
    post_id = _seed_posts(author_id, 1)[0]

    with SessionLocal() as db:
        db.add_all(
            [
                Comment(post_id=post_id, user_id=author_id, content="older", created_at=BASE_TIME),
                Comment(post_id=post_id, user_id=author_id, content="newer", created_at=BASE_TIME + timedelta(minutes=5)),
            ]
        )
        db.commit()

    with TestClient(app) as client:
        listing = client.get(f"/posts/{post_id}/comments", headers=other_headers)
        created = client.post(f"/posts/{post_id}/comments", json={"content": "from other"}, headers=other_headers)
        comment_id = created.json()["id"]
        forbidden = client.patch(f"/comments/{comment_id}", json={"content": "edit"}, headers=author_headers)
        edited = client.patch(f"/comments/{comment_id}", json={"content": "edited"}, headers=other_headers)
        forbidden_delete = client.delete(f"/comments/{comment_id}", headers=author_headers)
        deleted = client.delete(f"/comments/{comment_id}", headers=other_headers)
        counted = client.get("/posts", headers=author_headers).json()["items"][0]

    assert [item["content"] for item in listing.json()["items"]] == ["newer", "older"]
    assert created.status_code == 201
    assert created.json()["author"]["display_name"] == "other"
    assert forbidden.status_code == 403
    assert edited.json()["content"] == "edited"
    assert forbidden_delete.status_code == 403
    assert deleted.status_code == 204
    assert counted["comment_count"] == 2


def test_deleting_post_removes_its_comments_and_likes() -> None:
    author_id, author_headers = _create_user("author")
    fan_id, _ = _create_user("fan")
    post_id = _seed_posts(author_id, 1)[0]

    with SessionLocal() as db:
        db.add(Like(user_id=fan_id, post_id=post_id))
        db.add(Comment(post_id=post_id, user_id=fan_id, content="nice"))
        db.commit()

    with TestClient(app) as client:
        assert client.delete(f"/posts/{post_id}", headers=author_headers).status_code == 204

    with SessionLocal() as db:
        assert db.query(Like).count() == 0
        assert db.query(Comment).count() == 0
