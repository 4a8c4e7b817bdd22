"""Unit tests for the client view models using in-memory fakes instead of HTTP."""
from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest

from socialhub.client import (
    Anonymous,
    Authenticated,
    ChatRoom,
    CommentThread,
    FeedLoader,
    FollowButton,
    PostCard,
    SessionGate,
    SignedUrlResolver,
)
from socialhub.client.reconcile import MutationState
from socialhub.constants import PLACEHOLDER_AVATAR_URL, PLACEHOLDER_IMAGE_URL
from socialhub.errors import NotFoundError, PermissionDeniedError, QueryError
from socialhub.schemas import ChangeEvent, ChangeKind


class FakeApi:
    """Records calls and returns canned rows; ``fail`` names methods that raise."""

    def __init__(self, *, user_id: str | None = None, is_guest: bool = False) -> None:
        self.user_id = user_id or str(uuid4())
        self.is_guest = is_guest
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail: set[str] = set()
        self.comments: list[dict[str, Any]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise QueryError(f"{name} failed")

    def like_post(self, post_id: str) -> dict[str, Any]:
        self._record("like_post", post_id)
        return {"post_id": post_id, "liked": True}

    def unlike_post(self, post_id: str) -> dict[str, Any]:
        self._record("unlike_post", post_id)
        return {"post_id": post_id, "liked": False}

    def update_post(self, post_id: str, content: str) -> dict[str, Any]:
        self._record("update_post", post_id, content)
        return {"id": post_id, "content": content}

    def delete_post(self, post_id: str) -> None:
        self._record("delete_post", post_id)

    def follow(self, target_id: str) -> dict[str, Any]:
        self._record("follow", target_id)
        return {"status": "followed"}

    def unfollow(self, target_id: str) -> dict[str, Any]:
        self._record("unfollow", target_id)
        return {"status": "unfollowed"}

    def send_message(self, peer_id: str, content: str) -> dict[str, Any]:
        self._record("send_message", peer_id, content)
        return {"id": str(uuid4()), "sender_id": self.user_id, "receiver_id": peer_id, "content": content}

    def update_message(self, message_id: str, content: str) -> dict[str, Any]:
        self._record("update_message", message_id, content)
        return {"id": message_id, "content": content}

    def delete_message(self, message_id: str) -> dict[str, Any]:
        self._record("delete_message", message_id)
        return {"id": message_id}

    def list_comments(self, post_id: str) -> list[dict[str, Any]]:
        self._record("list_comments", post_id)
        return list(self.comments)

    def add_comment(self, post_id: str, content: str) -> dict[str, Any]:
        self._record("add_comment", post_id, content)
        return {"id": str(uuid4()), "post_id": post_id, "user_id": self.user_id, "content": content}

    def delete_comment(self, comment_id: str) -> None:
        self._record("delete_comment", comment_id)


class PagedSource:
    def __init__(self, total: int) -> None:
        self.posts = [{"id": f"post-{index}", "content": str(index)} for index in range(total)]
        self.requests: list[int] = []
        self.failures = 0

    def list_posts(self, *, page: int = 0, page_size: int | None = None, author_id: Any = None) -> dict[str, Any]:
        self.requests.append(page)
        if self.failures:
            self.failures -= 1
            raise QueryError("offline")
        size = page_size or 10
        items = self.posts[page * size : (page + 1) * size]
        return {"items": items, "page": page, "page_size": size, "has_more": len(items) == size}


# -- feed loader ---------------------------------------------------------


def test_feed_loader_appends_pages_until_exhausted() -> None:
    source = PagedSource(23)
    loader = FeedLoader(source, page_size=10)

    sizes = [len(loader.load_next()) for _ in range(3)]

    assert sizes == [10, 10, 3]
    assert loader.exhausted is True
    assert [post["id"] for post in loader.posts] == [f"post-{index}" for index in range(23)]
    assert loader.load_next() == []
    assert source.requests == [0, 1, 2]


def test_feed_loader_exhausts_on_exact_multiple_after_empty_page() -> None:
    source = PagedSource(10)
    loader = FeedLoader(source, page_size=10)

    loader.load_next()
    assert loader.exhausted is False
    assert loader.load_next() == []
    assert loader.exhausted is True


def test_feed_loader_ignores_reentrant_calls_while_busy() -> None:
    source = PagedSource(30)
    loader = FeedLoader(source, page_size=10)
    nested: list[list[dict[str, Any]]] = []
    original = source.list_posts

    def list_posts(**kwargs: Any) -> dict[str, Any]:
        assert loader.busy
        nested.append(loader.load_next())
        return original(**kwargs)

    source.list_posts = list_posts  # type: ignore[method-assign]
    added = loader.load_next()

    assert len(added) == 10
    assert nested == [[]]
    assert source.requests == [0]
    assert loader.page == 1
    assert loader.busy is False


def test_feed_loader_failure_keeps_cursor_and_reports() -> None:
    source = PagedSource(5)
    source.failures = 1
    loader = FeedLoader(source, page_size=10)

    assert loader.load_next() == []
    assert loader.error == "Could not load posts. Please try again."
    assert loader.page == 0
    assert loader.exhausted is False

    assert len(loader.load_next()) == 5
    assert loader.error is None
    assert source.requests == [0, 0]


def test_feed_loader_skips_rows_already_loaded() -> None:
    source = PagedSource(15)
    loader = FeedLoader(source, page_size=10)
    loader.load_next()
    # A new post shifts the second page by one, repeating post-9.
    source.posts.insert(0, {"id": "post-new", "content": "new"})

    added = loader.load_next()

    assert [post["id"] for post in added] == [f"post-{index}" for index in range(10, 15)]
    assert len(loader.posts) == 15


def test_feed_loader_remove() -> None:
    loader = FeedLoader(PagedSource(3))
    loader.load_next()

    assert loader.remove("post-1") is True
    assert loader.remove("post-1") is False
    assert [post["id"] for post in loader.posts] == ["post-0", "post-2"]


# -- signed URL resolver -------------------------------------------------


class CountingSigner:
    def __init__(self, *, error: Exception | None = None, payload: Any = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error
        self.payload = payload

    def sign_url(self, bucket: str, key: str) -> Any:
        self.calls.append((bucket, key))
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return {"signed_url": f"https://signed/{bucket}/{key}"}


def test_resolver_caches_per_key() -> None:
    signer = CountingSigner()
    resolver = SignedUrlResolver.for_post_images(signer)

    first = resolver.resolve("a.png")
    second = resolver.resolve("a.png")
    other = resolver.resolve("b.png")

    assert first == second == "https://signed/post-images/a.png"
    assert other == "https://signed/post-images/b.png"
    assert signer.calls == [("post-images", "a.png"), ("post-images", "b.png")]


def test_resolver_uses_placeholder_without_key() -> None:
    signer = CountingSigner()

    assert SignedUrlResolver.for_avatars(signer).resolve(None) == PLACEHOLDER_AVATAR_URL
    assert SignedUrlResolver.for_post_images(signer).resolve("") == PLACEHOLDER_IMAGE_URL
    assert signer.calls == []


@pytest.mark.parametrize(
    "signer",
    [
        CountingSigner(error=NotFoundError("gone")),
        CountingSigner(error=QueryError("offline")),
        CountingSigner(payload={"unexpected": True}),
        CountingSigner(payload=["not", "a", "dict"]),
    ],
)
def test_resolver_never_raises(signer: CountingSigner) -> None:
    resolver = SignedUrlResolver.for_avatars(signer)

    assert resolver.resolve("missing.png") == PLACEHOLDER_AVATAR_URL
    assert resolver.resolve("missing.png") == PLACEHOLDER_AVATAR_URL
    assert len(signer.calls) == 2


# -- session gate --------------------------------------------------------


class StaticSession:
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error

    def get_session(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.payload


def test_session_gate_admits_authenticated_users() -> None:
    user_id = uuid4()
    status = SessionGate(
        StaticSession({"authenticated": True, "user_id": str(user_id), "display_name": "ada", "is_guest": True})
    ).check()

    assert status == Authenticated(user_id=user_id, is_guest=True, display_name="ada")


@pytest.mark.parametrize(
    "source",
    [
        StaticSession({"authenticated": False, "user_id": None}),
        StaticSession({}),
        StaticSession(error=QueryError("offline")),
    ],
)
def test_session_gate_redirects_everyone_else(source: StaticSession) -> None:
    status = SessionGate(source).check()

    assert isinstance(status, Anonymous)
    assert status.redirect_to == "/login"


# -- post card -----------------------------------------------------------


def _post(owner: str, **overrides: Any) -> dict[str, Any]:
    post = {
        "id": str(uuid4()),
        "user_id": owner,
        "content": "hello",
        "image_key": None,
        "author": {"display_name": "owner", "avatar_key": None},
        "like_count": 4,
        "comment_count": 2,
        "viewer_has_liked": False,
    }
    post.update(overrides)
    return post


def test_like_toggle_is_optimistic_and_committed() -> None:
    api = FakeApi()
    card = PostCard(api, _post(str(uuid4())))

    assert card.toggle_like().committed
    assert (card.liked, card.like_count) == (True, 5)
    assert card.toggle_like().committed
    assert (card.liked, card.like_count) == (False, 4)
    assert [name for name, _ in api.calls] == ["like_post", "unlike_post"]


def test_failed_like_restores_previous_state() -> None:
    api = FakeApi()
    api.fail.add("like_post")
    card = PostCard(api, _post(str(uuid4())))

    mutation = card.toggle_like()

    assert mutation.state is MutationState.ROLLED_BACK
    assert (card.liked, card.like_count) == (False, 4)
    assert card.error == "Like could not be updated."


def test_guest_like_is_refused_without_a_request() -> None:
    api = FakeApi(is_guest=True)
    card = PostCard(api, _post(str(uuid4())))

    mutation = card.toggle_like()

    assert isinstance(mutation.error, PermissionDeniedError)
    assert card.can_like is False
    assert card.like_count == 4
    assert api.calls == []
    assert card.error == "Guest users cannot like posts."


def test_only_owner_may_edit_or_delete_post() -> None:
    api = FakeApi()
    foreign = PostCard(api, _post(str(uuid4())))
    own = PostCard(api, _post(api.user_id))

    assert foreign.can_modify is False
    assert foreign.edit("x").state is MutationState.ROLLED_BACK
    assert foreign.delete().state is MutationState.ROLLED_BACK
    assert api.calls == []

    assert own.edit("updated").committed
    assert own.post["content"] == "updated"


def test_failed_edit_restores_content() -> None:
    api = FakeApi()
    api.fail.add("update_post")
    card = PostCard(api, _post(api.user_id))

    card.edit("changed")

    assert card.post["content"] == "hello"
    assert card.error == "Post could not be edited."


def test_delete_notifies_on_commit_and_reverts_on_failure() -> None:
    api = FakeApi()
    removed: list[str] = []
    card = PostCard(api, _post(api.user_id), on_deleted=removed.append)

    api.fail.add("delete_post")
    card.delete()
    assert card.deleted is False
    assert removed == []

    api.fail.clear()
    card.delete()
    assert card.deleted is True
    assert removed == [card.post_id]


def test_post_card_media_urls() -> None:
    api = FakeApi()
    signer = CountingSigner()
    card = PostCard(
        api,
        _post(api.user_id, image_key="k.png"),
        images=SignedUrlResolver.for_post_images(signer),
        avatars=SignedUrlResolver.for_avatars(signer),
    )

    assert card.image_url == "https://signed/post-images/k.png"
    assert card.avatar_url == PLACEHOLDER_AVATAR_URL


def test_comment_thread_keeps_post_comment_count_in_step() -> None:
    api = FakeApi()
    api.comments = [{"id": "c1", "post_id": "p", "user_id": api.user_id, "content": "first"}]
    card = PostCard(api, _post(api.user_id, id="p", comment_count=1))

    thread = card.comments()
    assert thread.add("second").committed
    assert card.comment_count == 2
    assert [comment["content"] for comment in thread.comments] == ["second", "first"]

    api.fail.add("add_comment")
    thread.add("third")
    assert card.comment_count == 2
    assert len(thread.comments) == 2
    assert thread.error == "Comment could not be posted."

    assert thread.delete("c1").committed
    assert card.comment_count == 1


def test_comment_thread_refuses_guests_and_foreign_edits() -> None:
    guest = FakeApi(is_guest=True)
    thread = CommentThread(guest, "p")

    assert thread.add("hi").state is MutationState.ROLLED_BACK
    assert thread.error == "Guest users cannot comment on posts."

    member = FakeApi()
    member.comments = [{"id": "c1", "post_id": "p", "user_id": str(uuid4()), "content": "theirs"}]
    other_thread = CommentThread(member, "p")
    other_thread.load()
    assert other_thread.delete("c1").state is MutationState.ROLLED_BACK
    assert [name for name, _ in member.calls] == ["list_comments"]


def test_comment_thread_ignores_events_for_other_posts() -> None:
    thread = CommentThread(FakeApi(), "p")

    thread.handle_event(ChangeEvent(table="comments", kind=ChangeKind.INSERT, row={"id": "x", "post_id": "other"}))
    thread.handle_event(ChangeEvent(table="comments", kind=ChangeKind.INSERT, row={"id": "y", "post_id": "p"}))

    assert [comment["id"] for comment in thread.comments] == ["y"]


# -- follow button -------------------------------------------------------


def test_follow_button_toggles_and_reports_changes() -> None:
    api = FakeApi()
    seen: list[bool] = []
    button = FollowButton(api, uuid4(), is_following=False, on_change=seen.append)

    assert button.enabled and button.label == "Follow"
    assert button.toggle().committed
    assert button.label == "Unfollow"

    api.fail.add("unfollow")
    assert button.toggle().state is MutationState.ROLLED_BACK
    assert button.is_following is True
    assert button.error == "Follow could not be updated."
    assert seen == [True, False, True]


def test_follow_button_refuses_guests_and_self() -> None:
    guest = FakeApi(is_guest=True)
    guest_button = FollowButton(guest, uuid4(), is_following=False)
    assert guest_button.enabled is False
    guest_button.toggle()
    assert guest_button.error == "Guest users cannot follow other users."

    member = FakeApi()
    self_button = FollowButton(member, member.user_id, is_following=False)
    self_button.toggle()
    assert self_button.error == "You cannot follow yourself."
    assert guest.calls == [] and member.calls == []


# -- chat room -----------------------------------------------------------


def test_failed_send_removes_the_optimistic_message() -> None:
    api = FakeApi()
    api.fail.add("send_message")
    room = ChatRoom(api, uuid4())

    mutation = room.send("hello")

    assert mutation.state is MutationState.ROLLED_BACK
    assert room.messages == []
    assert room.error == "Message could not be sent."


def test_echo_before_response_still_yields_one_message() -> None:
    api = FakeApi()
    peer = str(uuid4())
    room = ChatRoom(api, peer)
    stored = {"id": "m1", "sender_id": api.user_id, "receiver_id": peer, "content": "hi"}

    def send_message(peer_id: str, content: str) -> dict[str, Any]:
        # The realtime echo lands while the request is still in flight.
        room.handle_event(ChangeEvent(table="messages", kind=ChangeKind.INSERT, row=stored))
        return stored

    api.send_message = send_message  # type: ignore[method-assign]
    room.send("hi")

    assert [message["id"] for message in room.messages] == ["m1"]


def test_failed_delete_restores_message_at_its_position() -> None:
    api = FakeApi()
    peer = str(uuid4())
    room = ChatRoom(api, peer)
    for index in range(3):
        room.handle_event(
            ChangeEvent(
                table="messages",
                kind=ChangeKind.INSERT,
                row={"id": f"m{index}", "sender_id": api.user_id, "receiver_id": peer, "content": str(index)},
            )
        )
    api.fail.add("delete_message")

    room.delete("m1")

    assert [message["id"] for message in room.messages] == ["m0", "m1", "m2"]
    assert room.error == "Message could not be deleted."


def test_edit_rolls_back_and_refuses_foreign_messages() -> None:
    api = FakeApi()
    peer = str(uuid4())
    room = ChatRoom(api, peer)
    room.handle_event(
        ChangeEvent(table="messages", kind=ChangeKind.INSERT, row={"id": "mine", "sender_id": api.user_id, "content": "a"})
    )
    room.handle_event(
        ChangeEvent(table="messages", kind=ChangeKind.INSERT, row={"id": "theirs", "sender_id": peer, "content": "b"})
    )

    api.fail.add("update_message")
    room.edit("mine", "changed")
    assert room.messages[0]["content"] == "a"

    assert room.edit("theirs", "hijack").state is MutationState.ROLLED_BACK
    assert room.delete("theirs").state is MutationState.ROLLED_BACK
    assert [name for name, _ in api.calls] == ["update_message"]
