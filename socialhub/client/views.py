"""View models built on the reconciler: chat, comments, posts, follows, profiles."""
from __future__ import annotations

import logging
from typing import Any, Callable
from uuid import UUID

from ..constants import GUEST_BLOCK_DETAIL
from ..errors import NotFoundError, PermissionDeniedError, SocialError
from ..schemas import ChangeEvent, ChangeKind
from .api import SocialClient
from .feed import FeedLoader
from .media import SignedUrlResolver
from .realtime import RealtimeChannel
from .reconcile import Mutation, Placement, ReconciledList, Row, pending_id, run_mutation

logger = logging.getLogger(__name__)


def _same_user(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def _refused(description: str, detail: str) -> Mutation[Any]:
    mutation: Mutation[Any] = Mutation(description)
    mutation.roll_back(PermissionDeniedError(detail))
    return mutation


class _SubscribedView:
    """Shared channel handling: one subscription per view, released once."""

    table = ""

    def __init__(self, client: SocialClient) -> None:
        self.client = client
        self.channel: RealtimeChannel | None = None
        self.error: str | None = None

    def subscribe(self, channel: RealtimeChannel) -> RealtimeChannel:
        if self.channel is not None and self.channel is not channel:
            self.channel.close()
        channel.on_change = self.handle_event
        self.channel = channel
        return channel

    def handle_event(self, event: ChangeEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        if self.channel is not None:
            self.channel.close()

    def _settle(self, mutation: Mutation[Any], message: str) -> Mutation[Any]:
        self.error = None if mutation.committed else message
        return mutation


class ChatRoom(_SubscribedView):
    """Transcript of one conversation, oldest first, with send/edit/delete."""

    table = "messages"

    def __init__(self, client: SocialClient, peer_id: UUID | str) -> None:
        super().__init__(client)
        self.peer_id = str(peer_id)
        self.peer: dict[str, Any] | None = None
        self._messages = ReconciledList(placement=Placement.TAIL)

    @property
    def messages(self) -> list[Row]:
        return list(self._messages)

    def load(self) -> None:
        payload = self.client.get_conversation(self.peer_id)
        self.peer = payload["peer"]
        self._messages = ReconciledList.from_rows(payload["messages"], placement=Placement.TAIL)

    def connect(self) -> RealtimeChannel:
        return self.subscribe(RealtimeChannel.open(self.client, self.table, peer_id=self.peer_id))

    def handle_event(self, event: ChangeEvent) -> None:
        if event.table == self.table:
            self._messages.apply_event(event)

    def can_modify(self, message: Row) -> bool:
        return _same_user(message.get("sender_id"), self.client.user_id)

    def send(self, content: str) -> Mutation[Any]:
        text = content.strip()
        temp_id = pending_id()

        def optimistic() -> Callable[[], None]:
            self._messages.apply(
                ChangeKind.INSERT,
                {
                    "id": temp_id,
                    "sender_id": str(self.client.user_id),
                    "receiver_id": self.peer_id,
                    "content": text,
                    "created_at": None,
                },
            )
            return lambda: self._messages.apply(ChangeKind.DELETE, {"id": temp_id})

        mutation = run_mutation(
            "send message",
            optimistic=optimistic,
            request=lambda: self.client.send_message(self.peer_id, text),
            on_commit=lambda row: self._messages.swap(temp_id, row),
        )
        return self._settle(mutation, "Message could not be sent.")

    def edit(self, message_id: str, content: str) -> Mutation[Any]:
        current = self._messages.get(message_id)
        if current is None:
            return self._settle(_refused("edit message", "Message not found"), "Message could not be edited.")
        if not self.can_modify(current):
            return self._settle(_refused("edit message", "You can only edit your own messages"), "Message could not be edited.")
        previous = dict(current)

        def optimistic() -> Callable[[], None]:
            self._messages.apply(ChangeKind.UPDATE, {"id": message_id, "content": content})
            return lambda: self._messages.apply(ChangeKind.UPDATE, previous)

        mutation = run_mutation(
            "edit message",
            optimistic=optimistic,
            request=lambda: self.client.update_message(message_id, content),
            on_commit=lambda row: self._messages.apply(ChangeKind.UPDATE, row),
        )
        return self._settle(mutation, "Message could not be edited.")

    def delete(self, message_id: str) -> Mutation[Any]:
        current = self._messages.get(message_id)
        if current is None:
            return self._settle(_refused("delete message", "Message not found"), "Message could not be deleted.")
        if not self.can_modify(current):
            return self._settle(_refused("delete message", "You can only delete your own messages"), "Message could not be deleted.")
        previous = dict(current)
        position = self._messages.index_of(message_id) or 0

        def optimistic() -> Callable[[], None]:
            self._messages.apply(ChangeKind.DELETE, previous)
            return lambda: self._messages.insert_at(position, previous)

        mutation = run_mutation(
            "delete message",
            optimistic=optimistic,
            request=lambda: self.client.delete_message(message_id),
        )
        return self._settle(mutation, "Message could not be deleted.")


class CommentThread(_SubscribedView):
    """Comments of one post, newest first."""

    table = "comments"

    def __init__(
        self,
        client: SocialClient,
        post_id: UUID | str,
        *,
        on_count_change: Callable[[int], None] | None = None,
    ) -> None:
        super().__init__(client)
        self.post_id = str(post_id)
        self.on_count_change = on_count_change
        self._comments = ReconciledList(placement=Placement.HEAD)

    @property
    def comments(self) -> list[Row]:
        return list(self._comments)

    def load(self) -> None:
        self._comments = ReconciledList.from_rows(self.client.list_comments(self.post_id), placement=Placement.HEAD)

    def connect(self) -> RealtimeChannel:
        return self.subscribe(RealtimeChannel.open(self.client, self.table, post_id=self.post_id))

    def handle_event(self, event: ChangeEvent) -> None:
        if event.table == self.table and str(event.row.get("post_id")) == self.post_id:
            self._comments.apply_event(event)

    def can_modify(self, comment: Row) -> bool:
        return _same_user(comment.get("user_id"), self.client.user_id)

    def _count_changed(self, delta: int) -> None:
        if self.on_count_change is not None:
            self.on_count_change(delta)

    def add(self, content: str) -> Mutation[Any]:
        if self.client.is_guest:
            return self._settle(_refused("add comment", GUEST_BLOCK_DETAIL), "Guest users cannot comment on posts.")
        text = content.strip()
        temp_id = pending_id()

        def optimistic() -> Callable[[], None]:
            self._comments.apply(
                ChangeKind.INSERT,
                {
                    "id": temp_id,
                    "post_id": self.post_id,
                    "user_id": str(self.client.user_id),
                    "content": text,
                    "created_at": None,
                    "author": None,
                },
            )
            self._count_changed(1)

            def revert() -> None:
                self._comments.apply(ChangeKind.DELETE, {"id": temp_id})
                self._count_changed(-1)

            return revert

        mutation = run_mutation(
            "add comment",
            optimistic=optimistic,
            request=lambda: self.client.add_comment(self.post_id, text),
            on_commit=lambda row: self._comments.swap(temp_id, row),
        )
        return self._settle(mutation, "Comment could not be posted.")

    def edit(self, comment_id: str, content: str) -> Mutation[Any]:
        current = self._comments.get(comment_id)
        if current is None or not self.can_modify(current):
            return self._settle(_refused("edit comment", "Not allowed to edit this comment"), "Comment could not be edited.")
        previous = dict(current)

        def optimistic() -> Callable[[], None]:
            self._comments.apply(ChangeKind.UPDATE, {"id": comment_id, "content": content})
            return lambda: self._comments.apply(ChangeKind.UPDATE, previous)

        mutation = run_mutation(
            "edit comment",
            optimistic=optimistic,
            request=lambda: self.client.update_comment(comment_id, content),
            on_commit=lambda row: self._comments.apply(ChangeKind.UPDATE, row),
        )
        return self._settle(mutation, "Comment could not be edited.")

    def delete(self, comment_id: str) -> Mutation[Any]:
        current = self._comments.get(comment_id)
        if current is None or not self.can_modify(current):
            return self._settle(_refused("delete comment", "Not allowed to delete this comment"), "Comment could not be deleted.")
        previous = dict(current)
        position = self._comments.index_of(comment_id) or 0

        def optimistic() -> Callable[[], None]:
            self._comments.apply(ChangeKind.DELETE, previous)
            self._count_changed(-1)

            def revert() -> None:
                self._comments.insert_at(position, previous)
                self._count_changed(1)

            return revert

        mutation = run_mutation(
            "delete comment",
            optimistic=optimistic,
            request=lambda: self.client.delete_comment(comment_id),
        )
        return self._settle(mutation, "Comment could not be deleted.")


class PostCard:
    """One post with its like toggle and author-only edit/delete.

    Like and comment counts come from the page that loaded the post and are
    only adjusted by this viewer's own actions.
    """

    def __init__(
        self,
        client: SocialClient,
        post: Row,
        *,
        images: SignedUrlResolver | None = None,
        avatars: SignedUrlResolver | None = None,
        on_deleted: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.post = dict(post)
        self.images = images
        self.avatars = avatars
        self.on_deleted = on_deleted
        self.like_count = int(post.get("like_count", 0))
        self.comment_count = int(post.get("comment_count", 0))
        self.liked = bool(post.get("viewer_has_liked", False))
        self.deleted = False
        self.error: str | None = None

    @property
    def post_id(self) -> str:
        return str(self.post["id"])

    @property
    def can_modify(self) -> bool:
        return _same_user(self.post.get("user_id"), self.client.user_id)

    @property
    def can_like(self) -> bool:
        return not self.client.is_guest

    @property
    def image_url(self) -> str | None:
        key = self.post.get("image_key")
        if not key or self.images is None:
            return None
        return self.images.resolve(key)

    @property
    def avatar_url(self) -> str | None:
        if self.avatars is None:
            return None
        author = self.post.get("author") or {}
        return self.avatars.resolve(author.get("avatar_key"))

    def _settle(self, mutation: Mutation[Any], message: str) -> Mutation[Any]:
        self.error = None if mutation.committed else message
        return mutation

    def toggle_like(self) -> Mutation[Any]:
        if not self.can_like:
            return self._settle(_refused("toggle like", GUEST_BLOCK_DETAIL), "Guest users cannot like posts.")
        should_like = not self.liked

        def optimistic() -> Callable[[], None]:
            self.liked = should_like
            self.like_count += 1 if should_like else -1

            def revert() -> None:
                self.liked = not should_like
                self.like_count += -1 if should_like else 1

            return revert

        request = (lambda: self.client.like_post(self.post_id)) if should_like else (lambda: self.client.unlike_post(self.post_id))
        mutation = run_mutation("toggle like", optimistic=optimistic, request=request)
        return self._settle(mutation, "Like could not be updated.")

    def edit(self, content: str) -> Mutation[Any]:
        if not self.can_modify:
            return self._settle(_refused("edit post", "Not allowed to edit this post"), "Post could not be edited.")
        previous = self.post.get("content")

        def optimistic() -> Callable[[], None]:
            self.post["content"] = content

            def revert() -> None:
                self.post["content"] = previous

            return revert

        mutation = run_mutation(
            "edit post",
            optimistic=optimistic,
            request=lambda: self.client.update_post(self.post_id, content),
            on_commit=lambda row: self.post.update(content=row["content"]),
        )
        return self._settle(mutation, "Post could not be edited.")

    def delete(self) -> Mutation[Any]:
        if not self.can_modify:
            return self._settle(_refused("delete post", "Not allowed to delete this post"), "Post could not be deleted.")

        def optimistic() -> Callable[[], None]:
            self.deleted = True

            def revert() -> None:
                self.deleted = False

            return revert

        def committed(_: Any) -> None:
            if self.on_deleted is not None:
                self.on_deleted(self.post_id)

        mutation = run_mutation(
            "delete post",
            optimistic=optimistic,
            request=lambda: self.client.delete_post(self.post_id),
            on_commit=committed,
        )
        return self._settle(mutation, "Post could not be deleted.")

    def _adjust_comment_count(self, delta: int) -> None:
        self.comment_count = max(0, self.comment_count + delta)

    def comments(self) -> CommentThread:
        thread = CommentThread(self.client, self.post_id, on_count_change=self._adjust_comment_count)
        thread.load()
        return thread


class FollowButton:
    """Optimistic follow toggle for one target user."""

    def __init__(
        self,
        client: SocialClient,
        target_id: UUID | str,
        *,
        is_following: bool,
        on_change: Callable[[bool], None] | None = None,
    ) -> None:
        self.client = client
        self.target_id = str(target_id)
        self.is_following = is_following
        self.on_change = on_change
        self.error: str | None = None

    @property
    def enabled(self) -> bool:
        return not self.client.is_guest and not _same_user(self.target_id, self.client.user_id)

    @property
    def label(self) -> str:
        return "Unfollow" if self.is_following else "Follow"

    def _set(self, value: bool) -> None:
        self.is_following = value
        if self.on_change is not None:
            self.on_change(value)

    def toggle(self) -> Mutation[Any]:
        if self.client.is_guest:
            self.error = "Guest users cannot follow other users."
            return _refused("toggle follow", GUEST_BLOCK_DETAIL)
        if not self.enabled:
            self.error = "You cannot follow yourself."
            return _refused("toggle follow", self.error)
        target_state = not self.is_following

        def optimistic() -> Callable[[], None]:
            self._set(target_state)
            return lambda: self._set(not target_state)

        request = (lambda: self.client.follow(self.target_id)) if target_state else (lambda: self.client.unfollow(self.target_id))
        mutation = run_mutation("toggle follow", optimistic=optimistic, request=request)
        self.error = None if mutation.committed else "Follow could not be updated."
        return mutation


class ProfileView:
    """Profile header, follow counts, follow button and the author's posts."""

    def __init__(self, client: SocialClient, display_name: str | None = None) -> None:
        self.client = client
        self.display_name = display_name
        self.profile: dict[str, Any] | None = None
        self.followers_count = 0
        self.following_count = 0
        self.follow_button: FollowButton | None = None
        self.posts: FeedLoader | None = None
        self.not_found = False
        self.error: str | None = None

    @property
    def is_own_profile(self) -> bool:
        return self.profile is not None and _same_user(self.profile.get("id"), self.client.user_id)

    @property
    def can_edit(self) -> bool:
        return self.is_own_profile and not self.client.is_guest

    def _follow_changed(self, following: bool) -> None:
        self.followers_count += 1 if following else -1

    def load(self) -> None:
        self.error = None
        try:
            if self.display_name is None:
                self.profile = self.client.get_own_profile()
            else:
                self.profile = self.client.get_profile(self.display_name)
            stats = self.client.follow_stats(self.profile["id"])
        except NotFoundError:
            logger.info("Profile %s not found", self.display_name)
            self.not_found = True
            return
        except SocialError as exc:
            logger.warning("Loading profile %s failed: %s", self.display_name or "me", exc.detail)
            self.error = "Profile could not be loaded."
            return

        self.followers_count = int(stats["followers_count"])
        self.following_count = int(stats["following_count"])
        if not self.is_own_profile:
            self.follow_button = FollowButton(
                self.client,
                self.profile["id"],
                is_following=bool(stats["is_following"]),
                on_change=self._follow_changed,
            )
        self.posts = FeedLoader(self.client, author_id=self.profile["id"])
        self.posts.load_next()


class ConversationList:
    """Inbox: conversation partners, or a few suggestions when there are none."""

    EMPTY_MESSAGE = "No conversations yet."

    def __init__(self, client: SocialClient) -> None:
        self.client = client
        self.has_conversations = False
        self.users: list[dict[str, Any]] = []

    @property
    def empty_message(self) -> str | None:
        return None if self.has_conversations else self.EMPTY_MESSAGE

    def load(self) -> None:
        payload = self.client.list_conversations()
        self.has_conversations = bool(payload["has_conversations"])
        self.users = list(payload["users"])


__all__ = ["ChatRoom", "CommentThread", "PostCard", "FollowButton", "ProfileView", "ConversationList"]
