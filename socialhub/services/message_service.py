"""Direct messaging between pairs of users."""
from __future__ import annotations

import logging
from typing import Tuple
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import CONVERSATION_SUGGESTION_LIMIT
from ..errors import NotFoundError, PermissionDeniedError, QueryError, ValidationError
from ..models import Message, User

logger = logging.getLogger(__name__)


def _pair_clause(first_id: UUID, second_id: UUID):
    return or_(
        and_(Message.sender_id == first_id, Message.receiver_id == second_id),
        and_(Message.sender_id == second_id, Message.receiver_id == first_id),
    )


def _clean_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    return text


def _get_own_message(db: Session, *, message_id: UUID, requester: User) -> Message:
    message = db.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != requester.id:
        raise PermissionDeniedError("You can only change your own messages")
    return message


def _commit(db: Session, failure_detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(failure_detail)
        raise QueryError(failure_detail) from exc


def send_message(db: Session, *, sender: User, receiver_id: UUID, content: str) -> Message:
    """Persist a message from ``sender`` to ``receiver_id``."""

    text = _clean_content(content)
    if receiver_id == sender.id:
        raise ValidationError("Cannot message yourself")
    if db.get(User, receiver_id) is None:
        raise NotFoundError("User not found")

    message = Message(sender_id=sender.id, receiver_id=receiver_id, content=text)
    db.add(message)
    _commit(db, "Error sending message")
    db.refresh(message)
    return message


def update_message(db: Session, *, message_id: UUID, requester: User, content: str) -> Message:
    message = _get_own_message(db, message_id=message_id, requester=requester)
    message.content = _clean_content(content)
    _commit(db, "Error updating message")
    db.refresh(message)
    return message


def delete_message(db: Session, *, message_id: UUID, requester: User) -> Message:
    message = _get_own_message(db, message_id=message_id, requester=requester)
    db.delete(message)
    _commit(db, "Error deleting message")
    return message


def list_conversation(db: Session, *, user_id: UUID, peer_id: UUID) -> list[Message]:
    """Every message exchanged by the unordered pair, oldest first."""

    statement = (
        select(Message)
        .where(_pair_clause(user_id, peer_id))
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(db.scalars(statement))


def list_conversation_partners(db: Session, *, user: User) -> Tuple[bool, list[User]]:
    """Return ``(has_conversations, users)``.

    With at least one message the users are the distinct partners; otherwise a
    few other accounts are suggested so the inbox is never a dead end.
    """

    rows = db.execute(
        select(Message.sender_id, Message.receiver_id).where(
            or_(Message.sender_id == user.id, Message.receiver_id == user.id)
        )
    ).all()

    if not rows:
        suggestions = db.scalars(
            select(User)
            .where(User.id != user.id)
            .order_by(User.created_at.asc())
            .limit(CONVERSATION_SUGGESTION_LIMIT)
        )
        return False, list(suggestions)

    partner_ids = {uid for row in rows for uid in row}
    partner_ids.discard(user.id)
    if not partner_ids:
        return True, []
    partners = db.scalars(select(User).where(User.id.in_(partner_ids)).order_by(User.display_name.asc()))
    return True, list(partners)


__all__ = [
    "send_message",
    "update_message",
    "delete_message",
    "list_conversation",
    "list_conversation_partners",
]
