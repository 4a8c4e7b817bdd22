"""SQLAlchemy ORM model for direct messages."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from socialhub.database import Base
from .base import created_at_column


class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = created_at_column()

    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_messages")
    receiver = relationship("User", foreign_keys=[receiver_id], back_populates="received_messages")


__all__ = ["Message"]
