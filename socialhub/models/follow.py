"""SQLAlchemy ORM model for follower relationships."""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from socialhub.database import Base
from .base import created_at_column


class Follow(Base):
    __tablename__ = "follows"

    follower_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    following_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = created_at_column()

    follower = relationship("User", foreign_keys=[follower_id], back_populates="following_relations")
    following = relationship("User", foreign_keys=[following_id], back_populates="follower_relations")

    __table_args__ = (CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),)


__all__ = ["Follow"]
