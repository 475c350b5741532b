from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.bitsa.models import Base, new_id

if TYPE_CHECKING:
    from app.bitsa.models import User


class Discussion(Base):
    __tablename__ = "discussions"
    __table_args__ = (Index("idx_discussions_created_at", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)  # optional data: URL attachment
    author_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    author: Mapped["User"] = relationship("User", lazy="selectin")
    replies: Mapped[list["DiscussionReply"]] = relationship(
        "DiscussionReply",
        back_populates="discussion",
        cascade="all, delete-orphan",
        order_by="DiscussionReply.created_at",
    )


class DiscussionReply(Base):
    __tablename__ = "discussion_replies"
    __table_args__ = (Index("idx_discussion_replies_discussion", "discussion_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    discussion_id: Mapped[str] = mapped_column(ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    discussion: Mapped[Discussion] = relationship("Discussion", back_populates="replies")
    author: Mapped["User"] = relationship("User", lazy="selectin")
