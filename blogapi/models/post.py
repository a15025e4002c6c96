"""Post ORM model."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogapi.models.base import Base, EntityMixin, SoftDeleteMixin


class Post(SoftDeleteMixin, EntityMixin, Base):
    __tablename__ = "posts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    published: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
    )

    author = relationship("User", back_populates="posts")

    __table_args__ = (Index("ix_posts_author_id", "author_id"),)


__all__ = ["Post"]
