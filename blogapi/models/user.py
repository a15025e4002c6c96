"""User ORM model."""

from __future__ import annotations

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogapi.models.base import Base, EntityMixin, SoftDeleteMixin


class User(SoftDeleteMixin, EntityMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))

    posts = relationship("Post", back_populates="author")

    __table_args__ = (
        Index(
            "ux_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted = FALSE"),
            sqlite_where=text("deleted = 0"),
        ),
    )


__all__ = ["User"]
