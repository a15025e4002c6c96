"""Pydantic schemas describing post endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str | None = None
    published: bool = False
    author_id: UUID | None = None


class PostRead(BaseModel):
    id: UUID
    title: str
    content: str | None
    published: bool
    author_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["PostCreate", "PostRead"]
