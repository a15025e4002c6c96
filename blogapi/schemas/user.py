"""Pydantic schemas describing user endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

Email = Annotated[str, Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")]


class UserCreate(BaseModel):
    email: Email
    name: str | None = Field(default=None, max_length=255)


class UserUpdate(BaseModel):
    email: Email | None = None
    name: str | None = Field(default=None, max_length=255)


class UserRead(BaseModel):
    id: UUID
    email: str
    name: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["UserCreate", "UserRead", "UserUpdate"]
