"""User operations used by the users router."""

from __future__ import annotations

import uuid

from blogapi.core.errors import ConflictError, ErrorDetail, NotFoundError
from blogapi.models.user import User
from blogapi.repositories.user import UserRepository
from blogapi.schemas.user import UserCreate, UserUpdate


class UserService:
    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository

    async def create(self, payload: UserCreate) -> User:
        email = payload.email.strip().lower()
        await self._ensure_email_free(email)
        return await self.repository.create(email=email, name=payload.name)

    async def list_users(self, *, limit: int = 100, offset: int = 0) -> list[User]:
        return await self.repository.list_active(limit=limit, offset=offset)

    async def count(self) -> int:
        return await self.repository.count()

    async def get(self, user_id: uuid.UUID) -> User:
        user = await self.repository.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update(self, user_id: uuid.UUID, payload: UserUpdate) -> User:
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
            existing = await self.repository.get_by_email(changes["email"])
            if existing is not None and existing.id != user_id:
                raise self._duplicate(changes["email"])
        user = await self.repository.update(user_id, **changes)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def soft_delete(self, user_id: uuid.UUID) -> User:
        user = await self.repository.soft_delete(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _ensure_email_free(self, email: str) -> None:
        if await self.repository.get_by_email(email) is not None:
            raise self._duplicate(email)

    @staticmethod
    def _duplicate(email: str) -> ConflictError:
        return ConflictError(
            "User with this email already exists",
            details=[ErrorDetail(field="email", message=f"{email} is taken", location="body")],
        )


__all__ = ["UserService"]
