"""User repository."""

from __future__ import annotations

from blogapi.models.user import User
from blogapi.repositories.base import CrudRepository


class UserRepository(CrudRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        return await self.find_one(email=email.strip().lower())


__all__ = ["UserRepository"]
