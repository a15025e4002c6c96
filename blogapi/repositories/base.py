"""Generic CRUD repository over an AsyncSession."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar, cast

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class CrudRepository(Generic[ModelT]):
    """Create/read/update/delete helpers shared by resource repositories.

    Subclasses set ``model``. Models using ``SoftDeleteMixin`` are filtered
    to active rows by the read helpers.
    """

    model: ClassVar[type[Any]]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, instance: ModelT) -> ModelT:
        """Add model to session handling async mocks in tests."""
        add_result = cast(object, self.session.add(instance))
        if isinstance(add_result, Awaitable):
            await add_result
        await self.session.flush()
        return instance

    async def create(self, **data: Any) -> ModelT:
        instance = cast(ModelT, self.model(**data))
        await self.add(instance)
        await self.session.refresh(instance)
        return instance

    async def get(self, entity_id: uuid.UUID) -> ModelT | None:
        stmt = self._active(select(self.model).where(self.model.id == entity_id))
        result = await self.session.execute(stmt)
        return cast(ModelT | None, result.scalar_one_or_none())

    async def find_one(self, **criteria: Any) -> ModelT | None:
        stmt = self._active(select(self.model).filter_by(**criteria)).limit(1)
        result = await self.session.execute(stmt)
        return cast(ModelT | None, result.scalar_one_or_none())

    async def list_active(self, *, limit: int = 100, offset: int = 0, **filters: Any) -> list[ModelT]:
        stmt = (
            self._active(select(self.model).filter_by(**filters))
            .order_by(self.model.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return cast(list[ModelT], list(result.scalars()))

    async def count(self, **filters: Any) -> int:
        stmt = self._active(select(func.count()).select_from(self.model).filter_by(**filters))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def update(self, entity_id: uuid.UUID, **data: Any) -> ModelT | None:
        instance = await self.get(entity_id)
        if instance is None:
            return None
        for key, value in data.items():
            setattr(instance, key, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, entity_id: uuid.UUID) -> ModelT | None:
        instance = await self.get(entity_id)
        if instance is None:
            return None
        await self.session.delete(instance)
        await self.session.flush()
        return instance

    async def soft_delete(self, entity_id: uuid.UUID) -> ModelT | None:
        return await self.update(entity_id, deleted=True, deleted_at=datetime.now(tz=timezone.utc))

    def _active(self, stmt: Select[Any]) -> Select[Any]:
        if hasattr(self.model, "deleted"):
            return stmt.where(self.model.deleted.is_(False))
        return stmt


__all__ = ["CrudRepository", "ModelT"]
