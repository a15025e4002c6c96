from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from blogapi.core.errors import ConflictError, NotFoundError
from blogapi.schemas.user import UserCreate, UserUpdate
from blogapi.services.user import UserService


def _repository(**overrides: object) -> AsyncMock:
    repository = AsyncMock()
    repository.get_by_email.return_value = None
    for name, value in overrides.items():
        getattr(repository, name).return_value = value
    return repository


@pytest.mark.asyncio
async def test_create_lowercases_email() -> None:
    created = SimpleNamespace(id=uuid.uuid4(), email="ada@example.com")
    repository = _repository(create=created)
    service = UserService(repository)

    result = await service.create(UserCreate(email="Ada@Example.COM", name="Ada"))

    assert result is created
    repository.create.assert_awaited_once_with(email="ada@example.com", name="Ada")


@pytest.mark.asyncio
async def test_create_rejects_taken_email() -> None:
    repository = _repository(get_by_email=SimpleNamespace(id=uuid.uuid4()))
    service = UserService(repository)

    with pytest.raises(ConflictError) as exc_info:
        await service.create(UserCreate(email="ada@example.com"))

    assert exc_info.value.status_code == 409
    assert exc_info.value.details is not None
    assert exc_info.value.details[0].field == "email"
    repository.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_allows_keeping_own_email() -> None:
    user_id = uuid.uuid4()
    updated = SimpleNamespace(id=user_id, email="ada@example.com")
    repository = _repository(get_by_email=SimpleNamespace(id=user_id), update=updated)
    service = UserService(repository)

    result = await service.update(user_id, UserUpdate(email="ADA@example.com"))

    assert result is updated
    repository.update.assert_awaited_once_with(user_id, email="ada@example.com")


@pytest.mark.asyncio
async def test_update_rejects_email_of_another_user() -> None:
    repository = _repository(get_by_email=SimpleNamespace(id=uuid.uuid4()))
    service = UserService(repository)

    with pytest.raises(ConflictError):
        await service.update(uuid.uuid4(), UserUpdate(email="taken@example.com"))


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["get", "soft_delete"])
async def test_missing_user_is_not_found(method: str) -> None:
    repository = _repository(**{method: None})
    service = UserService(repository)

    with pytest.raises(NotFoundError, match="User not found"):
        await getattr(service, method)(uuid.uuid4())
