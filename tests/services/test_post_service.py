from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from blogapi.core.errors import NotFoundError
from blogapi.schemas.post import PostCreate
from blogapi.services.post import PostService


@pytest.mark.asyncio
async def test_create_checks_author_exists() -> None:
    posts = AsyncMock()
    users = AsyncMock()
    users.get.return_value = None
    service = PostService(posts, users)

    with pytest.raises(NotFoundError, match="Author not found"):
        await service.create(PostCreate(title="Hello", author_id=uuid.uuid4()))

    posts.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_without_author_skips_lookup() -> None:
    created = SimpleNamespace(id=uuid.uuid4())
    posts = AsyncMock()
    posts.create.return_value = created
    users = AsyncMock()
    service = PostService(posts, users)

    result = await service.create(PostCreate(title="Hello"))

    assert result is created
    users.get.assert_not_awaited()
    posts.create.assert_awaited_once_with(
        title="Hello", content=None, published=False, author_id=None
    )


@pytest.mark.asyncio
async def test_get_missing_post_is_not_found() -> None:
    posts = AsyncMock()
    posts.get.return_value = None
    service = PostService(posts, AsyncMock())

    with pytest.raises(NotFoundError) as exc_info:
        await service.get(uuid.uuid4())

    assert exc_info.value.message == "Post not found"
    assert exc_info.value.status_code == 404
