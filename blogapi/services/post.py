"""Post operations used by the posts router."""

from __future__ import annotations

import uuid

from blogapi.core.errors import NotFoundError
from blogapi.models.post import Post
from blogapi.repositories.post import PostRepository
from blogapi.repositories.user import UserRepository
from blogapi.schemas.post import PostCreate


class PostService:
    def __init__(self, repository: PostRepository, users: UserRepository) -> None:
        self.repository = repository
        self.users = users

    async def create(self, payload: PostCreate) -> Post:
        if payload.author_id is not None and await self.users.get(payload.author_id) is None:
            raise NotFoundError("Author not found")
        return await self.repository.create(**payload.model_dump())

    async def list_posts(self, *, limit: int = 100, offset: int = 0) -> list[Post]:
        return await self.repository.list_active(limit=limit, offset=offset)

    async def count(self) -> int:
        return await self.repository.count()

    async def get(self, post_id: uuid.UUID) -> Post:
        post = await self.repository.get(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def soft_delete(self, post_id: uuid.UUID) -> Post:
        post = await self.repository.soft_delete(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post


__all__ = ["PostService"]
