"""Post repository."""

from __future__ import annotations

from blogapi.models.post import Post
from blogapi.repositories.base import CrudRepository


class PostRepository(CrudRepository[Post]):
    model = Post


__all__ = ["PostRepository"]
