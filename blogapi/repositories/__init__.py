"""Persistence layer for the resource modules."""

from blogapi.repositories.base import CrudRepository
from blogapi.repositories.post import PostRepository
from blogapi.repositories.user import UserRepository

__all__ = ["CrudRepository", "PostRepository", "UserRepository"]
