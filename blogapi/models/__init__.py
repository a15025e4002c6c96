"""ORM models for the resource modules."""

from blogapi.models.base import Base
from blogapi.models.post import Post
from blogapi.models.user import User

__all__ = ["Base", "Post", "User"]
