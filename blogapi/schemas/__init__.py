"""Request and response schemas."""

from blogapi.schemas.post import PostCreate, PostRead
from blogapi.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = ["PostCreate", "PostRead", "UserCreate", "UserRead", "UserUpdate"]
