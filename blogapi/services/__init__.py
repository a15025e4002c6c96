"""Thin service layer over the repositories."""

from blogapi.services.post import PostService
from blogapi.services.user import UserService

__all__ = ["PostService", "UserService"]
