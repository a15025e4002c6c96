"""Router aggregations for public API endpoints."""

from fastapi import APIRouter

from blogapi.api.routes import health, posts, users

root_router = APIRouter()
root_router.include_router(health.router)

api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(posts.router)

__all__ = ["api_router", "root_router"]
