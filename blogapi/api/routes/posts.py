"""Post CRUD endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.core.db import get_session
from blogapi.core.responses import api_response
from blogapi.repositories.post import PostRepository
from blogapi.repositories.user import UserRepository
from blogapi.schemas.post import PostCreate, PostRead
from blogapi.services.post import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


async def get_post_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PostService:
    return PostService(PostRepository(session), UserRepository(session))


Service = Annotated[PostService, Depends(get_post_service)]


def _links(request: Request, post_id: UUID) -> dict[str, str]:
    return {"self": str(request.url_for("get_post", post_id=post_id).path)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a post")
async def create_post(request: Request, payload: PostCreate, service: Service) -> JSONResponse:
    post = await service.create(payload)
    return api_response(
        request,
        status.HTTP_201_CREATED,
        "Post created successfully",
        data=PostRead.model_validate(post),
        links=_links(request, post.id),
    )


@router.get("", summary="List posts")
async def list_posts(
    request: Request,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JSONResponse:
    posts = await service.list_posts(limit=limit, offset=offset)
    total = await service.count()
    return api_response(
        request,
        status.HTTP_200_OK,
        "Posts retrieved successfully",
        data=[PostRead.model_validate(post) for post in posts],
        pagination={"limit": limit, "offset": offset, "total": total},
    )


@router.get("/{post_id}", name="get_post", summary="Get a post")
async def get_post(request: Request, post_id: UUID, service: Service) -> JSONResponse:
    post = await service.get(post_id)
    return api_response(
        request,
        status.HTTP_200_OK,
        "Post retrieved successfully",
        data=PostRead.model_validate(post),
        links=_links(request, post.id),
    )


@router.delete("/{post_id}", summary="Soft delete a post")
async def delete_post(request: Request, post_id: UUID, service: Service) -> JSONResponse:
    post = await service.soft_delete(post_id)
    return api_response(
        request,
        status.HTTP_200_OK,
        "Post deleted successfully",
        data=PostRead.model_validate(post),
    )


__all__ = ["get_post_service", "router"]
