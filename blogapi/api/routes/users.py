"""User CRUD endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.core.db import get_session
from blogapi.core.responses import api_response
from blogapi.repositories.user import UserRepository
from blogapi.schemas.user import UserCreate, UserRead, UserUpdate
from blogapi.services.user import UserService

router = APIRouter(prefix="/users", tags=["users"])


async def get_user_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> UserService:
    return UserService(UserRepository(session))


Service = Annotated[UserService, Depends(get_user_service)]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a user")
async def create_user(request: Request, payload: UserCreate, service: Service) -> JSONResponse:
    user = await service.create(payload)
    return api_response(
        request,
        status.HTTP_201_CREATED,
        "User created successfully",
        data=UserRead.model_validate(user),
    )


@router.get("", summary="List users")
async def list_users(
    request: Request,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JSONResponse:
    users = await service.list_users(limit=limit, offset=offset)
    total = await service.count()
    return api_response(
        request,
        status.HTTP_200_OK,
        "Users retrieved successfully",
        data=[UserRead.model_validate(user) for user in users],
        pagination={"limit": limit, "offset": offset, "total": total},
    )


@router.get("/{user_id}", summary="Get a user")
async def get_user(request: Request, user_id: UUID, service: Service) -> JSONResponse:
    user = await service.get(user_id)
    return api_response(
        request,
        status.HTTP_200_OK,
        "User retrieved successfully",
        data=UserRead.model_validate(user),
    )


@router.patch("/{user_id}", summary="Update a user")
async def update_user(
    request: Request,
    user_id: UUID,
    payload: UserUpdate,
    service: Service,
) -> JSONResponse:
    user = await service.update(user_id, payload)
    return api_response(
        request,
        status.HTTP_200_OK,
        "User updated successfully",
        data=UserRead.model_validate(user),
    )


@router.delete("/{user_id}", summary="Soft delete a user")
async def delete_user(request: Request, user_id: UUID, service: Service) -> JSONResponse:
    user = await service.soft_delete(user_id)
    return api_response(
        request,
        status.HTTP_200_OK,
        "User deleted successfully",
        data=UserRead.model_validate(user),
    )


__all__ = ["get_user_service", "router"]
