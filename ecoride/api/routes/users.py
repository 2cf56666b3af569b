"""
User endpoints
==============

POST  /api/v1/users                -- register a member (201, 409 duplicate)
GET   /api/v1/users/auth/{subject} -- resolve an identity-provider subject
GET   /api/v1/users/{user_id}      -- fetch a member
PUT   /api/v1/users/{user_id}      -- edit profile fields
PATCH /api/v1/users/{user_id}/role -- change role
"""

from fastapi import APIRouter, Depends, Request

from ecoride.api.dependencies import get_user_service
from ecoride.api.middleware import limiter
from ecoride.api.schemas import (
    RoleChangeRequest,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from ecoride.config import settings
from ecoride.services.users import NewUser, UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    summary="Register a member",
)
@limiter.limit(settings.rate_limit)
async def create_user(
    request: Request,
    body: UserCreateRequest,
    service: UserService = Depends(get_user_service),
):
    return await service.create_user(NewUser(**body.model_dump()))


@router.get(
    "/auth/{subject}",
    response_model=UserResponse,
    summary="Resolve (or provision) the member behind an identity subject",
)
@limiter.limit(settings.rate_limit)
async def resolve_subject(
    request: Request,
    subject: str,
    service: UserService = Depends(get_user_service),
):
    return await service.resolve_subject(subject)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a member")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    service: UserService = Depends(get_user_service),
):
    return await service.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse, summary="Edit profile")
@limiter.limit(settings.rate_limit)
async def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    service: UserService = Depends(get_user_service),
):
    return await service.update_profile(user_id, body.model_dump(exclude_unset=True))


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change a member's role",
)
@limiter.limit(settings.rate_limit)
async def change_role(
    request: Request,
    user_id: int,
    body: RoleChangeRequest,
    service: UserService = Depends(get_user_service),
):
    return await service.change_role(user_id, body.role)
