"""
Admin / observability endpoints
===============================

GET /api/v1/admin/users                 -- every member account
PUT /api/v1/admin/users/{user_id}/suspend -- suspend a member (admin only)
GET /api/v1/admin/health                -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from ecoride.api.dependencies import get_user_service
from ecoride.api.middleware import limiter
from ecoride.api.schemas import HealthResponse, SuspendRequest, UserResponse
from ecoride.config import settings
from ecoride.services.users import UserService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="List all members",
)
@limiter.limit(settings.rate_limit)
async def list_users(
    request: Request,
    service: UserService = Depends(get_user_service),
):
    return await service.list_users()


@router.put(
    "/users/{user_id}/suspend",
    response_model=UserResponse,
    summary="Suspend a member",
    description="Suspended members can no longer publish, book or rate.",
)
@limiter.limit(settings.rate_limit)
async def suspend_user(
    request: Request,
    user_id: int,
    body: SuspendRequest,
    service: UserService = Depends(get_user_service),
):
    return await service.suspend_user(user_id, body.admin_id)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
