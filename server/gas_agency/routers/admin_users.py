"""Admin account management."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_admin
from ..models.user import User
from ..schemas.common import MessageResponse, Pagination
from ..schemas.user import (
    AdminCreateUserRequest,
    AdminUpdateUserRequest,
    UserActionRequest,
    UserList,
    UserProfile,
    UserRole,
    UserStats,
)
from ..services.notification_service import NotificationService, get_notification_service
from ..services.user_service import UserService
from .auth import convert_user_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(require_admin)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


@router.get("", response_model=UserList)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[UserRole] = Query(None),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserList:
    """Search accounts by name, email, user id or phone."""
    users, total = await UserService(db, notifier).list_users(page=page, limit=limit, search=search, role=role)
    return UserList(
        data=[convert_user_to_schema(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=UserProfile, status_code=201)
async def create_user(
    request: AdminCreateUserRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserProfile:
    """Create an unverified account; verification and password setup emails go out."""
    user = await UserService(db, notifier).create_user(request, admin.email)
    return convert_user_to_schema(user)


@router.get("/stats", response_model=UserStats)
async def user_stats(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserStats:
    return UserStats(**await UserService(db, notifier).get_stats())


@router.get("/{user_pk}", response_model=UserProfile)
async def get_user(
    user_pk: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserProfile:
    return convert_user_to_schema(await UserService(db, notifier).get_user_or_raise(user_pk))


@router.put("/{user_pk}", response_model=UserProfile)
async def update_user(
    user_pk: UUID,
    request: AdminUpdateUserRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserProfile:
    """Email and user id are fixed; attempts to change them get 409."""
    user = await UserService(db, notifier).admin_update_user(user_pk, request, admin.email)
    return convert_user_to_schema(user)


@router.delete("/{user_pk}", response_model=MessageResponse)
async def delete_user(
    user_pk: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    await UserService(db, notifier).delete_user(user_pk, admin)
    return MessageResponse(message="User deleted")


@router.post("/{user_pk}/action", response_model=MessageResponse)
async def user_action(
    user_pk: UUID,
    request: UserActionRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    message = await UserService(db, notifier).perform_action(user_pk, request.action, admin.email)
    return MessageResponse(message=message)
