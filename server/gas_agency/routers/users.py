"""Profile and quota endpoints for the signed-in user."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user
from ..models.user import User
from ..schemas.user import QuotaResponse, UpdateProfileRequest, UserProfile
from ..services.notification_service import NotificationService, get_notification_service
from ..services.user_service import UserService
from .auth import convert_user_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])

DB_DEPENDENCY = Depends(get_db)
USER_DEPENDENCY = Depends(get_current_user)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


@router.get("/profile", response_model=UserProfile)
async def get_profile(user: User = USER_DEPENDENCY) -> UserProfile:
    return convert_user_to_schema(user)


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    request: UpdateProfileRequest,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserProfile:
    updated = await UserService(db, notifier).update_profile(user, request)
    return convert_user_to_schema(updated)


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> QuotaResponse:
    """Cylinders left this year and how many were booked."""
    return QuotaResponse(**await UserService(db, notifier).get_quota(user))
