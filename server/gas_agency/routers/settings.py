"""Business settings: cylinder price and payee UPI id."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings as app_settings
from ..core.database import get_db
from ..core.dependencies import require_admin
from ..models.user import User
from ..schemas.settings import SettingsResponse, UpdateSettingsRequest
from ..services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(require_admin)


def convert_settings_to_schema(settings_model) -> SettingsResponse:
    return SettingsResponse(
        price_per_cylinder=settings_model.price_per_cylinder,
        upi_id=settings_model.upi_id,
        yearly_quota=app_settings.yearly_quota,
        updated_at=settings_model.updated_at,
    )


@router.get("", response_model=SettingsResponse)
async def get_settings(db: AsyncSession = DB_DEPENDENCY) -> SettingsResponse:
    """Public: the booking page shows the price and where to pay."""
    row = await SettingsService(db).get_settings()
    await db.commit()
    return convert_settings_to_schema(row)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    request: UpdateSettingsRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> SettingsResponse:
    row = await SettingsService(db).update_settings(request, admin.email)
    return convert_settings_to_schema(row)
