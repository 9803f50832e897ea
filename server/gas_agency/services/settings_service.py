"""Business settings stored in the singleton settings row."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings as app_settings
from ..models.settings import DEFAULT_SETTINGS_ID, SystemSetting
from ..schemas.settings import UpdateSettingsRequest

logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and updates the cylinder price and payee UPI id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settings(self) -> SystemSetting:
        """Return the settings row, creating it from configuration on first access."""
        result = await self.db.execute(select(SystemSetting).where(SystemSetting.id == DEFAULT_SETTINGS_ID))
        row = result.scalar_one_or_none()
        if row is None:
            row = SystemSetting(
                id=DEFAULT_SETTINGS_ID,
                upi_id=app_settings.admin_upi_id,
                price_per_cylinder=app_settings.price_per_cylinder,
            )
            self.db.add(row)
            await self.db.flush()
        return row

    async def get_price(self) -> int:
        return (await self.get_settings()).price_per_cylinder

    async def update_settings(self, request: UpdateSettingsRequest, actor: str) -> SystemSetting:
        row = await self.get_settings()
        if request.price_per_cylinder is not None:
            row.price_per_cylinder = request.price_per_cylinder
        if request.upi_id is not None:
            row.upi_id = request.upi_id
        await self.db.commit()
        await self.db.refresh(row)

        logger.info(
            "Settings updated",
            extra={"price_per_cylinder": row.price_per_cylinder, "upi_id": row.upi_id, "actor": actor},
        )
        return row
