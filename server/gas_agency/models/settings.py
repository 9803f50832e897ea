"""System settings model definition."""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow

DEFAULT_SETTINGS_ID = "default"


class SystemSetting(Base):
    """Admin-editable business settings, stored as a single row."""

    __tablename__ = "system_settings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=DEFAULT_SETTINGS_ID)
    upi_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    price_per_cylinder: Mapped[int] = mapped_column(Integer, nullable=False, default=1100)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("price_per_cylinder > 0", name="ck_settings_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<SystemSetting(upi_id='{self.upi_id}', price_per_cylinder={self.price_per_cylinder})>"
