"""Business settings schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

UPI_ID_PATTERN = r"^[A-Za-z0-9_.\-]{2,256}@[a-zA-Z]{2,64}$"


class SettingsResponse(BaseModel):
    price_per_cylinder: int = Field(..., ge=1, description="Cylinder price in whole rupees")
    upi_id: Optional[str] = Field(None, description="UPI id customers pay to")
    yearly_quota: int = Field(..., description="Cylinders allowed per customer per year")
    updated_at: Optional[datetime] = None


class UpdateSettingsRequest(BaseModel):
    price_per_cylinder: Optional[int] = Field(None, ge=1, le=100_000)
    upi_id: Optional[str] = Field(None, pattern=UPI_ID_PATTERN)
