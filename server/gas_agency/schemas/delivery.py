"""Delivery partner and assignment schemas."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import Pagination


class AssignmentStatus(str, Enum):
    """Delivery assignment status enumeration."""
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class CreatePartnerRequest(BaseModel):
    """Request schema for adding a delivery partner."""

    name: str = Field(..., min_length=2, max_length=100, description="Partner name")
    phone: str = Field(..., min_length=6, max_length=20, description="Contact phone")
    email: Optional[str] = Field(None, max_length=255)
    vehicle_number: Optional[str] = Field(None, max_length=50)
    service_area: Optional[str] = Field(None, max_length=200)
    capacity_per_day: int = Field(20, ge=1, le=500, description="Deliveries per day")
    is_active: bool = Field(True)


class UpdatePartnerRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=6, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    vehicle_number: Optional[str] = Field(None, max_length=50)
    service_area: Optional[str] = Field(None, max_length=200)
    capacity_per_day: Optional[int] = Field(None, ge=1, le=500)
    is_active: Optional[bool] = None


class PartnerStats(BaseModel):
    total_assignments: int = 0
    active_assignments: int = 0
    delivered: int = 0
    failed: int = 0


class DeliveryPartner(BaseModel):
    """Delivery partner response schema."""

    id: str
    name: str
    phone: str
    email: Optional[str] = None
    vehicle_number: Optional[str] = None
    service_area: Optional[str] = None
    capacity_per_day: int
    is_active: bool
    created_at: datetime
    stats: Optional[PartnerStats] = None


class PartnerList(BaseModel):
    data: List[DeliveryPartner]
    pagination: Pagination


class AssignDeliveryRequest(BaseModel):
    """Assign an approved booking to a partner."""

    partner_id: str = Field(..., description="Delivery partner ID")
    scheduled_date: date = Field(..., description="Planned delivery date")
    scheduled_time: Optional[str] = Field(None, max_length=20, description="Time slot, e.g. 10:00-12:00")
    priority: str = Field("normal", pattern=r"^(low|normal|high|urgent)$")
    notes: Optional[str] = Field(None, max_length=500)


class UpdateDeliveryStatusRequest(BaseModel):
    new_status: AssignmentStatus
    notes: Optional[str] = Field(None, max_length=500)


class DeliveryAssignment(BaseModel):
    """Delivery assignment response schema."""

    id: str
    booking_id: str
    partner_id: str
    partner_name: Optional[str] = None
    status: AssignmentStatus
    notes: Optional[str] = None
    priority: str
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    assigned_at: datetime
    updated_at: datetime
    # Booking context for delivery lists
    customer_name: Optional[str] = None
    delivery_address: Optional[str] = None
    quantity: Optional[int] = None


class AssignmentList(BaseModel):
    data: List[DeliveryAssignment]
    pagination: Pagination
