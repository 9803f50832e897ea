"""Inventory-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_ADJUSTMENT = 100_000


class AdjustmentType(str, Enum):
    RECEIVE = "RECEIVE"
    ISSUE = "ISSUE"
    DAMAGE = "DAMAGE"
    AUDIT = "AUDIT"
    CORRECTION = "CORRECTION"


class BatchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DEPLETED = "DEPLETED"
    EXPIRED = "EXPIRED"


class AdjustStockRequest(BaseModel):
    """Request schema for adjusting cylinder stock."""

    delta: int = Field(..., ge=-MAX_ADJUSTMENT, le=MAX_ADJUSTMENT, description="Stock change (positive or negative)")
    reason: str = Field(..., min_length=1, max_length=500, description="Reason for adjustment")
    type: Optional[AdjustmentType] = Field(None, description="Defaults to RECEIVE or ISSUE from the sign")
    supplier: Optional[str] = Field(None, max_length=200, description="Creates a batch when receiving stock")
    invoice_no: Optional[str] = Field(None, max_length=100)

    @field_validator("delta")
    @classmethod
    def delta_nonzero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Delta must not be zero")
        return v


class StockAdjustment(BaseModel):
    """Stock adjustment response schema."""

    id: str = Field(..., description="Unique adjustment ID")
    delta: int = Field(..., description="Stock change (positive or negative)")
    reason: str = Field(..., description="Reason for adjustment")
    type: AdjustmentType
    actor: Optional[str] = Field(None, description="Admin who made the adjustment")
    total_before: int
    total_after: int
    batch_id: Optional[str] = None
    booking_id: Optional[str] = None
    created_at: datetime = Field(..., description="Adjustment time (ISO 8601)")


class StockSummary(BaseModel):
    total_available: int = Field(..., ge=0)
    updated_at: datetime
    recent_adjustments: List[StockAdjustment]


class CreateBatchRequest(BaseModel):
    supplier: str = Field(..., min_length=1, max_length=200)
    invoice_no: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(..., ge=1, le=MAX_ADJUSTMENT)
    received_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class UpdateBatchRequest(BaseModel):
    supplier: Optional[str] = Field(None, min_length=1, max_length=200)
    invoice_no: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    status: Optional[BatchStatus] = None


class CylinderBatch(BaseModel):
    id: str
    supplier: str
    invoice_no: Optional[str] = None
    quantity: int
    received_at: datetime
    notes: Optional[str] = None
    status: BatchStatus
    created_at: datetime


class AdjustStockResponse(BaseModel):
    adjustment: StockAdjustment
    total_available: int
    batch: Optional[CylinderBatch] = None
