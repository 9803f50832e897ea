"""Booking, payment and tracking schemas."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .common import Pagination

RECEIVER_PHONE_PATTERN = r"^[6-9]\d{9}$"
UPI_TXN_PATTERN = r"^[A-Za-z0-9_-]{6,50}$"
MAX_EXPECTED_DAYS = 7


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    COD = "COD"
    UPI = "UPI"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class CreateBookingRequest(BaseModel):
    """Request schema for booking cylinders."""

    payment_method: PaymentMethod = Field(..., description="COD or UPI")
    quantity: int = Field(1, ge=1, le=3, description="Cylinders to book")
    receiver_name: Optional[str] = Field(None, min_length=2, max_length=100, description="Receiver if not the account holder")
    receiver_phone: Optional[str] = Field(None, pattern=RECEIVER_PHONE_PATTERN, description="Receiver phone number")
    expected_date: Optional[date] = Field(None, description="Preferred delivery date, within a week")
    notes: Optional[str] = Field(None, max_length=500, description="Delivery instructions")
    upi_txn_id: Optional[str] = Field(None, pattern=UPI_TXN_PATTERN, description="UPI transaction id, when paid up front")

    @field_validator("expected_date")
    @classmethod
    def validate_expected_date(cls, v: Optional[date]) -> Optional[date]:
        if v is None:
            return v
        today = datetime.utcnow().date()
        if v < today:
            raise ValueError("Expected date cannot be in the past")
        if (v - today).days > MAX_EXPECTED_DAYS:
            raise ValueError(f"Expected date must be within {MAX_EXPECTED_DAYS} days")
        return v


class AdminCreateBookingRequest(CreateBookingRequest):
    """Booking placed by an administrator for a customer."""

    user_id: str = Field(..., description="Account ID of the customer")
    status: BookingStatus = Field(BookingStatus.APPROVED, description="PENDING or APPROVED")

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v: BookingStatus) -> BookingStatus:
        if v not in (BookingStatus.PENDING, BookingStatus.APPROVED):
            raise ValueError("New bookings start as PENDING or APPROVED")
        return v


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500, description="Why the booking is cancelled")


class AdminUpdateBookingRequest(BaseModel):
    """Fields an administrator may edit on a booking."""

    quantity: Optional[int] = Field(None, ge=1, le=3)
    payment_method: Optional[PaymentMethod] = None
    receiver_name: Optional[str] = Field(None, max_length=100)
    receiver_phone: Optional[str] = Field(None, pattern=RECEIVER_PHONE_PATTERN)
    expected_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)
    user_address: Optional[str] = Field(None, max_length=500)


class UpdateBookingStatusRequest(BaseModel):
    """Admin status change."""

    new_status: str = Field(..., description="APPROVED, OUT_FOR_DELIVERY, DELIVERED or CANCELLED")
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class Payment(BaseModel):
    """Payment response schema."""

    id: str = Field(..., description="Unique payment ID")
    booking_id: str = Field(..., description="Associated booking ID")
    amount: int = Field(..., ge=0, description="Amount in whole rupees")
    method: PaymentMethod = Field(..., description="Payment method")
    status: PaymentStatus = Field(..., description="Payment status")
    upi_txn_id: Optional[str] = Field(None, description="UPI transaction reference")
    created_at: datetime = Field(..., description="Payment creation time (ISO 8601)")

    class Config:
        from_attributes = True


class BookingEvent(BaseModel):
    """Booking history entry."""

    id: str
    status: BookingStatus
    title: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AssignmentSummary(BaseModel):
    """Delivery assignment as shown on a booking."""

    id: str
    status: str
    partner_id: str
    partner_name: Optional[str] = None
    partner_phone: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None


class Booking(BaseModel):
    """Booking response schema."""

    id: str = Field(..., description="Unique booking ID")
    user_id: str = Field(..., description="Owner's user ID")
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    user_address: Optional[str] = None
    payment_method: PaymentMethod
    status: BookingStatus
    quantity: int = Field(..., ge=1, le=3)
    receiver_name: Optional[str] = None
    receiver_phone: Optional[str] = None
    requested_at: datetime
    expected_date: Optional[date] = None
    delivery_date: Optional[date] = None
    delivered_at: Optional[datetime] = None
    notes: Optional[str] = None
    payment_status: PaymentStatus = Field(..., description="Status of the latest payment")
    payment_amount: Optional[int] = Field(None, description="Amount of the latest payment")
    created_at: datetime
    updated_at: datetime


class BookingDetail(Booking):
    """Booking with its payments, history and assignment."""

    payments: List[Payment] = Field(default_factory=list)
    events: List[BookingEvent] = Field(default_factory=list)
    assignment: Optional[AssignmentSummary] = None


class BookingList(BaseModel):
    """Paginated bookings."""

    data: List[Booking]
    pagination: Pagination


class TrackingResponse(BaseModel):
    """Booking progress for the customer tracking page."""

    booking_id: str
    status: BookingStatus
    expected_date: Optional[date] = None
    delivery_date: Optional[date] = None
    delivered_at: Optional[datetime] = None
    events: List[BookingEvent]
    assignment: Optional[AssignmentSummary] = None


class ReviewAction(str, Enum):
    CONFIRM = "CONFIRM"
    REJECT = "REJECT"


class ReviewPaymentRequest(BaseModel):
    """Admin decision on a booking's latest UPI payment."""

    action: ReviewAction
    upi_txn_id: Optional[str] = Field(None, max_length=64, description="Transaction id recorded on confirm")
    reason: Optional[str] = Field(None, max_length=500, description="Required when rejecting")


class ConfirmPaymentRequest(BaseModel):
    upi_txn_id: str = Field(..., min_length=6, max_length=64, description="Verified transaction id")


class RejectPaymentRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=500, description="Why the payment was rejected")


class UpdateCodPaymentRequest(BaseModel):
    """Manual edit of a cash-on-delivery payment."""

    amount: Optional[int] = Field(None, ge=0)
    status: Optional[PaymentStatus] = None


class RetryPaymentRequest(BaseModel):
    """Customer resubmits a UPI payment after a failure."""

    booking_id: str = Field(..., description="Booking to pay for")
    upi_txn_id: str = Field(..., pattern=UPI_TXN_PATTERN, description="New UPI transaction id")


class PendingPayment(BaseModel):
    """UPI payment awaiting admin review."""

    payment: Payment
    booking_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    quantity: int
    booking_status: BookingStatus


class PendingPaymentList(BaseModel):
    data: List[PendingPayment]
    pagination: Pagination


class BulkAction(str, Enum):
    APPROVE = "approve"
    ASSIGN_DELIVERY = "assign-delivery"
    CANCEL = "cancel"


class BulkActionRequest(BaseModel):
    action: BulkAction
    booking_ids: List[str] = Field(..., min_length=1, max_length=200)
    partner_id: Optional[str] = Field(None, description="Required for assign-delivery")
    scheduled_date: Optional[date] = Field(None, description="Required for assign-delivery")
    reason: Optional[str] = Field(None, max_length=500)


class BulkActionResult(BaseModel):
    success: bool = True
    action: BulkAction
    updated: int
    errors: dict[str, str] = Field(default_factory=dict, description="Booking id to failure message")


class BookingStats(BaseModel):
    total: int
    pending: int
    approved: int
    out_for_delivery: int
    delivered: int
    cancelled: int
    total_revenue: int = Field(..., description="Sum of successful payments")
    pending_revenue: int = Field(..., description="Sum of pending payments")
    payment_method_distribution: dict[str, int]
