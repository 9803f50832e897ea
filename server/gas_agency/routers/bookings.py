"""Booking router for customer booking operations."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.booking import (
    AssignmentSummary,
    Booking,
    BookingDetail,
    BookingEvent,
    BookingList,
    BookingStatus,
    CancelBookingRequest,
    CreateBookingRequest,
    Payment,
    PaymentMethod,
    TrackingResponse,
)
from ..schemas.common import Pagination
from ..services.booking_service import BookingService
from ..services.lifecycle import display_payment_status
from ..services.notification_service import NotificationService, get_notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

DB_DEPENDENCY = Depends(get_db)
USER_DEPENDENCY = Depends(get_current_user)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


def convert_payment_to_schema(payment_model) -> Payment:
    """Convert payment model to schema."""
    return Payment(
        id=str(payment_model.id),
        booking_id=str(payment_model.booking_id),
        amount=payment_model.amount,
        method=payment_model.method,
        status=payment_model.status,
        upi_txn_id=payment_model.upi_txn_id,
        created_at=payment_model.created_at,
    )


def convert_event_to_schema(event_model) -> BookingEvent:
    return BookingEvent(
        id=str(event_model.id),
        status=event_model.status,
        title=event_model.title,
        description=event_model.description,
        created_at=event_model.created_at,
    )


def convert_assignment_to_summary(assignment_model) -> Optional[AssignmentSummary]:
    if assignment_model is None:
        return None
    partner = assignment_model.partner
    return AssignmentSummary(
        id=str(assignment_model.id),
        status=assignment_model.status,
        partner_id=str(assignment_model.partner_id),
        partner_name=partner.name if partner else None,
        partner_phone=partner.phone if partner else None,
        scheduled_date=assignment_model.scheduled_date,
        scheduled_time=assignment_model.scheduled_time,
    )


def _booking_fields(booking_model) -> dict:
    latest = booking_model.latest_payment
    return dict(
        id=str(booking_model.id),
        user_id=str(booking_model.user_id),
        user_name=booking_model.user_name,
        user_email=booking_model.user_email,
        user_phone=booking_model.user_phone,
        user_address=booking_model.user_address,
        payment_method=booking_model.payment_method,
        status=booking_model.status,
        quantity=booking_model.quantity,
        receiver_name=booking_model.receiver_name,
        receiver_phone=booking_model.receiver_phone,
        requested_at=booking_model.requested_at,
        expected_date=booking_model.expected_date,
        delivery_date=booking_model.delivery_date,
        delivered_at=booking_model.delivered_at,
        notes=booking_model.notes,
        payment_status=display_payment_status(booking_model.status, latest.status if latest else None),
        payment_amount=latest.amount if latest else None,
        created_at=booking_model.created_at,
        updated_at=booking_model.updated_at,
    )


def convert_booking_to_schema(booking_model) -> Booking:
    """Convert booking model to list schema; requires payments to be loaded."""
    return Booking(**_booking_fields(booking_model))


def convert_booking_to_detail(booking_model) -> BookingDetail:
    """Convert booking model to detail schema; requires payments, events and assignment loaded."""
    return BookingDetail(
        **_booking_fields(booking_model),
        payments=[convert_payment_to_schema(p) for p in booking_model.payments],
        events=[convert_event_to_schema(e) for e in booking_model.events],
        assignment=convert_assignment_to_summary(booking_model.assignment),
    )


@router.post("", response_model=BookingDetail, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """
    Book one to three cylinders.

    The quantity is taken from the caller's yearly quota; nothing is written
    when the quota is insufficient.
    """
    booking_service = BookingService(db, notifier)

    try:
        booking = await booking_service.create_booking(user, request)
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "user_pk": str(user.id),
                "quantity": request.quantity,
                "payment_method": request.payment_method.value,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("", response_model=BookingList)
async def list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[BookingStatus] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingList:
    """List bookings newest first; customers see only their own."""
    bookings, total = await BookingService(db, notifier).list_bookings(
        user, page=page, limit=limit, status=status, payment_method=payment_method, search=search
    )
    return BookingList(
        data=[convert_booking_to_schema(b) for b in bookings],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{booking_id}", response_model=BookingDetail)
async def get_booking(
    booking_id: UUID,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking = await BookingService(db, notifier).get_booking_for_user(booking_id, user)
    return convert_booking_to_detail(booking)


@router.post("/{booking_id}/cancel", response_model=BookingDetail)
async def cancel_booking(
    booking_id: UUID,
    request: Optional[CancelBookingRequest] = None,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """Cancel a pending or approved booking and restore the quota."""
    booking_service = BookingService(db, notifier)
    reason = request.reason if request else None

    try:
        booking = await booking_service.cancel_booking(booking_id, user, reason)
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking cancellation",
            extra={"booking_id": str(booking_id), "user_pk": str(user.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/{booking_id}/track", response_model=TrackingResponse)
async def track_booking(
    booking_id: UUID,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> TrackingResponse:
    """Booking history, oldest first, with the delivery assignment."""
    booking = await BookingService(db, notifier).get_booking_for_user(booking_id, user)
    return TrackingResponse(
        booking_id=str(booking.id),
        status=booking.status,
        expected_date=booking.expected_date,
        delivery_date=booking.delivery_date,
        delivered_at=booking.delivered_at,
        events=[convert_event_to_schema(e) for e in booking.events],
        assignment=convert_assignment_to_summary(booking.assignment),
    )
