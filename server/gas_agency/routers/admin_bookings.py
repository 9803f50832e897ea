"""Admin booking management: status changes, delivery assignment and payment review."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_admin
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.booking import (
    AdminCreateBookingRequest,
    AdminUpdateBookingRequest,
    BookingDetail,
    BookingEvent,
    BookingStats,
    BulkActionRequest,
    BulkActionResult,
    ConfirmPaymentRequest,
    PendingPayment,
    PendingPaymentList,
    RejectPaymentRequest,
    ReviewPaymentRequest,
    UpdateBookingStatusRequest,
    UpdateCodPaymentRequest,
)
from ..schemas.common import Pagination
from ..schemas.delivery import AssignDeliveryRequest, UpdateDeliveryStatusRequest
from ..services.booking_service import BookingService
from ..services.export_service import ExportService
from ..services.notification_service import NotificationService, get_notification_service
from ..services.payment_service import PaymentService
from .bookings import convert_booking_to_detail, convert_event_to_schema, convert_payment_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/bookings", tags=["admin-bookings"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(require_admin)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


@router.post("", response_model=BookingDetail, status_code=201)
async def create_booking_for_user(
    request: AdminCreateBookingRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """Book for a customer against their quota; approved unless status PENDING is asked for."""
    try:
        booking = await BookingService(db, notifier).admin_create_booking(request, admin.email)
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in admin booking creation",
            extra={"user_pk": request.user_id, "quantity": request.quantity, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/stats", response_model=BookingStats)
async def booking_stats(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingStats:
    """Counts per status, revenue and payment-method split."""
    return BookingStats(**await BookingService(db, notifier).get_stats())


@router.get("/analytics/export")
async def export_bookings(
    range_key: str = Query("30d", alias="range", pattern=r"^(7d|30d|90d|1y)$"),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> Response:
    content = await ExportService(db).bookings_csv(range_key)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="bookings_{range_key}.csv"'},
    )


@router.get("/review-payments", response_model=PendingPaymentList)
async def pending_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> PendingPaymentList:
    """UPI payments waiting for review, oldest first."""
    payments, total = await PaymentService(db, notifier).list_pending_upi(page=page, limit=limit)
    return PendingPaymentList(
        data=[
            PendingPayment(
                payment=convert_payment_to_schema(p),
                booking_id=str(p.booking_id),
                user_name=p.booking.user_name,
                user_email=p.booking.user_email,
                quantity=p.booking.quantity,
                booking_status=p.booking.status,
            )
            for p in payments
        ],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("/review-payments/{payment_id}/confirm", response_model=BookingDetail)
async def confirm_payment(
    payment_id: UUID,
    request: ConfirmPaymentRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking = await PaymentService(db, notifier).confirm_payment(payment_id, request.upi_txn_id, admin.email)
    return convert_booking_to_detail(booking)


@router.post("/review-payments/{payment_id}/reject", response_model=BookingDetail)
async def reject_payment(
    payment_id: UUID,
    request: RejectPaymentRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking = await PaymentService(db, notifier).reject_payment(payment_id, request.reason, admin.email)
    return convert_booking_to_detail(booking)


@router.post("/bulk-action", response_model=BulkActionResult)
async def bulk_action(
    request: BulkActionRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BulkActionResult:
    """Approve, assign or cancel many bookings; failures are reported per booking."""
    booking_service = BookingService(db, notifier)

    try:
        updated, errors = await booking_service.bulk_action(request, admin.email)
        return BulkActionResult(action=request.action, updated=updated, errors=errors)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in bulk booking action",
            extra={"action": request.action.value, "count": len(request.booking_ids), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.put("/{booking_id}", response_model=BookingDetail)
async def update_booking(
    booking_id: UUID,
    request: AdminUpdateBookingRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking = await BookingService(db, notifier).admin_update_booking(booking_id, request, admin.email)
    return convert_booking_to_detail(booking)


@router.put("/{booking_id}/status", response_model=BookingDetail)
async def update_booking_status(
    booking_id: UUID,
    request: UpdateBookingStatusRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """
    Move a booking through its lifecycle.

    OUT_FOR_DELIVERY and DELIVERED need a delivery assignment; DELIVERED
    also emails the invoice.
    """
    booking_service = BookingService(db, notifier)

    try:
        booking = await booking_service.update_status(
            booking_id,
            request.new_status,
            admin.email,
            cancellation_reason=request.cancellation_reason,
        )
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking status update",
            extra={"booking_id": str(booking_id), "new_status": request.new_status, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/{booking_id}/assign-delivery", response_model=BookingDetail)
async def assign_delivery(
    booking_id: UUID,
    request: AssignDeliveryRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking_service = BookingService(db, notifier)

    try:
        booking = await booking_service.assign_delivery(booking_id, request, admin.email)
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in delivery assignment",
            extra={"booking_id": str(booking_id), "partner_id": request.partner_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.put("/{booking_id}/delivery/status", response_model=BookingDetail)
async def update_delivery_status(
    booking_id: UUID,
    request: UpdateDeliveryStatusRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """Advance the delivery; the booking status follows."""
    booking_service = BookingService(db, notifier)

    try:
        booking = await booking_service.update_delivery_status(booking_id, request, admin.email)
        return convert_booking_to_detail(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in delivery status update",
            extra={"booking_id": str(booking_id), "new_status": request.new_status.value, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/{booking_id}/payments/review", response_model=BookingDetail)
async def review_payment(
    booking_id: UUID,
    request: ReviewPaymentRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    """Confirm or reject the latest UPI payment."""
    booking = await PaymentService(db, notifier).review_payment(booking_id, request, admin.email)
    return convert_booking_to_detail(booking)


@router.put("/{booking_id}/payments/cod", response_model=BookingDetail)
async def update_cod_payment(
    booking_id: UUID,
    request: UpdateCodPaymentRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> BookingDetail:
    booking = await PaymentService(db, notifier).update_cod_payment(booking_id, request, admin.email)
    return convert_booking_to_detail(booking)


@router.get("/{booking_id}/events", response_model=List[BookingEvent])
async def booking_events(
    booking_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> List[BookingEvent]:
    booking = await BookingService(db, notifier).get_booking_or_raise(booking_id)
    return [convert_event_to_schema(e) for e in booking.events]


@router.get("/{booking_id}/invoice")
async def download_invoice(
    booking_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> Response:
    """PDF invoice of a delivered booking."""
    booking_service = BookingService(db, notifier)
    booking = await booking_service.get_booking_or_raise(booking_id)
    invoice_number, pdf = await booking_service.build_invoice(booking)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice_number}.pdf"'},
    )
