"""Payment review, COD edits and UPI retries."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus, PaymentMethod
from ..models.payment import Payment, PaymentStatus
from ..models.user import User
from ..schemas.booking import ReviewAction, ReviewPaymentRequest, RetryPaymentRequest, UpdateCodPaymentRequest
from . import lifecycle
from .booking_service import BookingService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

MIN_TXN_ID_LENGTH = 6


class PaymentService:
    """Service for payment operations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier
        self.booking_service = BookingService(db, notifier)

    async def get_payment_or_raise(self, payment_id: UUID) -> Payment:
        payment = await self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(resource_type="payment", resource_id=str(payment_id))
        return payment

    async def review_payment(self, booking_id: UUID, request: ReviewPaymentRequest, actor: str) -> Booking:
        """
        Confirm or reject the booking's latest UPI payment.

        Raises:
            ValidationError: If there is no payment, it is not UPI, or a rejection has no reason
            InvalidTransitionError: If the latest payment is not pending
        """
        booking = await self.booking_service.get_booking_or_raise(booking_id)
        if request.action == ReviewAction.CONFIRM:
            return await self._confirm(booking, request.upi_txn_id, actor)

        if not request.reason or not request.reason.strip():
            raise ValidationError(detail="A reason is required to reject a payment")
        return await self._reject(booking, request.reason.strip(), actor)

    async def confirm_payment(self, payment_id: UUID, upi_txn_id: str, actor: str) -> Booking:
        booking = await self._booking_for_latest_payment(payment_id)
        return await self._confirm(booking, upi_txn_id, actor)

    async def reject_payment(self, payment_id: UUID, reason: str, actor: str) -> Booking:
        booking = await self._booking_for_latest_payment(payment_id)
        return await self._reject(booking, reason, actor)

    async def _booking_for_latest_payment(self, payment_id: UUID) -> Booking:
        payment = await self.get_payment_or_raise(payment_id)
        booking = await self.booking_service.get_booking_or_raise(payment.booking_id)
        if booking.latest_payment is None or booking.latest_payment.id != payment.id:
            raise ValidationError(detail="Only the latest payment of a booking can be reviewed")
        return booking

    def _latest_reviewable(self, booking: Booking) -> Payment:
        latest = booking.latest_payment
        lifecycle.ensure_payment_reviewable(
            latest.status if latest else None,
            latest.method if latest else None,
        )
        return latest

    async def _confirm(self, booking: Booking, upi_txn_id: Optional[str], actor: str) -> Booking:
        payment = self._latest_reviewable(booking)

        txn = (upi_txn_id or "").strip()
        if len(txn) >= MIN_TXN_ID_LENGTH:
            await self.booking_service.ensure_txn_id_unused(txn, exclude_payment_id=payment.id)
            payment.upi_txn_id = txn

        lifecycle.ensure_payment_transition(payment.status, PaymentStatus.SUCCESS)
        payment.status = PaymentStatus.SUCCESS
        description = f"UPI payment of Rs. {payment.amount} confirmed"
        if payment.upi_txn_id:
            description += f" (txn {payment.upi_txn_id})"
        self.booking_service.add_event(booking, "Payment Confirmed", description)
        await self.db.commit()

        metrics_collector.record_payment_review("confirmed")
        logger.info(
            "Payment confirmed",
            extra={"booking_id": str(booking.id), "payment_id": str(payment.id), "actor": actor},
        )

        booking = await self.booking_service.get_booking_or_raise(booking.id)
        await self.notifier.send_payment_confirmed(booking, booking.latest_payment)
        return booking

    async def _reject(self, booking: Booking, reason: str, actor: str) -> Booking:
        payment = self._latest_reviewable(booking)

        lifecycle.ensure_payment_transition(payment.status, PaymentStatus.FAILED)
        payment.status = PaymentStatus.FAILED
        self.booking_service.add_event(booking, "Payment Rejected", reason)
        await self.db.commit()

        metrics_collector.record_payment_review("rejected")
        logger.info(
            "Payment rejected",
            extra={"booking_id": str(booking.id), "payment_id": str(payment.id), "reason": reason, "actor": actor},
        )

        booking = await self.booking_service.get_booking_or_raise(booking.id)
        await self.notifier.send_payment_rejected(booking, reason)
        return booking

    async def list_pending_upi(self, page: int = 1, limit: int = 20) -> tuple[list[Payment], int]:
        """Pending UPI payments, oldest first, with their bookings loaded."""
        filters = (Payment.method == PaymentMethod.UPI, Payment.status == PaymentStatus.PENDING)
        total = (await self.db.execute(
            select(func.count()).select_from(Payment).where(*filters)
        )).scalar_one()

        stmt = (
            select(Payment)
            .options(selectinload(Payment.booking))
            .where(*filters)
            .order_by(Payment.created_at.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        payments = (await self.db.execute(stmt)).scalars().all()
        return list(payments), total

    async def update_cod_payment(self, booking_id: UUID, request: UpdateCodPaymentRequest, actor: str) -> Booking:
        """
        Edit the amount or status of a cash-on-delivery payment.

        Raises:
            ValidationError: If the booking is not COD or has no payment
        """
        booking = await self.booking_service.get_booking_or_raise(booking_id)
        if booking.payment_method != PaymentMethod.COD:
            raise ValidationError(detail="Only COD payments can be updated manually")

        payment = booking.latest_payment
        if payment is None:
            raise ValidationError(detail="No payment found for this booking")

        if request.status is not None:
            lifecycle.ensure_payment_transition(payment.status, request.status)
            payment.status = request.status
        if request.amount is not None:
            payment.amount = request.amount

        self.booking_service.add_event(
            booking,
            "Payment Updated",
            f"COD payment set to Rs. {payment.amount} ({PaymentStatus(payment.status).value})",
        )
        await self.db.commit()

        logger.info(
            "COD payment updated",
            extra={
                "booking_id": str(booking_id),
                "payment_id": str(payment.id),
                "amount": payment.amount,
                "payment_status": PaymentStatus(payment.status).value,
                "actor": actor,
            },
        )
        return await self.booking_service.get_booking_or_raise(booking_id)

    async def retry_upi_payment(self, user: User, request: RetryPaymentRequest) -> Payment:
        """
        Submit a new UPI transaction after the previous one was rejected.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the caller does not own the booking
            ValidationError: If the booking is not UPI, is cancelled, or its last payment did not fail
            DuplicateTransactionError: If the transaction id is already in use
        """
        try:
            booking_id = UUID(request.booking_id)
        except ValueError:
            raise NotFoundError(resource_type="booking", resource_id=request.booking_id)

        booking = await self.booking_service.get_booking_or_raise(booking_id)
        if booking.user_id != user.id:
            raise AuthorizationError(detail="You do not have access to this booking")
        if booking.payment_method != PaymentMethod.UPI:
            raise ValidationError(detail="Only UPI bookings can retry payment")
        if booking.status == BookingStatus.CANCELLED:
            raise ValidationError(detail="Cannot retry payment for a cancelled booking")

        latest = booking.latest_payment
        if latest is None or latest.status != PaymentStatus.FAILED:
            raise ValidationError(detail="Payment retry is only available after a failed payment")

        await self.booking_service.ensure_txn_id_unused(request.upi_txn_id)

        payment = Payment(
            booking_id=booking.id,
            amount=latest.amount,
            method=PaymentMethod.UPI,
            status=PaymentStatus.PENDING,
            upi_txn_id=request.upi_txn_id,
        )
        self.db.add(payment)
        self.booking_service.add_event(
            booking, "Payment Retry", f"New UPI payment submitted (txn {request.upi_txn_id})"
        )
        await self.db.commit()
        await self.db.refresh(payment)

        logger.info(
            "UPI payment retried",
            extra={"booking_id": str(booking.id), "payment_id": str(payment.id), "user_pk": str(user.id)},
        )
        return payment
