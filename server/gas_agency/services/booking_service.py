"""Booking service for business logic operations."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientQuotaError,
    NotFoundError,
    ProblemDetailsException,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingEvent, BookingStatus, PaymentMethod
from ..models.delivery import AssignmentStatus, DeliveryAssignment
from ..models.payment import Payment, PaymentStatus
from ..models.user import User
from ..schemas.booking import (
    AdminCreateBookingRequest,
    AdminUpdateBookingRequest,
    BulkAction,
    BulkActionRequest,
    CreateBookingRequest,
)
from ..schemas.delivery import AssignDeliveryRequest, UpdateDeliveryStatusRequest
from . import lifecycle
from .delivery_service import DeliveryService
from .invoice_service import compute_invoice_totals, render_invoice_pdf
from .notification_service import NotificationService
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

BOOKING_LOAD_OPTIONS = (
    selectinload(Booking.payments),
    selectinload(Booking.events),
    selectinload(Booking.assignment).selectinload(DeliveryAssignment.partner),
)

STATUS_EVENT_TITLES = {
    BookingStatus.APPROVED: "Booking Approved",
    BookingStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    BookingStatus.DELIVERED: "Delivered",
    BookingStatus.CANCELLED: "Booking Cancelled",
}

DELIVERY_EVENT_TITLES = {
    AssignmentStatus.PICKED_UP: "Picked Up",
    AssignmentStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    AssignmentStatus.DELIVERED: "Delivered",
    AssignmentStatus.FAILED: "Delivery Failed",
}

# Payments in these states hold their UPI transaction id
ACTIVE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.SUCCESS)


class DuplicateTransactionError(ConflictError):
    """Exception when a UPI transaction id is already attached to a live payment."""

    def __init__(self, upi_txn_id: str):
        super().__init__(
            detail="This UPI transaction ID has already been used",
            conflicting_resource={"upi_txn_id": upi_txn_id},
        )
        self.problem_details.update({"code": "DUPLICATE_TRANSACTION", "retryable": False})


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier
        self.settings_service = SettingsService(db)
        self.delivery_service = DeliveryService(db)

    # Loading

    async def get_booking_or_raise(self, booking_id: UUID) -> Booking:
        """
        Load a booking with payments, events and assignment.

        Raises:
            NotFoundError: If booking not found
        """
        stmt = (
            select(Booking)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()
        if booking is None:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def get_booking_for_user(self, booking_id: UUID, user: User) -> Booking:
        """Load a booking the caller owns; admins can load any booking."""
        booking = await self.get_booking_or_raise(booking_id)
        if not user.is_admin and booking.user_id != user.id:
            logger.warning(
                "Booking access denied",
                extra={"booking_id": str(booking_id), "user_pk": str(user.id)},
            )
            raise AuthorizationError(detail="You do not have access to this booking")
        return booking

    async def _lock_user(self, user_id: UUID) -> User:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = (await self.db.execute(stmt)).scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource_type="user", resource_id=str(user_id))
        return user

    async def ensure_txn_id_unused(self, upi_txn_id: str, exclude_payment_id: Optional[UUID] = None) -> None:
        """
        Raises:
            DuplicateTransactionError: If a pending or successful payment already carries the id
        """
        stmt = select(Payment.id).where(
            Payment.upi_txn_id == upi_txn_id,
            Payment.status.in_(ACTIVE_PAYMENT_STATUSES),
        )
        if exclude_payment_id is not None:
            stmt = stmt.where(Payment.id != exclude_payment_id)
        if (await self.db.execute(stmt.limit(1))).first() is not None:
            logger.warning("Duplicate UPI transaction id", extra={"upi_txn_id": upi_txn_id})
            raise DuplicateTransactionError(upi_txn_id)

    def add_event(
        self,
        booking: Booking,
        title: str,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> BookingEvent:
        """Append a history entry carrying the booking's current status."""
        event = BookingEvent(
            booking_id=booking.id,
            status=booking.status,
            title=title,
            description=description,
            created_at=created_at or datetime.utcnow(),
        )
        self.db.add(event)
        return event

    # Customer operations

    async def create_booking(self, user: User, request: CreateBookingRequest) -> Booking:
        """
        Book cylinders against the caller's yearly quota.

        Quota check, quota decrement, booking, events and payment are
        written in a single transaction.

        Args:
            user: Booking customer
            request: Booking creation request

        Returns:
            Created booking with payments and events loaded

        Raises:
            InsufficientQuotaError: If the quantity exceeds the remaining quota
            DuplicateTransactionError: If the UPI transaction id is already in use
            ValidationError: If a transaction id is given for a COD booking
        """
        booking = await self._book(user.id, request, actor=user.email)
        await self.notifier.send_booking_requested(booking)
        return booking

    async def admin_create_booking(self, request: AdminCreateBookingRequest, actor: str) -> Booking:
        """
        Book on a customer's behalf. The customer's quota is charged as usual.

        Raises:
            NotFoundError: If the customer does not exist
            InsufficientQuotaError: If the quantity exceeds the customer's remaining quota
            DuplicateTransactionError: If the UPI transaction id is already in use
        """
        try:
            owner_id = UUID(request.user_id)
        except ValueError:
            raise NotFoundError(resource_type="user", resource_id=request.user_id)

        booking = await self._book(owner_id, request, actor=actor, approve=request.status == BookingStatus.APPROVED)
        if booking.status == BookingStatus.APPROVED:
            await self.notifier.send_booking_status(booking)
        else:
            await self.notifier.send_booking_requested(booking)
        return booking

    async def _book(
        self,
        owner_id: UUID,
        request: CreateBookingRequest,
        actor: str,
        approve: bool = False,
    ) -> Booking:
        if request.upi_txn_id and request.payment_method != PaymentMethod.UPI:
            raise ValidationError(detail="A UPI transaction ID can only be given for UPI payments")

        owner = await self._lock_user(owner_id)

        if owner.remaining_quota < request.quantity:
            logger.warning(
                "Booking rejected - insufficient quota",
                extra={
                    "user_pk": str(owner.id),
                    "remaining_quota": owner.remaining_quota,
                    "requested_quantity": request.quantity,
                },
            )
            metrics_collector.record_quota_rejection()
            raise InsufficientQuotaError(owner.remaining_quota, request.quantity)

        if request.upi_txn_id:
            await self.ensure_txn_id_unused(request.upi_txn_id)

        price = await self.settings_service.get_price()
        now = datetime.utcnow()

        owner.remaining_quota -= request.quantity

        booking = Booking(
            user_id=owner.id,
            user_name=owner.name,
            user_email=owner.email,
            user_phone=owner.phone,
            user_address=owner.address,
            payment_method=request.payment_method,
            status=BookingStatus.PENDING,
            quantity=request.quantity,
            receiver_name=request.receiver_name,
            receiver_phone=request.receiver_phone,
            requested_at=now,
            expected_date=request.expected_date,
            notes=request.notes,
        )
        self.db.add(booking)
        await self.db.flush()

        self.add_event(booking, "Booking Started", "Booking process initiated", created_at=now)
        self.add_event(
            booking,
            "Booking Requested",
            f"Requested {request.quantity} cylinder(s) with {request.payment_method.value} payment",
            created_at=now + timedelta(microseconds=1),
        )
        self.db.add(Payment(
            booking_id=booking.id,
            amount=price * request.quantity,
            method=request.payment_method,
            status=PaymentStatus.PENDING,
            upi_txn_id=request.upi_txn_id,
        ))
        if approve:
            booking.status = BookingStatus.APPROVED
            self.add_event(
                booking,
                STATUS_EVENT_TITLES[BookingStatus.APPROVED],
                f"Booked and approved by {actor}",
                created_at=now + timedelta(microseconds=2),
            )
            metrics_collector.record_booking_transition(BookingStatus.PENDING, BookingStatus.APPROVED)

        await self.db.commit()

        metrics_collector.record_booking_created(request.payment_method)
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "user_pk": str(owner.id),
                "quantity": request.quantity,
                "payment_method": request.payment_method.value,
                "remaining_quota": owner.remaining_quota,
                "status": BookingStatus(booking.status).value,
                "actor": actor,
            },
        )

        return await self.get_booking_or_raise(booking.id)

    async def list_bookings(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[BookingStatus] = None,
        payment_method: Optional[PaymentMethod] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Booking], int]:
        """
        List bookings newest first. Customers only see their own.

        Returns:
            The page of bookings (payments loaded) and the total match count
        """
        filters = []
        if not user.is_admin:
            filters.append(Booking.user_id == user.id)
        if status is not None:
            filters.append(Booking.status == status)
        if payment_method is not None:
            filters.append(Booking.payment_method == payment_method)
        if search and user.is_admin:
            pattern = f"%{search.strip()}%"
            filters.append(or_(
                Booking.user_name.ilike(pattern),
                Booking.user_email.ilike(pattern),
                Booking.user_phone.ilike(pattern),
            ))

        total = (await self.db.execute(
            select(func.count()).select_from(Booking).where(*filters)
        )).scalar_one()

        stmt = (
            select(Booking)
            .options(selectinload(Booking.payments))
            .where(*filters)
            .order_by(Booking.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        bookings = (await self.db.execute(stmt)).scalars().all()
        return list(bookings), total

    async def cancel_booking(self, booking_id: UUID, user: User, reason: Optional[str] = None) -> Booking:
        """
        Cancel a pending or approved booking and give the quota back.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the caller neither owns the booking nor is an admin
            InvalidTransitionError: If the booking is no longer cancellable
        """
        booking = await self.get_booking_for_user(booking_id, user)
        await self._cancel(booking, reason, actor=user.email)
        await self.db.commit()

        booking = await self.get_booking_or_raise(booking_id)
        await self.notifier.send_booking_status(booking, reason)
        return booking

    async def _cancel(self, booking: Booking, reason: Optional[str], actor: str) -> None:
        lifecycle.ensure_booking_transition(booking.status, BookingStatus.CANCELLED)
        previous = booking.status

        owner = await self._lock_user(booking.user_id)
        owner.remaining_quota += booking.quantity

        booking.status = BookingStatus.CANCELLED
        for payment in booking.payments:
            if payment.status == PaymentStatus.PENDING:
                payment.status = PaymentStatus.CANCELLED

        assignment = booking.assignment
        if assignment is not None and assignment.status in lifecycle.OPEN_ASSIGNMENT_STATUSES:
            assignment.status = lifecycle.assignment_status_for(BookingStatus.CANCELLED)

        self.add_event(booking, STATUS_EVENT_TITLES[BookingStatus.CANCELLED], reason or "Booking was cancelled")
        metrics_collector.record_booking_transition(previous, BookingStatus.CANCELLED)

        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": str(booking.id),
                "previous_status": BookingStatus(previous).value,
                "restored_quota": booking.quantity,
                "actor": actor,
            },
        )

    # Admin operations

    @staticmethod
    def _has_open_assignment(booking: Booking) -> bool:
        return (
            booking.assignment is not None
            and booking.assignment.status in lifecycle.OPEN_ASSIGNMENT_STATUSES
        )

    def _move_to(self, booking: Booking, target: BookingStatus, description: Optional[str] = None) -> None:
        previous = booking.status
        booking.status = target
        if target == BookingStatus.DELIVERED:
            booking.delivered_at = datetime.utcnow()
            if booking.delivery_date is None:
                booking.delivery_date = booking.delivered_at.date()
        self.add_event(booking, STATUS_EVENT_TITLES[target], description)
        metrics_collector.record_booking_transition(previous, target)

    async def update_status(
        self,
        booking_id: UUID,
        new_status: str,
        actor: str,
        cancellation_reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking to APPROVED, OUT_FOR_DELIVERY, DELIVERED or CANCELLED.

        An open delivery assignment follows the booking to OUT_FOR_DELIVERY
        and DELIVERED.

        Raises:
            ValidationError: If the status is not one an admin may set
            InvalidTransitionError: If the lifecycle forbids the move
        """
        target = lifecycle.ensure_admin_target(new_status)
        booking = await self.get_booking_or_raise(booking_id)

        if target == BookingStatus.CANCELLED:
            await self._cancel(booking, cancellation_reason, actor=actor)
        else:
            lifecycle.ensure_admin_transition(
                booking.status, target, has_assignment=self._has_open_assignment(booking)
            )
            follow = lifecycle.assignment_status_for(target)
            assignment = booking.assignment
            if follow is not None and self._has_open_assignment(booking) and assignment.status != follow:
                lifecycle.ensure_assignment_transition(assignment.status, follow)
                assignment.status = follow
            self._move_to(booking, target, f"Status changed to {target.value} by admin")

        await self.db.commit()
        logger.info(
            "Booking status updated",
            extra={"booking_id": str(booking_id), "new_status": target.value, "actor": actor},
        )

        booking = await self.get_booking_or_raise(booking_id)
        await self._notify_status(booking, cancellation_reason)
        return booking

    async def admin_update_booking(
        self, booking_id: UUID, request: AdminUpdateBookingRequest, actor: str
    ) -> Booking:
        """
        Edit booking details. Quantity changes are charged against the owner's quota.

        Raises:
            ValidationError: If the booking is already delivered or cancelled
            InsufficientQuotaError: If an increase exceeds the owner's remaining quota
        """
        booking = await self.get_booking_or_raise(booking_id)
        if lifecycle.is_terminal(booking.status):
            raise ValidationError(detail=f"Cannot edit a {BookingStatus(booking.status).value.lower()} booking")

        changes = request.model_dump(exclude_unset=True)
        changed = []

        quantity = changes.pop("quantity", None)
        if quantity is not None and quantity != booking.quantity:
            delta = quantity - booking.quantity
            owner = await self._lock_user(booking.user_id)
            if delta > 0 and owner.remaining_quota < delta:
                raise InsufficientQuotaError(owner.remaining_quota, delta)
            owner.remaining_quota -= delta
            booking.quantity = quantity
            changed.append("quantity")

        method = changes.pop("payment_method", None)
        if method is not None and method != booking.payment_method:
            booking.payment_method = method
            changed.append("payment_method")

        for field, value in changes.items():
            if getattr(booking, field) != value:
                setattr(booking, field, value)
                changed.append(field)

        latest = booking.latest_payment
        if latest is not None and latest.status == PaymentStatus.PENDING:
            if "quantity" in changed:
                latest.amount = await self.settings_service.get_price() * booking.quantity
            if "payment_method" in changed:
                latest.method = booking.payment_method

        if changed:
            self.add_event(booking, "Booking Updated", f"Updated {', '.join(changed)}")
        await self.db.commit()

        logger.info(
            "Booking updated by admin",
            extra={"booking_id": str(booking_id), "changed_fields": changed, "actor": actor},
        )
        return await self.get_booking_or_raise(booking_id)

    async def assign_delivery(self, booking_id: UUID, request: AssignDeliveryRequest, actor: str) -> Booking:
        """
        Hand an approved booking to a delivery partner.

        A FAILED assignment is reused for the new attempt.

        Raises:
            InvalidTransitionError: If the booking is not approved or already assigned
            NotFoundError: If the partner does not exist
            ValidationError: If the partner is inactive
        """
        booking = await self.get_booking_or_raise(booking_id)
        existing = booking.assignment
        lifecycle.ensure_assignable(booking.status, existing.status if existing else None)

        try:
            partner_id = UUID(request.partner_id)
        except ValueError:
            raise NotFoundError(resource_type="delivery partner", resource_id=request.partner_id)
        partner = await self.delivery_service.get_partner_or_raise(partner_id)
        if not partner.is_active:
            raise ValidationError(detail="Delivery partner is not active")

        if existing is None:
            self.db.add(DeliveryAssignment(
                booking_id=booking.id,
                partner_id=partner.id,
                status=AssignmentStatus.ASSIGNED,
                notes=request.notes,
                priority=request.priority,
                scheduled_date=request.scheduled_date,
                scheduled_time=request.scheduled_time,
            ))
        else:
            existing.partner_id = partner.id
            existing.status = AssignmentStatus.ASSIGNED
            existing.notes = request.notes
            existing.priority = request.priority
            existing.scheduled_date = request.scheduled_date
            existing.scheduled_time = request.scheduled_time
            existing.assigned_at = datetime.utcnow()

        booking.delivery_date = request.scheduled_date
        self.add_event(
            booking,
            "Delivery Assigned",
            f"Assigned to {partner.name} for {request.scheduled_date.isoformat()}",
        )
        await self.db.commit()

        metrics_collector.record_delivery_update(AssignmentStatus.ASSIGNED)
        logger.info(
            "Delivery assigned",
            extra={
                "booking_id": str(booking_id),
                "partner_id": str(partner.id),
                "scheduled_date": request.scheduled_date.isoformat(),
                "actor": actor,
            },
        )

        booking = await self.get_booking_or_raise(booking_id)
        await self.notifier.send_delivery_assigned(booking, partner, request.scheduled_date)
        return booking

    async def update_delivery_status(
        self, booking_id: UUID, request: UpdateDeliveryStatusRequest, actor: str
    ) -> Booking:
        """
        Advance the delivery assignment and carry the booking along.

        Raises:
            NotFoundError: If the booking has no assignment
            InvalidTransitionError: If either status move is not allowed
        """
        booking = await self.get_booking_or_raise(booking_id)
        assignment = booking.assignment
        if assignment is None:
            raise NotFoundError(
                resource_type="delivery assignment",
                detail=f"Booking '{booking_id}' has no delivery assignment",
            )

        target = AssignmentStatus(request.new_status)
        lifecycle.ensure_assignment_transition(assignment.status, target)

        follow = lifecycle.booking_status_for(target)
        booking_changed = follow is not None and follow != booking.status
        if booking_changed:
            lifecycle.ensure_booking_transition(booking.status, follow, has_assignment=True)

        assignment.status = target
        if request.notes:
            assignment.notes = request.notes

        if booking_changed:
            previous = booking.status
            booking.status = follow
            if follow == BookingStatus.DELIVERED:
                booking.delivered_at = datetime.utcnow()
                if booking.delivery_date is None:
                    booking.delivery_date = booking.delivered_at.date()
            metrics_collector.record_booking_transition(previous, follow)

        self.add_event(
            booking,
            DELIVERY_EVENT_TITLES[target],
            request.notes or f"Delivery status changed to {target.value}",
        )
        await self.db.commit()

        metrics_collector.record_delivery_update(target)
        logger.info(
            "Delivery status updated",
            extra={
                "booking_id": str(booking_id),
                "assignment_status": target.value,
                "booking_status": BookingStatus(booking.status).value,
                "actor": actor,
            },
        )

        booking = await self.get_booking_or_raise(booking_id)
        if target == AssignmentStatus.DELIVERED:
            await self._send_delivered(booking)
        elif target == AssignmentStatus.OUT_FOR_DELIVERY:
            await self.notifier.send_out_for_delivery(booking, booking.assignment.partner)
        else:
            await self.notifier.send_delivery_status(booking, target, request.notes)
        return booking

    async def bulk_action(self, request: BulkActionRequest, actor: str) -> tuple[int, dict[str, str]]:
        """
        Apply one action to many bookings, each through the normal lifecycle checks.

        Returns:
            Number of bookings updated and an error message per failed booking id
        """
        if request.action == BulkAction.ASSIGN_DELIVERY and (not request.partner_id or not request.scheduled_date):
            raise ValidationError(detail="partner_id and scheduled_date are required to assign delivery")

        updated = 0
        errors: dict[str, str] = {}
        for raw_id in dict.fromkeys(request.booking_ids):
            try:
                booking_id = UUID(raw_id)
            except ValueError:
                errors[raw_id] = "Invalid booking ID"
                continue

            try:
                if request.action == BulkAction.APPROVE:
                    await self.update_status(booking_id, BookingStatus.APPROVED.value, actor)
                elif request.action == BulkAction.CANCEL:
                    await self.update_status(
                        booking_id, BookingStatus.CANCELLED.value, actor, cancellation_reason=request.reason
                    )
                else:
                    await self.assign_delivery(
                        booking_id,
                        AssignDeliveryRequest(partner_id=request.partner_id, scheduled_date=request.scheduled_date),
                        actor,
                    )
                updated += 1
            except ProblemDetailsException as e:
                await self.db.rollback()
                errors[raw_id] = e.problem_details.get("detail", "Update failed")

        logger.info(
            "Bulk booking action finished",
            extra={"action": request.action.value, "updated": updated, "failed": len(errors), "actor": actor},
        )
        return updated, errors

    async def get_stats(self) -> dict:
        status_counts = dict((await self.db.execute(
            select(Booking.status, func.count()).group_by(Booking.status)
        )).all())
        method_counts = dict((await self.db.execute(
            select(Booking.payment_method, func.count()).group_by(Booking.payment_method)
        )).all())
        revenue = dict((await self.db.execute(
            select(Payment.status, func.coalesce(func.sum(Payment.amount), 0))
            .where(Payment.status.in_(ACTIVE_PAYMENT_STATUSES))
            .group_by(Payment.status)
        )).all())

        return {
            "total": sum(status_counts.values()),
            "pending": status_counts.get(BookingStatus.PENDING.value, 0),
            "approved": status_counts.get(BookingStatus.APPROVED.value, 0),
            "out_for_delivery": status_counts.get(BookingStatus.OUT_FOR_DELIVERY.value, 0),
            "delivered": status_counts.get(BookingStatus.DELIVERED.value, 0),
            "cancelled": status_counts.get(BookingStatus.CANCELLED.value, 0),
            "total_revenue": int(revenue.get(PaymentStatus.SUCCESS.value, 0)),
            "pending_revenue": int(revenue.get(PaymentStatus.PENDING.value, 0)),
            "payment_method_distribution": {
                method.value: method_counts.get(method.value, 0) for method in PaymentMethod
            },
        }

    # Invoices and notifications

    async def build_invoice(self, booking: Booking) -> tuple[str, bytes]:
        """
        Render the invoice PDF of a delivered booking.

        The unit price comes from the booking's latest payment so later price
        changes do not alter old invoices.
        """
        if booking.status != BookingStatus.DELIVERED:
            raise ValidationError(detail="Invoice is only available for delivered bookings")

        latest = booking.latest_payment
        if latest is not None and booking.quantity:
            unit_price = latest.amount // booking.quantity
        else:
            unit_price = await self.settings_service.get_price()

        totals = compute_invoice_totals(booking, unit_price, settings.gst_rate)
        return totals.invoice_number, render_invoice_pdf(booking, totals, settings.gst_rate)

    async def _send_delivered(self, booking: Booking) -> None:
        await self.notifier.send_delivery_completed(booking)
        try:
            invoice_number, pdf = await self.build_invoice(booking)
        except Exception as e:
            logger.error(
                "Invoice generation failed",
                extra={"booking_id": str(booking.id), "error": str(e)},
                exc_info=True,
            )
            return
        await self.notifier.send_invoice(booking, invoice_number, pdf)

    async def _notify_status(self, booking: Booking, reason: Optional[str]) -> None:
        if booking.status == BookingStatus.DELIVERED:
            await self._send_delivered(booking)
        elif booking.status == BookingStatus.OUT_FOR_DELIVERY and booking.assignment is not None:
            await self.notifier.send_out_for_delivery(booking, booking.assignment.partner)
        else:
            await self.notifier.send_booking_status(booking, reason)
