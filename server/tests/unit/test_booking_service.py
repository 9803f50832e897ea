"""Unit tests for booking service."""

from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select

from gas_agency.core.exceptions import (
    AuthorizationError,
    InsufficientQuotaError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from gas_agency.models.booking import Booking, BookingStatus
from gas_agency.models.delivery import AssignmentStatus
from gas_agency.models.payment import PaymentStatus
from gas_agency.schemas.booking import (
    AdminCreateBookingRequest,
    AdminUpdateBookingRequest,
    BulkAction,
    BulkActionRequest,
    CreateBookingRequest,
    PaymentMethod,
)
from gas_agency.schemas.delivery import AssignDeliveryRequest, UpdateDeliveryStatusRequest
from gas_agency.services.booking_service import BookingService, DuplicateTransactionError


def _request(**overrides) -> CreateBookingRequest:
    fields = {"payment_method": PaymentMethod.COD, "quantity": 1}
    fields.update(overrides)
    return CreateBookingRequest(**fields)


def _assign_request(partner, days: int = 1) -> AssignDeliveryRequest:
    return AssignDeliveryRequest(
        partner_id=str(partner.id),
        scheduled_date=datetime.utcnow().date() + timedelta(days=days),
    )


@pytest.mark.asyncio
async def test_create_booking_takes_quota(test_session, customer, notifier):
    """Test booking two cylinders."""
    service = BookingService(test_session, notifier)

    booking = await service.create_booking(customer, _request(quantity=2))

    assert booking.status == BookingStatus.PENDING
    assert booking.quantity == 2
    assert booking.user_email == customer.email
    assert customer.remaining_quota == 10

    assert len(booking.payments) == 1
    payment = booking.payments[0]
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 2 * 1100

    assert [e.title for e in booking.events] == ["Booking Started", "Booking Requested"]
    assert "booking_requested" in notifier.templates()


@pytest.mark.asyncio
async def test_create_booking_insufficient_quota(test_session, customer, notifier):
    """Test that nothing is written when the quota is too low."""
    customer.remaining_quota = 1
    await test_session.commit()

    service = BookingService(test_session, notifier)
    with pytest.raises(InsufficientQuotaError) as exc_info:
        await service.create_booking(customer, _request(quantity=2))

    details = exc_info.value.problem_details
    assert details["remaining_quota"] == 1
    assert details["requested_quantity"] == 2
    assert "You have 1 cylinder(s) remaining, but requested 2" in details["detail"]

    count = (await test_session.execute(select(func.count()).select_from(Booking))).scalar_one()
    assert count == 0
    assert customer.remaining_quota == 1


@pytest.mark.asyncio
async def test_create_booking_exhausts_quota_exactly(test_session, customer, notifier):
    customer.remaining_quota = 3
    await test_session.commit()

    service = BookingService(test_session, notifier)
    await service.create_booking(customer, _request(quantity=3))
    assert customer.remaining_quota == 0

    with pytest.raises(InsufficientQuotaError):
        await service.create_booking(customer, _request(quantity=1))


@pytest.mark.asyncio
async def test_create_booking_rejects_txn_id_for_cod(test_session, customer, notifier):
    service = BookingService(test_session, notifier)
    with pytest.raises(ValidationError):
        await service.create_booking(customer, _request(upi_txn_id="TXN123456"))


@pytest.mark.asyncio
async def test_create_booking_duplicate_txn_id(test_session, customer, other_customer, notifier):
    """Test that a UPI transaction id cannot back two live payments."""
    service = BookingService(test_session, notifier)
    await service.create_booking(customer, _request(payment_method=PaymentMethod.UPI, upi_txn_id="TXN123456"))

    with pytest.raises(DuplicateTransactionError):
        await service.create_booking(
            other_customer, _request(payment_method=PaymentMethod.UPI, upi_txn_id="TXN123456")
        )
    assert other_customer.remaining_quota == 12


@pytest.mark.asyncio
async def test_list_bookings_only_own(test_session, customer, other_customer, admin, notifier):
    service = BookingService(test_session, notifier)
    await service.create_booking(customer, _request())
    await service.create_booking(customer, _request(payment_method=PaymentMethod.UPI))
    await service.create_booking(other_customer, _request())

    mine, total = await service.list_bookings(customer)
    assert total == 2
    assert all(b.user_id == customer.id for b in mine)

    upi_only, total = await service.list_bookings(customer, payment_method=PaymentMethod.UPI)
    assert total == 1

    everything, total = await service.list_bookings(admin)
    assert total == 3

    found, total = await service.list_bookings(admin, search="vikram")
    assert total == 1
    assert found[0].user_id == other_customer.id


@pytest.mark.asyncio
async def test_get_booking_for_other_user_forbidden(test_session, customer, other_customer, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())

    with pytest.raises(AuthorizationError):
        await service.get_booking_for_user(booking.id, other_customer)


@pytest.mark.asyncio
async def test_get_booking_not_found(test_session, notifier):
    service = BookingService(test_session, notifier)
    with pytest.raises(NotFoundError):
        await service.get_booking_or_raise(uuid4())


@pytest.mark.asyncio
async def test_cancel_restores_quota(test_session, customer, notifier):
    """Test that cancelling gives the cylinders back and cancels the payment."""
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request(quantity=3))
    assert customer.remaining_quota == 9

    cancelled = await service.cancel_booking(booking.id, customer, "Changed my mind")

    assert cancelled.status == BookingStatus.CANCELLED
    assert customer.remaining_quota == 12
    assert cancelled.payments[0].status == PaymentStatus.CANCELLED
    assert cancelled.events[-1].title == "Booking Cancelled"
    assert cancelled.events[-1].description == "Changed my mind"


@pytest.mark.asyncio
async def test_cancel_twice_fails(test_session, customer, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.cancel_booking(booking.id, customer)

    with pytest.raises(InvalidTransitionError):
        await service.cancel_booking(booking.id, customer)
    assert customer.remaining_quota == 12


@pytest.mark.asyncio
async def test_full_delivery_flow(test_session, customer, admin, partner, notifier):
    """Test approve, assign, out for delivery and delivered."""
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request(quantity=2))

    booking = await service.update_status(booking.id, "APPROVED", admin.email)
    assert booking.status == BookingStatus.APPROVED

    booking = await service.assign_delivery(booking.id, _assign_request(partner), admin.email)
    assert booking.assignment.status == AssignmentStatus.ASSIGNED
    assert booking.assignment.partner.name == "Ravi Kumar"
    assert booking.delivery_date == datetime.utcnow().date() + timedelta(days=1)

    booking = await service.update_delivery_status(
        booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.OUT_FOR_DELIVERY), admin.email
    )
    assert booking.status == BookingStatus.OUT_FOR_DELIVERY

    booking = await service.update_delivery_status(
        booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.DELIVERED), admin.email
    )
    assert booking.status == BookingStatus.DELIVERED
    assert booking.delivered_at is not None

    titles = [e.title for e in booking.events]
    assert titles[:2] == ["Booking Started", "Booking Requested"]
    assert titles[-1] == "Delivered"
    assert "invoice" in notifier.templates()
    invoice_mail = next(m for m in notifier.sent if m["template"] == "invoice")
    assert invoice_mail["attachments"][0].endswith(".pdf")


@pytest.mark.asyncio
async def test_status_update_requires_assignment(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await service.update_status(booking.id, "DELIVERED", admin.email)
    assert "without a delivery assignment" in exc_info.value.problem_details["detail"]


@pytest.mark.asyncio
async def test_status_update_moves_assignment(test_session, customer, admin, partner, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)

    booking = await service.update_status(booking.id, "DELIVERED", admin.email)
    assert booking.status == BookingStatus.DELIVERED
    assert booking.assignment.status == AssignmentStatus.DELIVERED


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_status(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())

    with pytest.raises(ValidationError):
        await service.update_status(booking.id, "PENDING", admin.email)


@pytest.mark.asyncio
async def test_assign_requires_approved_booking(test_session, customer, admin, partner, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())

    with pytest.raises(InvalidTransitionError) as exc_info:
        await service.assign_delivery(booking.id, _assign_request(partner), admin.email)
    assert exc_info.value.problem_details["detail"] == "Can only assign delivery to approved bookings"


@pytest.mark.asyncio
async def test_assign_twice_rejected(test_session, customer, admin, partner, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await service.assign_delivery(booking.id, _assign_request(partner, days=2), admin.email)
    assert exc_info.value.problem_details["detail"] == "Delivery already assigned"


@pytest.mark.asyncio
async def test_assign_unknown_partner(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)

    with pytest.raises(NotFoundError):
        await service.assign_delivery(
            booking.id,
            AssignDeliveryRequest(partner_id="not-a-uuid", scheduled_date=datetime.utcnow().date()),
            admin.email,
        )


@pytest.mark.asyncio
async def test_failed_delivery_returns_booking_to_approved(test_session, customer, admin, partner, notifier):
    """Test that a failed attempt can be reassigned."""
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)
    await service.update_delivery_status(
        booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.OUT_FOR_DELIVERY), admin.email
    )

    booking = await service.update_delivery_status(
        booking.id,
        UpdateDeliveryStatusRequest(new_status=AssignmentStatus.FAILED, notes="Customer not home"),
        admin.email,
    )
    assert booking.status == BookingStatus.APPROVED
    assert booking.assignment.status == AssignmentStatus.FAILED
    assert booking.events[-1].title == "Delivery Failed"

    booking = await service.assign_delivery(booking.id, _assign_request(partner, days=2), admin.email)
    assert booking.assignment.status == AssignmentStatus.ASSIGNED


@pytest.mark.asyncio
async def test_delivery_status_without_assignment(test_session, customer, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())

    with pytest.raises(NotFoundError):
        await service.update_delivery_status(
            booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.PICKED_UP), "admin@example.com"
        )


@pytest.mark.asyncio
async def test_admin_cancel_fails_open_assignment(test_session, customer, admin, partner, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request(quantity=2))
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)

    booking = await service.update_status(booking.id, "CANCELLED", admin.email, cancellation_reason="Out of area")
    assert booking.status == BookingStatus.CANCELLED
    assert booking.assignment.status == AssignmentStatus.FAILED

    await test_session.refresh(customer)
    assert customer.remaining_quota == 12


@pytest.mark.asyncio
async def test_admin_update_quantity_charges_quota(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request(quantity=1))

    booking = await service.admin_update_booking(
        booking.id, AdminUpdateBookingRequest(quantity=3, notes="Bulk order"), admin.email
    )
    assert booking.quantity == 3
    assert booking.notes == "Bulk order"
    assert booking.latest_payment.amount == 3 * 1100
    assert booking.events[-1].title == "Booking Updated"

    await test_session.refresh(customer)
    assert customer.remaining_quota == 9


@pytest.mark.asyncio
async def test_admin_update_rejects_delivered_booking(test_session, customer, admin, partner, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)
    await service.update_status(booking.id, "DELIVERED", admin.email)

    with pytest.raises(ValidationError):
        await service.admin_update_booking(booking.id, AdminUpdateBookingRequest(notes="late"), admin.email)


@pytest.mark.asyncio
async def test_bulk_approve_reports_failures(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    first = await service.create_booking(customer, _request())
    second = await service.create_booking(customer, _request())
    first_id, second_id = str(first.id), str(second.id)
    await service.cancel_booking(second.id, customer)

    updated, errors = await service.bulk_action(
        BulkActionRequest(action=BulkAction.APPROVE, booking_ids=[first_id, second_id, "garbage"]),
        "admin@example.com",
    )

    assert updated == 1
    assert set(errors) == {second_id, "garbage"}
    assert (await service.get_booking_or_raise(UUID(first_id))).status == BookingStatus.APPROVED


@pytest.mark.asyncio
async def test_booking_stats(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)
    first = await service.create_booking(customer, _request(quantity=2))
    await service.create_booking(customer, _request(payment_method=PaymentMethod.UPI))
    await service.update_status(first.id, "APPROVED", admin.email)

    stats = await service.get_stats()
    assert stats["total"] == 2
    assert stats["pending"] == 1
    assert stats["approved"] == 1
    assert stats["pending_revenue"] == 3 * 1100
    assert stats["payment_method_distribution"] == {"COD": 1, "UPI": 1}


@pytest.mark.asyncio
async def test_invoice_only_for_delivered(test_session, customer, notifier):
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request())

    with pytest.raises(ValidationError):
        await service.build_invoice(booking)


@pytest.mark.asyncio
async def test_cancel_delivered_booking_keeps_quota(test_session, customer, admin, partner, notifier):
    """Test that a delivered booking cannot be cancelled and the quota stays spent."""
    service = BookingService(test_session, notifier)
    booking = await service.create_booking(customer, _request(quantity=2))
    await service.update_status(booking.id, "APPROVED", admin.email)
    await service.assign_delivery(booking.id, _assign_request(partner), admin.email)
    await service.update_delivery_status(
        booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.DELIVERED), admin.email
    )
    assert customer.remaining_quota == 10

    with pytest.raises(InvalidTransitionError):
        await service.cancel_booking(booking.id, customer, "Too late")

    booking = await service.get_booking_or_raise(booking.id)
    assert booking.status == BookingStatus.DELIVERED
    assert booking.events[-1].title == "Delivered"
    assert customer.remaining_quota == 10


@pytest.mark.asyncio
async def test_admin_books_for_customer(test_session, customer, admin, notifier):
    """Test that admin bookings start approved and are charged to the customer."""
    service = BookingService(test_session, notifier)

    booking = await service.admin_create_booking(
        AdminCreateBookingRequest(user_id=str(customer.id), payment_method=PaymentMethod.COD, quantity=2),
        admin.email,
    )

    assert booking.status == BookingStatus.APPROVED
    assert booking.user_id == customer.id
    assert booking.user_name == "Asha Rao"
    assert customer.remaining_quota == 10
    assert booking.payments[0].amount == 2 * 1100
    assert [e.title for e in booking.events] == ["Booking Started", "Booking Requested", "Booking Approved"]
    assert booking.events[-1].status == BookingStatus.APPROVED
    assert notifier.templates() == ["booking_status"]


@pytest.mark.asyncio
async def test_admin_booking_can_start_pending(test_session, customer, admin, notifier):
    service = BookingService(test_session, notifier)

    booking = await service.admin_create_booking(
        AdminCreateBookingRequest(user_id=str(customer.id), payment_method=PaymentMethod.COD, status="PENDING"),
        admin.email,
    )

    assert booking.status == BookingStatus.PENDING
    assert len(booking.events) == 2
    assert notifier.templates() == ["booking_requested"]


@pytest.mark.asyncio
async def test_admin_booking_checks_quota(test_session, customer, admin, notifier):
    customer.remaining_quota = 1
    await test_session.commit()
    customer_id = customer.id

    with pytest.raises(InsufficientQuotaError):
        await BookingService(test_session, notifier).admin_create_booking(
            AdminCreateBookingRequest(user_id=str(customer_id), payment_method=PaymentMethod.COD, quantity=2),
            admin.email,
        )

    count = (await test_session.execute(select(func.count()).select_from(Booking))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_admin_booking_unknown_customer(test_session, admin, notifier):
    service = BookingService(test_session, notifier)

    with pytest.raises(NotFoundError):
        await service.admin_create_booking(
            AdminCreateBookingRequest(user_id=str(uuid4()), payment_method=PaymentMethod.COD), admin.email
        )
    with pytest.raises(NotFoundError):
        await service.admin_create_booking(
            AdminCreateBookingRequest(user_id="not-a-uuid", payment_method=PaymentMethod.COD), admin.email
        )


def test_admin_booking_initial_status_limited():
    with pytest.raises(SchemaValidationError):
        AdminCreateBookingRequest(user_id=str(uuid4()), payment_method=PaymentMethod.COD, status="DELIVERED")
