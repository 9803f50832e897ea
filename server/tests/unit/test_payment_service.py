"""Unit tests for payment review and retry."""

import pytest

from gas_agency.core.exceptions import AuthorizationError, InvalidTransitionError, ValidationError
from gas_agency.models.payment import PaymentStatus
from gas_agency.schemas.booking import (
    CreateBookingRequest,
    PaymentMethod,
    RetryPaymentRequest,
    ReviewAction,
    ReviewPaymentRequest,
    UpdateCodPaymentRequest,
)
from gas_agency.services.booking_service import BookingService, DuplicateTransactionError
from gas_agency.services.payment_service import PaymentService


async def _upi_booking(session, notifier, user, txn="UPI123456789"):
    return await BookingService(session, notifier).create_booking(
        user, CreateBookingRequest(payment_method=PaymentMethod.UPI, quantity=1, upi_txn_id=txn)
    )


@pytest.mark.asyncio
async def test_confirm_upi_payment(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    booking = await service.review_payment(
        booking.id, ReviewPaymentRequest(action=ReviewAction.CONFIRM), "admin@example.com"
    )

    assert booking.latest_payment.status == PaymentStatus.SUCCESS
    assert booking.latest_payment.upi_txn_id == "UPI123456789"
    assert booking.events[-1].title == "Payment Confirmed"
    assert "payment_confirmed" in notifier.templates()


@pytest.mark.asyncio
async def test_confirm_records_new_txn_id(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer, txn=None)
    service = PaymentService(test_session, notifier)

    booking = await service.confirm_payment(booking.latest_payment.id, "BANKREF998877", "admin@example.com")
    assert booking.latest_payment.upi_txn_id == "BANKREF998877"


@pytest.mark.asyncio
async def test_reject_requires_reason(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    with pytest.raises(ValidationError):
        await service.review_payment(
            booking.id, ReviewPaymentRequest(action=ReviewAction.REJECT, reason="   "), "admin@example.com"
        )


@pytest.mark.asyncio
async def test_reject_then_retry(test_session, customer, notifier):
    """Test that a rejected UPI payment can be paid again with a new transaction."""
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    booking = await service.review_payment(
        booking.id,
        ReviewPaymentRequest(action=ReviewAction.REJECT, reason="Amount not received"),
        "admin@example.com",
    )
    assert booking.latest_payment.status == PaymentStatus.FAILED
    assert "payment_rejected" in notifier.templates()

    payment = await service.retry_upi_payment(
        customer, RetryPaymentRequest(booking_id=str(booking.id), upi_txn_id="UPI000111222")
    )
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 1100

    booking = await service.booking_service.get_booking_or_raise(booking.id)
    assert len(booking.payments) == 2
    assert booking.latest_payment.id == payment.id


@pytest.mark.asyncio
async def test_retry_only_after_failure(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    with pytest.raises(ValidationError):
        await service.retry_upi_payment(
            customer, RetryPaymentRequest(booking_id=str(booking.id), upi_txn_id="UPI000111222")
        )


@pytest.mark.asyncio
async def test_retry_other_users_booking(test_session, customer, other_customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    with pytest.raises(AuthorizationError):
        await service.retry_upi_payment(
            other_customer, RetryPaymentRequest(booking_id=str(booking.id), upi_txn_id="UPI000111222")
        )


@pytest.mark.asyncio
async def test_retry_with_used_txn_id(test_session, customer, other_customer, notifier):
    await _upi_booking(test_session, notifier, other_customer, txn="TAKEN12345")
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)
    await service.review_payment(
        booking.id,
        ReviewPaymentRequest(action=ReviewAction.REJECT, reason="Amount not received"),
        "admin@example.com",
    )

    with pytest.raises(DuplicateTransactionError):
        await service.retry_upi_payment(
            customer, RetryPaymentRequest(booking_id=str(booking.id), upi_txn_id="TAKEN12345")
        )


@pytest.mark.asyncio
async def test_review_twice_rejected(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)
    await service.review_payment(booking.id, ReviewPaymentRequest(action=ReviewAction.CONFIRM), "admin@example.com")

    with pytest.raises(InvalidTransitionError):
        await service.review_payment(
            booking.id, ReviewPaymentRequest(action=ReviewAction.CONFIRM), "admin@example.com"
        )


@pytest.mark.asyncio
async def test_cod_booking_cannot_be_reviewed(test_session, customer, notifier):
    booking = await BookingService(test_session, notifier).create_booking(
        customer, CreateBookingRequest(payment_method=PaymentMethod.COD)
    )
    service = PaymentService(test_session, notifier)

    with pytest.raises(ValidationError):
        await service.review_payment(
            booking.id, ReviewPaymentRequest(action=ReviewAction.CONFIRM), "admin@example.com"
        )


@pytest.mark.asyncio
async def test_pending_upi_listing(test_session, customer, other_customer, notifier):
    await _upi_booking(test_session, notifier, customer)
    await _upi_booking(test_session, notifier, other_customer, txn="UPI999888777")
    await BookingService(test_session, notifier).create_booking(
        customer, CreateBookingRequest(payment_method=PaymentMethod.COD)
    )

    payments, total = await PaymentService(test_session, notifier).list_pending_upi()
    assert total == 2
    assert {p.upi_txn_id for p in payments} == {"UPI123456789", "UPI999888777"}


@pytest.mark.asyncio
async def test_update_cod_payment(test_session, customer, notifier):
    booking = await BookingService(test_session, notifier).create_booking(
        customer, CreateBookingRequest(payment_method=PaymentMethod.COD, quantity=2)
    )
    service = PaymentService(test_session, notifier)

    booking = await service.update_cod_payment(
        booking.id, UpdateCodPaymentRequest(amount=2000, status=PaymentStatus.SUCCESS), "admin@example.com"
    )
    assert booking.latest_payment.amount == 2000
    assert booking.latest_payment.status == PaymentStatus.SUCCESS
    assert booking.events[-1].title == "Payment Updated"


@pytest.mark.asyncio
async def test_update_cod_rejects_upi(test_session, customer, notifier):
    booking = await _upi_booking(test_session, notifier, customer)
    service = PaymentService(test_session, notifier)

    with pytest.raises(ValidationError):
        await service.update_cod_payment(booking.id, UpdateCodPaymentRequest(amount=1), "admin@example.com")
