"""Unit tests for profile, support ticket, settings and export services."""

import csv
import io

import pytest

from gas_agency.core.exceptions import ConflictError, ValidationError
from gas_agency.core.security import verify_password
from gas_agency.models.contact import ContactStatus
from gas_agency.schemas.booking import CreateBookingRequest, PaymentMethod
from gas_agency.schemas.contact import CreateContactRequest, ReplyRequest, UpdateContactRequest
from gas_agency.schemas.settings import UpdateSettingsRequest
from gas_agency.schemas.user import (
    AdminCreateUserRequest,
    AdminUpdateUserRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserAction,
)
from gas_agency.services.auth_service import AuthService, DuplicateAccountError
from gas_agency.services.booking_service import BookingService
from gas_agency.services.contact_service import ContactService
from gas_agency.services.export_service import ExportService
from gas_agency.services.settings_service import SettingsService
from gas_agency.services.user_service import UserService


@pytest.mark.asyncio
async def test_update_profile(test_session, customer, notifier):
    user = await UserService(test_session, notifier).update_profile(
        customer, UpdateProfileRequest(name="  Asha R  ", address="7 Church Street, Bengaluru")
    )
    assert user.name == "Asha R"
    assert user.address == "7 Church Street, Bengaluru"
    assert user.phone == "9876543210"


@pytest.mark.asyncio
async def test_quota_counts_live_bookings(test_session, customer, notifier):
    bookings = BookingService(test_session, notifier)
    kept = await bookings.create_booking(customer, CreateBookingRequest(payment_method=PaymentMethod.COD, quantity=2))
    dropped = await bookings.create_booking(customer, CreateBookingRequest(payment_method=PaymentMethod.COD))
    await bookings.cancel_booking(dropped.id, customer)

    quota = await UserService(test_session, notifier).get_quota(customer)
    assert quota == {"remaining_quota": 10, "yearly_quota": 12, "used": kept.quantity}


@pytest.mark.asyncio
async def test_admin_cannot_change_email(test_session, customer, admin, notifier):
    with pytest.raises(ConflictError):
        await UserService(test_session, notifier).admin_update_user(
            customer.id, AdminUpdateUserRequest(email="new@example.com"), admin.email
        )


@pytest.mark.asyncio
async def test_admin_sets_quota(test_session, customer, admin, notifier):
    user = await UserService(test_session, notifier).admin_update_user(
        customer.id, AdminUpdateUserRequest(remaining_quota=2, email="ASHA@example.com"), admin.email
    )
    assert user.remaining_quota == 2

    stats = await UserService(test_session, notifier).get_stats()
    assert stats["total"] == 2
    assert stats["admins"] == 1
    # The admin has no quota of its own
    assert stats["with_quota_low"] == 2


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(test_session, admin, notifier):
    with pytest.raises(ValidationError):
        await UserService(test_session, notifier).delete_user(admin.id, admin)


@pytest.mark.asyncio
async def test_user_actions(test_session, customer, admin, notifier):
    service = UserService(test_session, notifier)

    with pytest.raises(ValidationError):
        await service.perform_action(customer.id, UserAction.RESEND_VERIFICATION, admin.email)

    message = await service.perform_action(customer.id, UserAction.SEND_PASSWORD_RESET, admin.email)
    assert message == "Password reset email sent"
    assert notifier.templates() == ["password_reset"]


@pytest.mark.asyncio
async def test_contact_ticket_flow(test_session, customer, admin, notifier):
    """Test a ticket from creation to a resolving reply."""
    service = ContactService(test_session, notifier)

    ticket = await service.create_ticket(
        customer, CreateContactRequest(subject="Late delivery", message="My cylinder has not arrived")
    )
    assert ticket.status == ContactStatus.NEW
    assert ticket.phone == customer.phone
    assert "contact_ack" in notifier.templates()

    ticket = await service.reply(ticket.id, admin, ReplyRequest(body="It is on its way"))
    assert ticket.status == ContactStatus.OPEN
    assert [r.body for r in ticket.replies] == ["It is on its way"]
    assert ticket.last_replied_at is not None

    ticket = await service.update_ticket(ticket.id, UpdateContactRequest(status=ContactStatus.RESOLVED))
    assert ticket.status == ContactStatus.RESOLVED

    stats = await service.get_stats()
    assert stats["total"] == 1
    assert stats["resolved"] == 1
    assert stats["new"] == 0


@pytest.mark.asyncio
async def test_list_own_tickets(test_session, customer, other_customer, notifier):
    service = ContactService(test_session, notifier)
    await service.create_ticket(customer, CreateContactRequest(subject="Billing", message="Wrong amount"))
    await service.create_ticket(other_customer, CreateContactRequest(subject="Address", message="Moved house"))

    tickets, total = await service.list_tickets(user_id=customer.id)
    assert total == 1
    assert tickets[0].subject == "Billing"

    tickets, total = await service.list_tickets(search="house")
    assert total == 1


@pytest.mark.asyncio
async def test_settings_default_and_update(test_session):
    service = SettingsService(test_session)
    assert await service.get_price() == 1100

    row = await service.update_settings(
        UpdateSettingsRequest(price_per_cylinder=1250, upi_id="gasagency@okbank"), "admin@example.com"
    )
    assert row.price_per_cylinder == 1250
    assert row.upi_id == "gasagency@okbank"
    assert await service.get_price() == 1250


@pytest.mark.asyncio
async def test_new_bookings_use_current_price(test_session, customer, notifier):
    await SettingsService(test_session).update_settings(
        UpdateSettingsRequest(price_per_cylinder=1000), "admin@example.com"
    )
    booking = await BookingService(test_session, notifier).create_booking(
        customer, CreateBookingRequest(payment_method=PaymentMethod.COD, quantity=3)
    )
    assert booking.latest_payment.amount == 3000


@pytest.mark.asyncio
async def test_bookings_csv(test_session, customer, notifier):
    await BookingService(test_session, notifier).create_booking(
        customer, CreateBookingRequest(payment_method=PaymentMethod.UPI, quantity=2)
    )

    rows = list(csv.DictReader(io.StringIO(await ExportService(test_session).bookings_csv("7d"))))
    assert len(rows) == 1
    assert rows[0]["status"] == "PENDING"
    assert rows[0]["payment_method"] == "UPI"
    assert rows[0]["amount"] == "2200"
    assert rows[0]["email"] == customer.email


@pytest.mark.asyncio
async def test_export_rejects_unknown_range(test_session):
    with pytest.raises(ValidationError):
        await ExportService(test_session).assignments_csv("2w")


def _new_account(**overrides) -> AdminCreateUserRequest:
    fields = {
        "name": "Kiran Das",
        "user_id": "kiran",
        "email": "Kiran@Example.com",
        "phone": "9812345678",
        "address": "22 Park Street, Kolkata",
    }
    fields.update(overrides)
    return AdminCreateUserRequest(**fields)


@pytest.mark.asyncio
async def test_admin_creates_account(test_session, admin, notifier):
    """Test that an admin-created account is set up through the emailed links."""
    user = await UserService(test_session, notifier).create_user(_new_account(), admin.email)

    assert user.email == "kiran@example.com"
    assert user.role == "USER"
    assert user.remaining_quota == 12
    assert user.email_verified is False
    assert user.email_verification_token
    assert user.reset_token
    assert notifier.templates() == ["verify_email", "password_reset"]

    auth = AuthService(test_session, notifier)
    await auth.verify_email(user.email_verification_token)
    await auth.reset_password(ResetPasswordRequest(token=user.reset_token, password="chosen-by-kiran"))

    _, logged_in = await auth.login("kiran", "chosen-by-kiran")
    assert logged_in.id == user.id
    assert verify_password("chosen-by-kiran", logged_in.password_hash)


@pytest.mark.asyncio
async def test_admin_create_account_duplicate(test_session, customer, admin, notifier):
    service = UserService(test_session, notifier)

    with pytest.raises(DuplicateAccountError) as exc_info:
        await service.create_user(_new_account(email="asha@example.com"), admin.email)
    assert exc_info.value.problem_details["code"] == "EMAIL_EXISTS"

    with pytest.raises(DuplicateAccountError) as exc_info:
        await service.create_user(_new_account(user_id="asha"), admin.email)
    assert exc_info.value.problem_details["field"] == "user_id"
    assert exc_info.value.problem_details["code"] == "USER_ID_EXISTS"
    assert notifier.templates() == []
