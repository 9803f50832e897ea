"""Unit tests for delivery partner management."""

from datetime import datetime
from uuid import uuid4

import pytest

from gas_agency.core.exceptions import NotFoundError
from gas_agency.models.delivery import AssignmentStatus, DeliveryAssignment, DeliveryPartner
from gas_agency.schemas.booking import CreateBookingRequest, PaymentMethod
from gas_agency.schemas.delivery import (
    AssignDeliveryRequest,
    CreatePartnerRequest,
    UpdateDeliveryStatusRequest,
    UpdatePartnerRequest,
)
from gas_agency.services.booking_service import BookingService
from gas_agency.services.delivery_service import DeliveryService, PartnerInUseError


async def _assigned_booking(session, notifier, user, partner, admin):
    service = BookingService(session, notifier)
    booking = await service.create_booking(user, CreateBookingRequest(payment_method=PaymentMethod.COD))
    await service.update_status(booking.id, "APPROVED", admin.email)
    return await service.assign_delivery(
        booking.id,
        AssignDeliveryRequest(partner_id=str(partner.id), scheduled_date=datetime.utcnow().date()),
        admin.email,
    )


@pytest.mark.asyncio
async def test_create_and_search_partners(test_session):
    service = DeliveryService(test_session)
    await service.create_partner(CreatePartnerRequest(name="Ravi Kumar", phone="9876500000", service_area="North"))
    await service.create_partner(
        CreatePartnerRequest(name="Suresh Das", phone="9876500001", service_area="South", is_active=False)
    )

    partners, total = await service.list_partners()
    assert total == 2

    partners, total = await service.list_partners(search="south")
    assert total == 1
    assert partners[0].name == "Suresh Das"

    partners, total = await service.list_partners(is_active=True)
    assert [p.name for p in partners] == ["Ravi Kumar"]


@pytest.mark.asyncio
async def test_update_partner(test_session, partner):
    partner = await DeliveryService(test_session).update_partner(
        partner.id, UpdatePartnerRequest(capacity_per_day=35, is_active=False)
    )
    assert partner.capacity_per_day == 35
    assert partner.is_active is False
    assert partner.name == "Ravi Kumar"


@pytest.mark.asyncio
async def test_unknown_partner(test_session):
    with pytest.raises(NotFoundError):
        await DeliveryService(test_session).get_partner_or_raise(uuid4())


@pytest.mark.asyncio
async def test_partner_with_open_assignment_cannot_be_deleted(test_session, customer, admin, partner, notifier):
    await _assigned_booking(test_session, notifier, customer, partner, admin)
    partner_id = partner.id

    with pytest.raises(PartnerInUseError) as exc_info:
        await DeliveryService(test_session).delete_partner(partner_id)
    assert exc_info.value.problem_details["status"] == 409
    assert exc_info.value.problem_details["open_assignments"] == 1


@pytest.mark.asyncio
async def test_partner_deleted_after_delivery(test_session, customer, admin, partner, notifier):
    booking = await _assigned_booking(test_session, notifier, customer, partner, admin)
    await BookingService(test_session, notifier).update_delivery_status(
        booking.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.DELIVERED), admin.email
    )
    partner_id = partner.id

    service = DeliveryService(test_session)
    stats = await service.partner_stats([partner_id])
    assert stats[partner_id].delivered == 1
    assert stats[partner_id].active_assignments == 0

    await service.delete_partner(partner_id)
    assert await test_session.get(DeliveryPartner, partner_id) is None

    assignments, total = await service.list_assignments()
    assert total == 0


@pytest.mark.asyncio
async def test_list_assignments_filters(test_session, customer, admin, partner, notifier):
    await _assigned_booking(test_session, notifier, customer, partner, admin)
    service = DeliveryService(test_session)

    assignments, total = await service.list_assignments(status=AssignmentStatus.ASSIGNED)
    assert total == 1
    assert isinstance(assignments[0], DeliveryAssignment)
    assert assignments[0].partner.name == "Ravi Kumar"

    _, total = await service.list_assignments(status=AssignmentStatus.DELIVERED)
    assert total == 0
    _, total = await service.list_assignments(partner_id=uuid4())
    assert total == 0


@pytest.mark.asyncio
async def test_partner_history_and_active_assignments(test_session, customer, admin, partner, notifier):
    """Test that finished deliveries stay in the history but leave the active list."""
    done = await _assigned_booking(test_session, notifier, customer, partner, admin)
    await BookingService(test_session, notifier).update_delivery_status(
        done.id, UpdateDeliveryStatusRequest(new_status=AssignmentStatus.DELIVERED), admin.email
    )
    pending = await _assigned_booking(test_session, notifier, customer, partner, admin)
    pending_id = pending.id
    partner_id = partner.id
    service = DeliveryService(test_session)

    history, total = await service.list_partner_deliveries(partner_id)
    assert total == 2
    assert {a.booking.quantity for a in history} == {1}

    _, total = await service.list_partner_deliveries(partner_id, status=AssignmentStatus.DELIVERED)
    assert total == 1

    active, total = await service.list_active_assignments()
    assert total == 1
    assert active[0].booking_id == pending_id
    assert active[0].status == AssignmentStatus.ASSIGNED

    _, total = await service.list_active_assignments(partner_id=uuid4())
    assert total == 0


@pytest.mark.asyncio
async def test_history_of_unknown_partner(test_session):
    with pytest.raises(NotFoundError):
        await DeliveryService(test_session).list_partner_deliveries(uuid4())
