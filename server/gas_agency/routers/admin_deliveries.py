"""Admin delivery partner management and assignment listing."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_admin
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.common import MessageResponse, Pagination
from ..schemas.delivery import (
    AssignmentList,
    AssignmentStatus,
    CreatePartnerRequest,
    DeliveryAssignment,
    DeliveryPartner,
    PartnerList,
    PartnerStats,
    UpdatePartnerRequest,
)
from ..services.delivery_service import DeliveryService
from ..services.export_service import ExportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/deliveries", tags=["admin-deliveries"])

DB_DEPENDENCY = Depends(get_db)
ADMIN_DEPENDENCY = Depends(require_admin)


def convert_partner_to_schema(partner_model, stats: Optional[PartnerStats] = None) -> DeliveryPartner:
    """Convert delivery partner model to schema."""
    return DeliveryPartner(
        id=str(partner_model.id),
        name=partner_model.name,
        phone=partner_model.phone,
        email=partner_model.email,
        vehicle_number=partner_model.vehicle_number,
        service_area=partner_model.service_area,
        capacity_per_day=partner_model.capacity_per_day,
        is_active=partner_model.is_active,
        created_at=partner_model.created_at,
        stats=stats,
    )


def convert_assignment_to_schema(assignment_model) -> DeliveryAssignment:
    partner = assignment_model.partner
    booking = assignment_model.booking
    return DeliveryAssignment(
        id=str(assignment_model.id),
        booking_id=str(assignment_model.booking_id),
        partner_id=str(assignment_model.partner_id),
        partner_name=partner.name if partner else None,
        status=assignment_model.status,
        notes=assignment_model.notes,
        priority=assignment_model.priority,
        scheduled_date=assignment_model.scheduled_date,
        scheduled_time=assignment_model.scheduled_time,
        assigned_at=assignment_model.assigned_at,
        updated_at=assignment_model.updated_at,
        customer_name=(booking.receiver_name or booking.user_name) if booking else None,
        delivery_address=booking.user_address if booking else None,
        quantity=booking.quantity if booking else None,
    )


@router.get("/partners", response_model=PartnerList)
async def list_partners(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    is_active: Optional[bool] = Query(None),
    include_stats: bool = Query(True),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> PartnerList:
    """Partners newest first, with assignment counts unless include_stats is false."""
    delivery_service = DeliveryService(db)
    partners, total = await delivery_service.list_partners(
        page=page, limit=limit, search=search, is_active=is_active
    )
    stats = await delivery_service.partner_stats([p.id for p in partners]) if include_stats else {}
    return PartnerList(
        data=[convert_partner_to_schema(p, stats.get(p.id)) for p in partners],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("/partners", response_model=DeliveryPartner, status_code=201)
async def create_partner(
    request: CreatePartnerRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> DeliveryPartner:
    delivery_service = DeliveryService(db)

    try:
        partner = await delivery_service.create_partner(request)
        return convert_partner_to_schema(partner, PartnerStats())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in partner creation",
            extra={"partner_name": request.name, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/partners/{partner_id}", response_model=DeliveryPartner)
async def get_partner(
    partner_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> DeliveryPartner:
    delivery_service = DeliveryService(db)
    partner = await delivery_service.get_partner_or_raise(partner_id)
    stats = await delivery_service.partner_stats([partner.id])
    return convert_partner_to_schema(partner, stats[partner.id])


@router.put("/partners/{partner_id}", response_model=DeliveryPartner)
async def update_partner(
    partner_id: UUID,
    request: UpdatePartnerRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> DeliveryPartner:
    partner = await DeliveryService(db).update_partner(partner_id, request)
    return convert_partner_to_schema(partner)


@router.delete("/partners/{partner_id}", response_model=MessageResponse)
async def delete_partner(
    partner_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> MessageResponse:
    """Refused while the partner still has deliveries in progress."""
    await DeliveryService(db).delete_partner(partner_id)
    return MessageResponse(message="Delivery partner deleted")


@router.get("/assignments", response_model=AssignmentList)
async def list_assignments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[AssignmentStatus] = Query(None),
    partner_id: Optional[UUID] = Query(None),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> AssignmentList:
    assignments, total = await DeliveryService(db).list_assignments(
        page=page, limit=limit, status=status, partner_id=partner_id
    )
    return AssignmentList(
        data=[convert_assignment_to_schema(a) for a in assignments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/active", response_model=AssignmentList)
async def list_active_assignments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    partner_id: Optional[UUID] = Query(None),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> AssignmentList:
    """Deliveries still assigned, picked up or on the way."""
    assignments, total = await DeliveryService(db).list_active_assignments(
        page=page, limit=limit, partner_id=partner_id
    )
    return AssignmentList(
        data=[convert_assignment_to_schema(a) for a in assignments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/partners/{partner_id}/deliveries", response_model=AssignmentList)
async def list_partner_deliveries(
    partner_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[AssignmentStatus] = Query(None),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> AssignmentList:
    assignments, total = await DeliveryService(db).list_partner_deliveries(
        partner_id, page=page, limit=limit, status=status
    )
    return AssignmentList(
        data=[convert_assignment_to_schema(a) for a in assignments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/analytics/export")
async def export_assignments(
    range_key: str = Query("30d", alias="range", pattern=r"^(7d|30d|90d|1y)$"),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> Response:
    content = await ExportService(db).assignments_csv(range_key)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="deliveries_{range_key}.csv"'},
    )
