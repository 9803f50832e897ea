"""Delivery partner management and assignment listing."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ConflictError, NotFoundError
from ..models.delivery import AssignmentStatus, DeliveryAssignment, DeliveryPartner
from ..schemas.delivery import CreatePartnerRequest, PartnerStats, UpdatePartnerRequest
from .lifecycle import OPEN_ASSIGNMENT_STATUSES

logger = logging.getLogger(__name__)


class PartnerInUseError(ConflictError):
    """Exception when a partner still has deliveries in progress."""

    def __init__(self, partner_id: str, open_assignments: int):
        super().__init__(
            detail="Cannot delete partner with active assignments",
            conflicting_resource={"partner_id": partner_id, "open_assignments": open_assignments},
        )
        self.problem_details.update({"code": "PARTNER_IN_USE", "open_assignments": open_assignments})


class DeliveryService:
    """Service for delivery partners and their assignments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_partner_or_raise(self, partner_id: UUID) -> DeliveryPartner:
        partner = await self.db.get(DeliveryPartner, partner_id)
        if partner is None:
            raise NotFoundError(resource_type="delivery partner", resource_id=str(partner_id))
        return partner

    async def list_partners(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[DeliveryPartner], int]:
        """
        Search partners by name, phone or service area.

        Returns:
            The page of partners and the total number of matches
        """
        filters = []
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(
                DeliveryPartner.name.ilike(pattern),
                DeliveryPartner.phone.ilike(pattern),
                DeliveryPartner.service_area.ilike(pattern),
            ))
        if is_active is not None:
            filters.append(DeliveryPartner.is_active == is_active)

        total = (await self.db.execute(
            select(func.count()).select_from(DeliveryPartner).where(*filters)
        )).scalar_one()

        stmt = (
            select(DeliveryPartner)
            .where(*filters)
            .order_by(DeliveryPartner.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        partners = (await self.db.execute(stmt)).scalars().all()
        return list(partners), total

    async def partner_stats(self, partner_ids: list[UUID]) -> dict[UUID, PartnerStats]:
        """Assignment counts per partner, keyed by partner id."""
        stats = {pid: PartnerStats() for pid in partner_ids}
        if not partner_ids:
            return stats

        stmt = (
            select(DeliveryAssignment.partner_id, DeliveryAssignment.status, func.count())
            .where(DeliveryAssignment.partner_id.in_(partner_ids))
            .group_by(DeliveryAssignment.partner_id, DeliveryAssignment.status)
        )
        for partner_id, status, count in (await self.db.execute(stmt)).all():
            entry = stats[partner_id]
            entry.total_assignments += count
            if status in OPEN_ASSIGNMENT_STATUSES:
                entry.active_assignments += count
            elif status == AssignmentStatus.DELIVERED:
                entry.delivered += count
            elif status == AssignmentStatus.FAILED:
                entry.failed += count
        return stats

    async def create_partner(self, request: CreatePartnerRequest) -> DeliveryPartner:
        partner = DeliveryPartner(**request.model_dump())
        self.db.add(partner)
        await self.db.commit()
        await self.db.refresh(partner)

        logger.info(
            "Delivery partner created",
            extra={"partner_id": str(partner.id), "partner_name": partner.name},
        )
        return partner

    async def update_partner(self, partner_id: UUID, request: UpdatePartnerRequest) -> DeliveryPartner:
        partner = await self.get_partner_or_raise(partner_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(partner, field, value)
        await self.db.commit()
        await self.db.refresh(partner)

        logger.info("Delivery partner updated", extra={"partner_id": str(partner.id)})
        return partner

    async def delete_partner(self, partner_id: UUID) -> None:
        """
        Delete a partner.

        Raises:
            NotFoundError: If the partner does not exist
            PartnerInUseError: If the partner has assignments still in progress
        """
        partner = await self.get_partner_or_raise(partner_id)

        open_count = (await self.db.execute(
            select(func.count())
            .select_from(DeliveryAssignment)
            .where(
                DeliveryAssignment.partner_id == partner_id,
                DeliveryAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
            )
        )).scalar_one()
        if open_count:
            logger.warning(
                "Partner deletion blocked by open assignments",
                extra={"partner_id": str(partner_id), "open_assignments": open_count},
            )
            raise PartnerInUseError(str(partner_id), open_count)

        # Finished assignments go with the partner
        closed = await self.db.execute(
            select(DeliveryAssignment).where(DeliveryAssignment.partner_id == partner_id)
        )
        for assignment in closed.scalars().all():
            await self.db.delete(assignment)

        await self.db.delete(partner)
        await self.db.commit()
        logger.info("Delivery partner deleted", extra={"partner_id": str(partner_id)})

    async def list_assignments(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[AssignmentStatus] = None,
        partner_id: Optional[UUID] = None,
        open_only: bool = False,
    ) -> tuple[list[DeliveryAssignment], int]:
        filters = []
        if status is not None:
            filters.append(DeliveryAssignment.status == status)
        if partner_id is not None:
            filters.append(DeliveryAssignment.partner_id == partner_id)
        if open_only:
            filters.append(DeliveryAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES))

        total = (await self.db.execute(
            select(func.count()).select_from(DeliveryAssignment).where(*filters)
        )).scalar_one()

        stmt = (
            select(DeliveryAssignment)
            .options(selectinload(DeliveryAssignment.partner), selectinload(DeliveryAssignment.booking))
            .where(*filters)
            .order_by(DeliveryAssignment.assigned_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        assignments = (await self.db.execute(stmt)).scalars().all()
        return list(assignments), total

    async def list_partner_deliveries(
        self,
        partner_id: UUID,
        page: int = 1,
        limit: int = 20,
        status: Optional[AssignmentStatus] = None,
    ) -> tuple[list[DeliveryAssignment], int]:
        """
        Delivery history of one partner, newest first.

        Raises:
            NotFoundError: If the partner does not exist
        """
        await self.get_partner_or_raise(partner_id)
        return await self.list_assignments(page=page, limit=limit, status=status, partner_id=partner_id)

    async def list_active_assignments(
        self,
        page: int = 1,
        limit: int = 20,
        partner_id: Optional[UUID] = None,
    ) -> tuple[list[DeliveryAssignment], int]:
        """Assignments not yet delivered or failed."""
        return await self.list_assignments(page=page, limit=limit, partner_id=partner_id, open_only=True)
