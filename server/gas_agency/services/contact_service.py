"""Support tickets and replies."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import NotFoundError
from ..models.contact import ContactMessage, ContactReply, ContactStatus
from ..models.user import User
from ..schemas.contact import CreateContactRequest, ReplyRequest, UpdateContactRequest
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

TICKET_LOAD_OPTIONS = (
    selectinload(ContactMessage.replies),
    selectinload(ContactMessage.user),
)


class ContactService:
    """Service for customer support tickets."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    async def get_ticket_or_raise(self, ticket_id: UUID) -> ContactMessage:
        stmt = (
            select(ContactMessage)
            .options(*TICKET_LOAD_OPTIONS)
            .where(ContactMessage.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        ticket = (await self.db.execute(stmt)).scalar_one_or_none()
        if ticket is None:
            raise NotFoundError(resource_type="contact message", resource_id=str(ticket_id))
        return ticket

    async def create_ticket(self, user: User, request: CreateContactRequest) -> ContactMessage:
        """Open a ticket, alert the admin mailbox and acknowledge the customer."""
        ticket = ContactMessage(
            user_id=user.id,
            subject=request.subject.strip(),
            message=request.message.strip(),
            category=request.category,
            priority=request.priority or "normal",
            related_booking_id=request.related_booking_id,
            preferred_contact=request.preferred_contact,
            phone=request.phone or user.phone,
            status=ContactStatus.NEW,
        )
        self.db.add(ticket)
        await self.db.commit()

        logger.info(
            "Contact message created",
            extra={"ticket_id": str(ticket.id), "user_pk": str(user.id), "category": ticket.category},
        )

        ticket = await self.get_ticket_or_raise(ticket.id)
        await self.notifier.send_contact_received(ticket, ticket.user)
        return ticket

    async def list_tickets(
        self,
        page: int = 1,
        limit: int = 20,
        user_id: Optional[UUID] = None,
        status: Optional[ContactStatus] = None,
        search: Optional[str] = None,
    ) -> tuple[list[ContactMessage], int]:
        filters = []
        if user_id is not None:
            filters.append(ContactMessage.user_id == user_id)
        if status is not None:
            filters.append(ContactMessage.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(ContactMessage.subject.ilike(pattern), ContactMessage.message.ilike(pattern)))

        total = (await self.db.execute(
            select(func.count()).select_from(ContactMessage).where(*filters)
        )).scalar_one()

        stmt = (
            select(ContactMessage)
            .options(*TICKET_LOAD_OPTIONS)
            .where(*filters)
            .order_by(ContactMessage.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        tickets = (await self.db.execute(stmt)).scalars().all()
        return list(tickets), total

    async def update_ticket(self, ticket_id: UUID, request: UpdateContactRequest) -> ContactMessage:
        ticket = await self.get_ticket_or_raise(ticket_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(ticket, field, value)
        await self.db.commit()

        logger.info("Contact message updated", extra={"ticket_id": str(ticket_id)})
        return await self.get_ticket_or_raise(ticket_id)

    async def reply(self, ticket_id: UUID, admin: User, request: ReplyRequest) -> ContactMessage:
        """Add a staff reply, reopen or set the status, and email the customer."""
        ticket = await self.get_ticket_or_raise(ticket_id)
        now = datetime.utcnow()

        self.db.add(ContactReply(
            message_id=ticket.id,
            author_id=admin.id,
            body=request.body.strip(),
            is_admin=True,
            created_at=now,
        ))
        ticket.status = request.status or ContactStatus.OPEN
        ticket.last_replied_at = now
        await self.db.commit()

        logger.info(
            "Contact message replied",
            extra={"ticket_id": str(ticket_id), "ticket_status": ContactStatus(ticket.status).value, "actor": admin.email},
        )

        ticket = await self.get_ticket_or_raise(ticket_id)
        await self.notifier.send_contact_reply(ticket, ticket.user, request.body.strip())
        return ticket

    async def get_stats(self) -> dict:
        counts = dict((await self.db.execute(
            select(ContactMessage.status, func.count()).group_by(ContactMessage.status)
        )).all())
        stats = {status.value.lower(): counts.get(status.value, 0) for status in ContactStatus}
        stats["total"] = sum(counts.values())
        return stats
