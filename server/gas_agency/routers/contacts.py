"""Support tickets: customer submission and admin handling."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user, require_admin
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.common import Pagination
from ..schemas.contact import (
    ContactList,
    ContactMessage,
    ContactReply,
    ContactStats,
    ContactStatus,
    CreateContactRequest,
    ReplyRequest,
    UpdateContactRequest,
)
from ..services.contact_service import ContactService
from ..services.notification_service import NotificationService, get_notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])
admin_router = APIRouter(prefix="/api/admin/contacts", tags=["admin-contacts"])

DB_DEPENDENCY = Depends(get_db)
USER_DEPENDENCY = Depends(get_current_user)
ADMIN_DEPENDENCY = Depends(require_admin)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


def convert_ticket_to_schema(ticket_model) -> ContactMessage:
    """Convert contact message model to schema; requires user and replies loaded."""
    user = ticket_model.user
    return ContactMessage(
        id=str(ticket_model.id),
        user_id=str(ticket_model.user_id),
        user_name=user.name if user else None,
        user_email=user.email if user else None,
        subject=ticket_model.subject,
        message=ticket_model.message,
        category=ticket_model.category,
        priority=ticket_model.priority,
        related_booking_id=ticket_model.related_booking_id,
        preferred_contact=ticket_model.preferred_contact,
        phone=ticket_model.phone,
        status=ticket_model.status,
        last_replied_at=ticket_model.last_replied_at,
        created_at=ticket_model.created_at,
        replies=[
            ContactReply(
                id=str(r.id),
                author_id=str(r.author_id) if r.author_id else None,
                body=r.body,
                is_admin=r.is_admin,
                created_at=r.created_at,
            )
            for r in ticket_model.replies
        ],
    )


@router.post("", response_model=ContactMessage, status_code=201)
async def create_ticket(
    request: CreateContactRequest,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactMessage:
    contact_service = ContactService(db, notifier)

    try:
        ticket = await contact_service.create_ticket(user, request)
        return convert_ticket_to_schema(ticket)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in contact message creation",
            extra={"user_pk": str(user.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("", response_model=ContactList)
async def list_my_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactList:
    """The caller's own tickets with replies."""
    tickets, total = await ContactService(db, notifier).list_tickets(page=page, limit=limit, user_id=user.id)
    return ContactList(
        data=[convert_ticket_to_schema(t) for t in tickets],
        pagination=Pagination.build(page, limit, total),
    )


@admin_router.get("", response_model=ContactList)
async def list_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ContactStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactList:
    tickets, total = await ContactService(db, notifier).list_tickets(
        page=page, limit=limit, status=status, search=search
    )
    return ContactList(
        data=[convert_ticket_to_schema(t) for t in tickets],
        pagination=Pagination.build(page, limit, total),
    )


@admin_router.get("/stats", response_model=ContactStats)
async def ticket_stats(
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactStats:
    return ContactStats(**await ContactService(db, notifier).get_stats())


@admin_router.get("/{ticket_id}", response_model=ContactMessage)
async def get_ticket(
    ticket_id: UUID,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactMessage:
    return convert_ticket_to_schema(await ContactService(db, notifier).get_ticket_or_raise(ticket_id))


@admin_router.put("/{ticket_id}", response_model=ContactMessage)
async def update_ticket(
    ticket_id: UUID,
    request: UpdateContactRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactMessage:
    ticket = await ContactService(db, notifier).update_ticket(ticket_id, request)
    return convert_ticket_to_schema(ticket)


@admin_router.post("/{ticket_id}/reply", response_model=ContactMessage)
async def reply_to_ticket(
    ticket_id: UUID,
    request: ReplyRequest,
    admin: User = ADMIN_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> ContactMessage:
    """Reply to the customer by email and record it on the ticket."""
    contact_service = ContactService(db, notifier)

    try:
        ticket = await contact_service.reply(ticket_id, admin, request)
        return convert_ticket_to_schema(ticket)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in contact reply",
            extra={"ticket_id": str(ticket_id), "actor": admin.email, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
