"""CSV exports of bookings and delivery assignments."""

import csv
import io
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import ValidationError
from ..models.booking import Booking
from ..models.delivery import DeliveryAssignment

logger = logging.getLogger(__name__)

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}

BOOKING_COLUMNS = [
    "booking_id", "created_at", "status", "customer", "email", "phone", "quantity",
    "payment_method", "payment_status", "amount", "expected_date", "delivered_at",
]

ASSIGNMENT_COLUMNS = [
    "assignment_id", "booking_id", "partner", "partner_phone", "status", "priority",
    "scheduled_date", "scheduled_time", "assigned_at", "updated_at",
]


def range_start(range_key: str) -> datetime:
    """Start of an export window such as ``30d``."""
    if range_key not in RANGE_DAYS:
        raise ValidationError(detail=f"Invalid range. Must be one of {', '.join(RANGE_DAYS)}")
    return datetime.utcnow() - timedelta(days=RANGE_DAYS[range_key])


def _iso(value) -> str:
    return value.isoformat() if value else ""


def _value(value) -> str:
    return getattr(value, "value", value)


def _write_csv(fieldnames: list[str], rows: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


class ExportService:
    """Builds CSV reports for the admin analytics pages."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def bookings_csv(self, range_key: str = "30d") -> str:
        since = range_start(range_key)
        stmt = (
            select(Booking)
            .options(selectinload(Booking.payments))
            .where(Booking.created_at >= since)
            .order_by(Booking.created_at.desc())
        )
        bookings = (await self.db.execute(stmt)).scalars().all()

        rows = []
        for booking in bookings:
            latest = booking.latest_payment
            rows.append({
                "booking_id": str(booking.id),
                "created_at": _iso(booking.created_at),
                "status": _value(booking.status),
                "customer": booking.user_name or "",
                "email": booking.user_email or "",
                "phone": booking.user_phone or "",
                "quantity": booking.quantity,
                "payment_method": _value(booking.payment_method),
                "payment_status": _value(latest.status) if latest else "",
                "amount": latest.amount if latest else "",
                "expected_date": _iso(booking.expected_date),
                "delivered_at": _iso(booking.delivered_at),
            })

        logger.info("Bookings exported", extra={"range": range_key, "rows": len(rows)})
        return _write_csv(BOOKING_COLUMNS, rows)

    async def assignments_csv(self, range_key: str = "30d") -> str:
        since = range_start(range_key)
        stmt = (
            select(DeliveryAssignment)
            .options(selectinload(DeliveryAssignment.partner))
            .where(DeliveryAssignment.assigned_at >= since)
            .order_by(DeliveryAssignment.assigned_at.desc())
        )
        assignments = (await self.db.execute(stmt)).scalars().all()

        rows = [
            {
                "assignment_id": str(a.id),
                "booking_id": str(a.booking_id),
                "partner": a.partner.name if a.partner else "",
                "partner_phone": a.partner.phone if a.partner else "",
                "status": _value(a.status),
                "priority": a.priority,
                "scheduled_date": _iso(a.scheduled_date),
                "scheduled_time": a.scheduled_time or "",
                "assigned_at": _iso(a.assigned_at),
                "updated_at": _iso(a.updated_at),
            }
            for a in assignments
        ]

        logger.info("Delivery assignments exported", extra={"range": range_key, "rows": len(rows)})
        return _write_csv(ASSIGNMENT_COLUMNS, rows)
