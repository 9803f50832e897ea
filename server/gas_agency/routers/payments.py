"""Customer-facing UPI payment endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_user
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.booking import Payment, RetryPaymentRequest
from ..services.notification_service import NotificationService, get_notification_service
from ..services.payment_service import PaymentService
from .bookings import convert_payment_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments/upi", tags=["payments"])

DB_DEPENDENCY = Depends(get_db)
USER_DEPENDENCY = Depends(get_current_user)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


@router.post("/retry", response_model=Payment, status_code=201)
async def retry_upi_payment(
    request: RetryPaymentRequest,
    user: User = USER_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> Payment:
    """Submit a new UPI transaction id after a rejected payment."""
    payment_service = PaymentService(db, notifier)

    try:
        payment = await payment_service.retry_upi_payment(user, request)
        return convert_payment_to_schema(payment)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in UPI payment retry",
            extra={"booking_id": request.booking_id, "user_pk": str(user.id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
