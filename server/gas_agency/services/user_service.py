"""Profile, quota and account administration."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.security import generate_token, hash_password
from ..models.booking import Booking, BookingStatus
from ..models.user import User, UserRole
from ..schemas.user import AdminCreateUserRequest, AdminUpdateUserRequest, UpdateProfileRequest, UserAction
from .auth_service import RESET_TTL, VERIFICATION_TTL, AuthService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

LOW_QUOTA_THRESHOLD = 2


class UserService:
    """Service for user profile and admin account operations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    async def get_user_or_raise(self, user_pk: UUID) -> User:
        user = await self.db.get(User, user_pk)
        if user is None:
            raise NotFoundError(resource_type="user", resource_id=str(user_pk))
        return user

    async def update_profile(self, user: User, request: UpdateProfileRequest) -> User:
        for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("Profile updated", extra={"user_pk": str(user.id)})
        return user

    async def get_quota(self, user: User) -> dict:
        """Remaining quota plus cylinders booked (not cancelled) this calendar year."""
        year_start = datetime(datetime.utcnow().year, 1, 1)
        used = (await self.db.execute(
            select(func.coalesce(func.sum(Booking.quantity), 0)).where(
                Booking.user_id == user.id,
                Booking.status != BookingStatus.CANCELLED,
                Booking.requested_at >= year_start,
            )
        )).scalar_one()
        return {
            "remaining_quota": user.remaining_quota,
            "yearly_quota": settings.yearly_quota,
            "used": int(used),
        }

    # Admin operations

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> tuple[list[User], int]:
        filters = []
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.user_id.ilike(pattern),
                User.phone.ilike(pattern),
            ))
        if role is not None:
            filters.append(User.role == role)

        total = (await self.db.execute(select(func.count()).select_from(User).where(*filters))).scalar_one()
        stmt = (
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list((await self.db.execute(stmt)).scalars().all()), total

    async def create_user(self, request: AdminCreateUserRequest, actor: str) -> User:
        """
        Create an unverified account on a user's behalf.

        The account gets no usable password: the verification and password
        setup links are both emailed, and the reset link sets the password.

        Raises:
            DuplicateAccountError: If the email or user id is already taken
        """
        await AuthService(self.db, self.notifier).ensure_unique_account(request.email, request.user_id)

        verification_token = generate_token()
        reset_token = generate_token()
        now = datetime.utcnow()
        user = User(
            email=request.email,
            name=request.name.strip(),
            user_id=request.user_id,
            phone=request.phone,
            address=request.address.strip(),
            role=request.role.value,
            remaining_quota=settings.yearly_quota,
            password_hash=hash_password(generate_token()),
            email_verified=False,
            email_verification_token=verification_token,
            email_verification_expiry=now + VERIFICATION_TTL,
            reset_token=reset_token,
            reset_token_expiry=now + RESET_TTL,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User created by admin", extra={"user_pk": str(user.id), "role": user.role, "actor": actor})

        await self.notifier.send_verification_email(user.email, user.name, verification_token)
        await self.notifier.send_password_reset_email(user.email, user.name, reset_token)
        return user

    async def admin_update_user(self, user_pk: UUID, request: AdminUpdateUserRequest, actor: str) -> User:
        """
        Raises:
            NotFoundError: If the user does not exist
            ConflictError: If the request tries to change the email or user id
        """
        user = await self.get_user_or_raise(user_pk)

        if request.email is not None and request.email.lower() != user.email:
            raise ConflictError(detail="Email address cannot be changed", conflicting_resource={"field": "email"})
        if request.user_id is not None and request.user_id != user.user_id:
            raise ConflictError(detail="User ID cannot be changed", conflicting_resource={"field": "user_id"})

        changes = request.model_dump(exclude_unset=True, exclude={"email", "user_id"})
        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User updated by admin",
            extra={"user_pk": str(user_pk), "changed_fields": sorted(changes), "actor": actor},
        )
        return user

    async def delete_user(self, user_pk: UUID, admin: User) -> None:
        if user_pk == admin.id:
            raise ValidationError(detail="You cannot delete your own account")
        user = await self.get_user_or_raise(user_pk)
        await self.db.delete(user)
        await self.db.commit()
        logger.info("User deleted", extra={"user_pk": str(user_pk), "actor": admin.email})

    async def perform_action(self, user_pk: UUID, action: UserAction, actor: str) -> str:
        """Re-send the verification email or start a password reset for a user."""
        user = await self.get_user_or_raise(user_pk)
        auth_service = AuthService(self.db, self.notifier)

        if action == UserAction.RESEND_VERIFICATION:
            if user.email_verified:
                raise ValidationError(detail="Email is already verified")
            await auth_service.issue_verification(user)
            message = "Verification email sent"
        else:
            await auth_service.issue_password_reset(user)
            message = "Password reset email sent"

        logger.info("Admin user action", extra={"user_pk": str(user_pk), "action": action.value, "actor": actor})
        return message

    async def get_stats(self) -> dict:
        total = (await self.db.execute(select(func.count()).select_from(User))).scalar_one()
        admins = (await self.db.execute(
            select(func.count()).select_from(User).where(User.role == UserRole.ADMIN)
        )).scalar_one()
        verified = (await self.db.execute(
            select(func.count()).select_from(User).where(User.email_verified.is_(True))
        )).scalar_one()
        low = (await self.db.execute(
            select(func.count()).select_from(User).where(User.remaining_quota <= LOW_QUOTA_THRESHOLD)
        )).scalar_one()
        return {
            "total": total,
            "admins": admins,
            "verified": verified,
            "unverified": total - verified,
            "with_quota_low": low,
        }
