"""Registration, login, email verification and password reset."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from ..core.security import create_access_token, generate_token, hash_password, verify_password
from ..models.user import User, UserRole
from ..schemas.user import RegisterRequest, ResetPasswordRequest
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

VERIFICATION_TTL = timedelta(hours=24)
RESET_TTL = timedelta(hours=1)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


class DuplicateAccountError(ConflictError):
    """Exception when an email or login handle already belongs to another account."""

    def __init__(self, field: str):
        label = "email" if field == "email" else "user ID"
        super().__init__(
            detail=f"An account with this {label} already exists",
            conflicting_resource={"field": field},
        )
        self.problem_details.update(
            {"field": field, "code": "EMAIL_EXISTS" if field == "email" else "USER_ID_EXISTS"}
        )


class AuthService:
    """Service for account authentication operations."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def ensure_unique_account(self, email: str, user_id: str) -> None:
        stmt = select(User).where(or_(User.email == email, User.user_id == user_id))
        existing = (await self.db.execute(stmt)).scalars().first()
        if existing:
            field = "email" if existing.email == email else "user_id"
            logger.warning("Account rejected - duplicate", extra={"field": field})
            raise DuplicateAccountError(field)

    async def register(self, request: RegisterRequest) -> User:
        """
        Create an unverified customer account and send the verification email.

        Raises:
            DuplicateAccountError: If the email or user id is already taken
        """
        await self.ensure_unique_account(request.email, request.user_id)

        token = generate_token()
        user = User(
            email=request.email,
            name=request.name.strip(),
            user_id=request.user_id,
            phone=request.phone,
            address=request.address.strip(),
            role=UserRole.USER,
            remaining_quota=settings.yearly_quota,
            password_hash=hash_password(request.password),
            email_verified=False,
            email_verification_token=token,
            email_verification_expiry=datetime.utcnow() + VERIFICATION_TTL,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User registered", extra={"user_pk": str(user.id), "login": user.user_id})

        await self.notifier.send_verification_email(user.email, user.name, token)
        return user

    async def login(self, identifier: str, password: str) -> tuple[str, User]:
        """
        Authenticate by email or user id.

        Returns:
            The bearer token and the user

        Raises:
            AuthenticationError: If the credentials are wrong
            AuthorizationError: If a customer has not verified their email
        """
        ident = identifier.strip()
        stmt = select(User).where(or_(User.email == ident.lower(), User.user_id == ident))
        user = (await self.db.execute(stmt)).scalars().first()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Login failed", extra={"identifier": ident})
            raise AuthenticationError(detail="Invalid credentials")

        if user.role != UserRole.ADMIN and not user.email_verified:
            raise AuthorizationError(detail="Please verify your email address before logging in")

        token = create_access_token(str(user.id), UserRole(user.role).value, email=user.email)
        logger.info("User logged in", extra={"user_pk": str(user.id)})
        return token, user

    async def verify_email(self, token: str) -> User:
        result = await self.db.execute(select(User).where(User.email_verification_token == token))
        user = result.scalar_one_or_none()
        if (
            user is None
            or user.email_verification_expiry is None
            or user.email_verification_expiry < datetime.utcnow()
        ):
            raise ValidationError(detail="Invalid or expired verification token")

        user.email_verified = True
        user.email_verification_token = None
        user.email_verification_expiry = None
        await self.db.commit()

        logger.info("Email verified", extra={"user_pk": str(user.id)})
        return user

    async def resend_verification(self, email: str) -> None:
        user = await self.get_user_by_email(email)
        if user is None:
            raise ValidationError(detail="No account found with this email")
        if user.email_verified:
            raise ValidationError(detail="Email is already verified")
        await self.issue_verification(user)

    async def issue_verification(self, user: User) -> None:
        token = generate_token()
        user.email_verification_token = token
        user.email_verification_expiry = datetime.utcnow() + VERIFICATION_TTL
        await self.db.commit()
        await self.notifier.send_verification_email(user.email, user.name, token)

    async def forgot_password(self, email: str) -> str:
        """Send a reset link to verified accounts. The reply never reveals whether the account exists."""
        user = await self.get_user_by_email(email)
        if user is not None and user.email_verified:
            await self.issue_password_reset(user)
        else:
            logger.info("Password reset requested for unknown or unverified account")
        return FORGOT_PASSWORD_MESSAGE

    async def issue_password_reset(self, user: User) -> None:
        token = generate_token()
        user.reset_token = token
        user.reset_token_expiry = datetime.utcnow() + RESET_TTL
        await self.db.commit()
        await self.notifier.send_password_reset_email(user.email, user.name, token)

    async def _user_for_reset_token(self, token: str) -> User:
        result = await self.db.execute(select(User).where(User.reset_token == token))
        user = result.scalar_one_or_none()
        if user is None or user.reset_token_expiry is None or user.reset_token_expiry < datetime.utcnow():
            raise ValidationError(detail="Invalid or expired reset token")
        return user

    async def validate_reset_token(self, token: str) -> None:
        await self._user_for_reset_token(token)

    async def reset_password(self, request: ResetPasswordRequest) -> None:
        user = await self._user_for_reset_token(request.token)
        user.password_hash = hash_password(request.password)
        user.reset_token = None
        user.reset_token_expiry = None
        await self.db.commit()
        logger.info("Password reset", extra={"user_pk": str(user.id)})
