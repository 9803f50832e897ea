"""FastAPI dependencies for database sessions and authentication."""

import logging
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User, UserRole
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .security import decode_access_token

logger = logging.getLogger(__name__)


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    parts = authorization.split()
    if len(parts) != 2:
        raise AuthenticationError(detail="Invalid authorization header format")

    scheme, token = parts
    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from a Bearer token.

    The token only identifies the user; the row is reloaded so role and
    quota changes take effect immediately.

    Raises:
        AuthenticationError: If the token is missing, invalid or expired, or
            the user no longer exists
    """
    token = _extract_bearer_token(authorization)

    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(detail="Token has expired")
    except jwt.PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}")

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise AuthenticationError(detail="Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        logger.warning("Token for unknown user", extra={"user_id": str(user_id)})
        raise AuthenticationError(detail="User no longer exists")

    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only administrators."""
    if user.role != UserRole.ADMIN:
        raise AuthorizationError(detail="Administrator access required", required_role=UserRole.ADMIN.value)
    return user


DatabaseSession = Depends(get_db)
CurrentUser = Depends(get_current_user)
AdminUser = Depends(require_admin)
