"""
Bearer-token dependencies for FastAPI routes
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.errors import AuthenticationError
from database.models import User
from services.auth_service import auth_service

logger = logging.getLogger(__name__)

# auto_error is off so a missing header becomes our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)


async def _user_from_token(db: AsyncSession, token: str) -> User:
    payload = auth_service.decode_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token", error_code="INVALID_TOKEN")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload", error_code="INVALID_TOKEN")

    user = await auth_service.get_user_by_id(db, user_id)
    if user is None:
        logger.warning(f"Token for unknown user {user_id}")
        raise AuthenticationError("User not found", error_code="USER_NOT_FOUND")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user or answer 401."""
    if credentials is None:
        raise AuthenticationError("Access denied. No token provided.", error_code="NO_TOKEN")
    return await _user_from_token(db, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or stale credentials give None."""
    if credentials is None:
        return None
    try:
        return await _user_from_token(db, credentials.credentials)
    except AuthenticationError:
        return None
