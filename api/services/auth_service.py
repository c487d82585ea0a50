"""
Authentication service for user management and JWT tokens
"""
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import AuthenticationError, ConflictError, InputError
from database.models import Project, RefreshToken, RoomImage, User
from schemas.auth import ProfileUpdate, TokenPair, UserRegister

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def sanitize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Service for authentication operations"""

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
        to_encode = {"sub": user.id, "email": user.email, "type": ACCESS_TOKEN_TYPE, "exp": expire}
        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    def create_refresh_token(self, user: User) -> tuple[str, datetime]:
        """Create a JWT refresh token; the jti keeps every issued token unique"""
        expire = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)
        to_encode = {"sub": user.id, "type": REFRESH_TOKEN_TYPE, "jti": str(uuid.uuid4()), "exp": expire}
        return jwt.encode(to_encode, settings.refresh_secret_key, algorithm=settings.algorithm), expire

    def decode_token(self, token: str, token_type: str = ACCESS_TOKEN_TYPE) -> Optional[dict]:
        """Decode and validate a JWT token"""
        key = settings.refresh_secret_key if token_type == REFRESH_TOKEN_TYPE else settings.secret_key
        try:
            payload = jwt.decode(token, key, algorithms=[settings.algorithm])
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            return None
        if payload.get("type") != token_type:
            return None
        return payload

    async def issue_tokens(self, db: AsyncSession, user: User) -> TokenPair:
        """Create an access/refresh pair and persist the refresh token"""
        refresh_token, expires_at = self.create_refresh_token(user)
        db.add(RefreshToken(user_id=user.id, token=refresh_token, expires_at=expires_at))
        await db.commit()
        return TokenPair(access_token=self.create_access_token(user), refresh_token=refresh_token)

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """Get a user by email"""
        result = await db.execute(select(User).where(User.email == sanitize_email(email)))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, db: AsyncSession, user_id: str) -> Optional[User]:
        """Get a user by ID"""
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def register(self, db: AsyncSession, data: UserRegister) -> tuple[User, TokenPair]:
        """Create a new user and log them in"""
        email = sanitize_email(data.email)
        if await self.get_user_by_email(db, email):
            raise ConflictError("User with this email already exists", error_code="USER_EXISTS")

        user = User(
            email=email,
            password_hash=self.hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            email_verified=False,
            verification_token=secrets.token_urlsafe(32),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        # Delivery of the verification mail is handled outside this service
        logger.info(f"User registered: {user.id} ({email})")
        return user, await self.issue_tokens(db, user)

    async def authenticate_user(self, db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate a user with email and password"""
        user = await self.get_user_by_email(db, email)
        if not user or not user.password_hash:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> tuple[User, TokenPair]:
        user = await self.authenticate_user(db, email, password)
        if not user:
            raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")
        logger.info(f"User logged in: {user.id}")
        return user, await self.issue_tokens(db, user)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> tuple[User, TokenPair]:
        """Exchange a refresh token for a new pair; the old refresh token is revoked"""
        payload = self.decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        if not payload:
            raise AuthenticationError("Invalid or expired refresh token", error_code="INVALID_TOKEN")

        result = await db.execute(select(RefreshToken).where(RefreshToken.token == refresh_token))
        stored = result.scalar_one_or_none()
        if not stored or stored.expires_at < datetime.utcnow():
            raise AuthenticationError("Invalid or expired refresh token", error_code="INVALID_TOKEN")

        user = await self.get_user_by_id(db, payload["sub"])
        if not user:
            raise AuthenticationError("User not found", error_code="USER_NOT_FOUND")

        await db.delete(stored)
        await db.commit()
        return user, await self.issue_tokens(db, user)

    async def logout(self, db: AsyncSession, user: User, refresh_token: Optional[str] = None):
        """Revoke one refresh token, or all of the user's tokens when none is given"""
        query = delete(RefreshToken).where(RefreshToken.user_id == user.id)
        if refresh_token:
            query = query.where(RefreshToken.token == refresh_token)
        await db.execute(query)
        await db.commit()

    async def verify_email(self, db: AsyncSession, token: str):
        result = await db.execute(select(User).where(User.verification_token == token))
        user = result.scalar_one_or_none()
        if not user:
            raise InputError("Invalid or expired verification token", error_code="INVALID_TOKEN")
        if user.email_verified:
            raise InputError("Email already verified", error_code="EMAIL_ALREADY_VERIFIED")

        user.email_verified = True
        user.verification_token = None
        await db.commit()
        logger.info(f"Email verified for user {user.id}")

    async def request_password_reset(self, db: AsyncSession, email: str) -> Optional[str]:
        """
        Store a reset token for the account, if it exists.

        Returns the token (None for unknown emails) so the caller can hand it to
        whatever delivers the reset mail. Responses must not reveal which case hit.
        """
        user = await self.get_user_by_email(db, email)
        if not user:
            return None

        user.reset_token = secrets.token_urlsafe(32)
        user.reset_token_expiry = datetime.utcnow() + timedelta(minutes=settings.password_reset_expire_minutes)
        await db.commit()
        logger.info(f"Password reset requested for user {user.id}")
        return user.reset_token

    async def reset_password(self, db: AsyncSession, token: str, new_password: str):
        result = await db.execute(select(User).where(User.reset_token == token))
        user = result.scalar_one_or_none()
        if not user or not user.reset_token_expiry or user.reset_token_expiry < datetime.utcnow():
            raise InputError("Invalid or expired reset token", error_code="INVALID_TOKEN")

        user.password_hash = self.hash_password(new_password)
        user.reset_token = None
        user.reset_token_expiry = None
        await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user.id))
        await db.commit()
        logger.info(f"Password reset for user {user.id}")

    async def change_password(self, db: AsyncSession, user: User, current_password: str, new_password: str):
        if not user.password_hash or not self.verify_password(current_password, user.password_hash):
            raise InputError("Current password is incorrect")
        if self.verify_password(new_password, user.password_hash):
            raise InputError("New password must be different from current password")

        user.password_hash = self.hash_password(new_password)
        await db.commit()
        logger.info(f"Password changed for user {user.id}")

    async def update_profile(self, db: AsyncSession, user: User, data: ProfileUpdate) -> User:
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            raise InputError("No fields to update", error_code="NO_UPDATE_FIELDS")

        if update_data.get("email"):
            email = sanitize_email(update_data["email"])
            existing = await self.get_user_by_email(db, email)
            if existing and existing.id != user.id:
                raise ConflictError("User with this email already exists", error_code="USER_EXISTS")
            update_data["email"] = email
        elif "email" in update_data:
            del update_data["email"]

        for field, value in update_data.items():
            setattr(user, field, value)
        user.updated_at = datetime.utcnow()

        await db.commit()
        await db.refresh(user)
        logger.info(f"Profile updated for user {user.id} (fields: {list(update_data.keys())})")
        return user

    async def delete_account(self, db: AsyncSession, user: User):
        """Remove the user together with their tokens, room images and projects"""
        for model in (RefreshToken, RoomImage, Project):
            await db.execute(delete(model).where(model.user_id == user.id))
        await db.delete(user)
        await db.commit()
        logger.info(f"Deleted account {user.id}")


# Global service instance
auth_service = AuthService()
