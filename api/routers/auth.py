"""
Authentication API routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_db
from database.models import User
from schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    RefreshRequest,
    ResetPasswordRequest,
    UserLogin,
    UserRegister,
    UserResponse,
)
from schemas.common import ApiResponse, ok
from services.auth_service import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_payload(user: User, tokens) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user with email and password.
    Returns the user and a token pair on success.
    """
    user, tokens = await auth_service.register(db, user_data)
    return ok("User registered successfully", _auth_payload(user, tokens))


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
):
    """Login with email and password."""
    user, tokens = await auth_service.login(db, credentials.email, credentials.password)
    return ok("Login successful", _auth_payload(user, tokens))


@router.post("/refresh", response_model=ApiResponse[AuthResponse])
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new token pair."""
    user, tokens = await auth_service.refresh(db, body.refresh_token)
    return ok("Token refreshed successfully", _auth_payload(user, tokens))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    body: Optional[RefreshRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Revoke the given refresh token.
    Without a body every refresh token of the user is revoked.
    """
    await auth_service.logout(db, current_user, body.refresh_token if body else None)
    return ok("Logout successful")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user: User = Depends(get_current_user),
):
    """Get current authenticated user's information."""
    return ok("User retrieved successfully", UserResponse.model_validate(current_user))


@router.get("/verify-email/{token}", response_model=ApiResponse[None])
async def verify_email(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.verify_email(db, token)
    return ok("Email verified successfully")


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """Start a password reset. The answer is the same whether or not the account exists."""
    await auth_service.request_password_reset(db, body.email)
    return ok("If an account with that email exists, a password reset link has been sent")


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, body.token, body.password)
    return ok("Password reset successfully")


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, current_user, body.current_password, body.new_password)
    return ok("Password changed successfully")
