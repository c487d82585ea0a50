"""
Pydantic schemas for authentication and user profiles
"""
import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, EmailStr, Field

from schemas.common import CamelModel

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError("Password must contain at least one lowercase letter, one uppercase letter, and one number")
    return value


StrongPassword = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(_check_password_strength)]


# Request schemas
class UserRegister(CamelModel):
    """Schema for user registration"""

    email: EmailStr
    password: StrongPassword
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class UserLogin(CamelModel):
    """Schema for user login"""

    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str
    password: StrongPassword


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: StrongPassword


class ProfileUpdate(CamelModel):
    """Schema for profile updates; only provided fields are changed"""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = None


# Response schemas
class UserResponse(CamelModel):
    """Schema for user response"""

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email_verified: bool
    created_at: datetime
    updated_at: datetime


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(CamelModel):
    """Schema for login/register response"""

    user: UserResponse
    tokens: TokenPair
