"""
User profile API routes
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.config import settings
from core.database import get_db
from database.models import User
from routers.projects import fetch_projects_page
from schemas.auth import ProfileUpdate, UserResponse
from schemas.common import ApiResponse, PaginatedItems, ok
from schemas.projects import ProjectResponse
from services.auth_service import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(current_user: User = Depends(get_current_user)):
    return ok("Profile retrieved successfully", UserResponse.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update profile fields; at least one field must be provided."""
    user = await auth_service.update_profile(db, current_user, profile_data)
    return ok("Profile updated successfully", UserResponse.model_validate(user))


@router.delete("/account", response_model=ApiResponse[None])
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.delete_account(db, current_user)
    return ok("Account deleted successfully")


@router.get("/projects", response_model=ApiResponse[PaginatedItems[ProjectResponse]])
async def get_user_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return ok("User projects retrieved successfully", await fetch_projects_page(db, current_user, page, limit))
