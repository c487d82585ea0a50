"""
Generic image upload API routes
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_db
from core.dependencies import get_upload_service
from core.errors import NotFoundError
from database.models import RoomImage, User
from routers.projects import store_room_image
from schemas.common import ApiResponse, ok
from schemas.projects import RoomUploadResponse
from services.upload_service import UploadService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/image", response_model=ApiResponse[RoomUploadResponse], status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
):
    uploaded = await store_room_image(db, current_user, upload_service, image)
    return ok("Image uploaded successfully", uploaded)


@router.delete("/{filename}", response_model=ApiResponse[None])
async def delete_file(
    filename: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
):
    """Delete one of the current user's uploads; a file already gone from disk only loses its record"""
    result = await db.execute(
        delete(RoomImage).where(RoomImage.filename == filename, RoomImage.user_id == current_user.id)
    )
    if result.rowcount == 0:
        raise NotFoundError("File not found")

    if not upload_service.delete(filename, missing_ok=True):
        logger.warning(f"Upload {filename} was already missing on disk, removing its record")
    await db.commit()

    return ok("File deleted successfully")
