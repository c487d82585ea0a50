"""
Projects API routes: project CRUD, room uploads and visualization generation
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.config import Settings, settings
from core.database import get_db
from core.dependencies import get_orchestrator, get_settings, get_upload_service
from core.errors import NotFoundError
from database.models import Project, ProjectStatus, RoomImage, User
from schemas.common import ApiResponse, PaginatedItems, ok, paginate
from schemas.projects import (
    FurnishedRoomResponse,
    FurnitureSummary,
    GenerateVisualizationRequest,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    RoomUploadResponse,
    VisualizationResponse,
)
from services.upload_service import UploadService, public_url
from services.visualization_service import FurnitureRequestItem, VisualizationOrchestrator, VisualizationOutcome

logger = logging.getLogger(__name__)
router = APIRouter()


async def fetch_projects_page(db: AsyncSession, user: User, page: int, limit: int) -> PaginatedItems[ProjectResponse]:
    """One page of the user's projects, most recently updated first"""
    total = await db.scalar(select(func.count()).select_from(Project).where(Project.user_id == user.id))

    query = (
        select(Project)
        .where(Project.user_id == user.id)
        .order_by(Project.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    projects = [ProjectResponse.model_validate(p) for p in result.scalars().all()]

    return PaginatedItems[ProjectResponse](items=projects, pagination=paginate(page, limit, total or 0))


async def _get_user_project(db: AsyncSession, user: User, project_id: str) -> Project:
    query = select(Project).where(
        Project.id == project_id,
        Project.user_id == user.id,
    )
    result = await db.execute(query)
    project = result.scalar_one_or_none()

    if not project:
        raise NotFoundError("Project not found", error_code="PROJECT_NOT_FOUND")
    return project


@router.get("", response_model=ApiResponse[PaginatedItems[ProjectResponse]])
async def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List all projects for the current user."""
    return ok("Projects retrieved successfully", await fetch_projects_page(db, current_user, page, limit))


@router.post("", response_model=ApiResponse[ProjectResponse], status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = Project(
        user_id=current_user.id,
        name=project_data.name,
        description=project_data.description,
        style_description=project_data.style_description,
        status=ProjectStatus.DRAFT,
    )

    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info(f"Created project {project.id} for user {current_user.id}")

    return ok("Project created successfully", ProjectResponse.model_validate(project))


async def store_room_image(
    db: AsyncSession, user: User, upload_service: UploadService, image: UploadFile
) -> RoomUploadResponse:
    """
    Save an uploaded image and record it as one of the user's room images.

    The file is removed again if the row cannot be committed.
    """
    contents = await image.read()
    stored = upload_service.save_image(image.filename, image.content_type, contents)

    room_image = RoomImage(
        user_id=user.id,
        filename=stored.filename,
        original_name=stored.original_name,
        mime_type=stored.mime_type,
        size=stored.size,
    )
    try:
        db.add(room_image)
        await db.commit()
        await db.refresh(room_image)
    except Exception:
        logger.error(f"Could not record upload {stored.filename}, removing the file")
        stored.path.unlink(missing_ok=True)
        raise

    return RoomUploadResponse(image_id=room_image.id, filename=stored.filename, size=stored.size, url=stored.url)


@router.post("/upload-room", response_model=ApiResponse[RoomUploadResponse])
async def upload_room_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Upload a room photo.

    The returned imageId is what the generate endpoints expect as roomImageId.
    """
    uploaded = await store_room_image(db, current_user, upload_service, image)
    return ok("Room image uploaded successfully", uploaded)


@dataclass
class GenerationRun:
    """A finished generation, before it is shaped into an endpoint's payload"""

    outcome: VisualizationOutcome
    original_url: str
    generated_url: str
    project_id: Optional[str]


async def _run_generation(
    body: GenerateVisualizationRequest,
    current_user: User,
    db: AsyncSession,
    orchestrator: VisualizationOrchestrator,
    upload_service: UploadService,
) -> GenerationRun:
    result = await db.execute(
        select(RoomImage).where(RoomImage.id == body.room_image_id, RoomImage.user_id == current_user.id)
    )
    room_image = result.scalar_one_or_none()
    if not room_image:
        raise NotFoundError(
            "Room image not found. Please upload a room image first.", error_code="ROOM_IMAGE_NOT_FOUND"
        )

    project = None
    if body.project_id:
        project = await _get_user_project(db, current_user, body.project_id)
        project.status = ProjectStatus.PROCESSING
        project.processing_started_at = datetime.utcnow()
        await db.commit()

    furniture_items = [FurnitureRequestItem(id=f.id, name=f.name, image=f.image) for f in body.furniture_items]
    original_url = public_url(room_image.filename)

    try:
        outcome = await orchestrator.generate(
            upload_service.resolve(room_image.filename), furniture_items, body.style_description
        )
    except Exception:
        if project is not None:
            project.status = ProjectStatus.FAILED
            project.processing_ended_at = datetime.utcnow()
            await db.commit()
        raise

    generated_url = public_url(outcome.filename)
    if project is not None:
        project.status = ProjectStatus.COMPLETED
        project.original_image_url = original_url
        project.generated_image_url = generated_url
        project.processing_ended_at = datetime.utcnow()
        await db.commit()

    logger.info(f"Visualization {outcome.filename} ready for user {current_user.id} (source={outcome.source})")

    return GenerationRun(
        outcome=outcome,
        original_url=original_url,
        generated_url=generated_url,
        project_id=project.id if project is not None else None,
    )


@router.post("/generate", response_model=ApiResponse[VisualizationResponse])
async def generate_visualization(
    body: GenerateVisualizationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    orchestrator: VisualizationOrchestrator = Depends(get_orchestrator),
    upload_service: UploadService = Depends(get_upload_service),
):
    """Generate a restyled room image with the selected furniture."""
    run = await _run_generation(body, current_user, db, orchestrator, upload_service)
    return ok(
        "Visualization generated successfully",
        VisualizationResponse(
            visualization_id=str(uuid.uuid4()),
            url=run.generated_url,
            original_room_image=run.original_url,
            generated_at=datetime.utcnow(),
            style_description=body.style_description,
            furniture_count=len(body.furniture_items),
            source=run.outcome.source,
            project_id=run.project_id,
        ),
    )


@router.post("/generate-furniture-room", response_model=ApiResponse[FurnishedRoomResponse])
async def generate_furniture_room(
    body: GenerateVisualizationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    orchestrator: VisualizationOrchestrator = Depends(get_orchestrator),
    upload_service: UploadService = Depends(get_upload_service),
    app_settings: Settings = Depends(get_settings),
):
    """
    Furnish the room with the selected pieces.

    Same workflow as /generate; the payload echoes the selection and names the image model.
    """
    run = await _run_generation(body, current_user, db, orchestrator, upload_service)
    return ok(
        "Furnished room image generated successfully",
        FurnishedRoomResponse(
            visualization_id=str(uuid.uuid4()),
            original_room_image=run.original_url,
            furnished_room_image=run.generated_url,
            generated_at=datetime.utcnow(),
            style_description=body.style_description,
            furniture_count=len(body.furniture_items),
            furniture_items=[FurnitureSummary(id=f.id, name=f.name) for f in body.furniture_items],
            model=app_settings.google_ai_image_model,
            source=run.outcome.source,
            project_id=run.project_id,
        ),
    )


@router.get("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await _get_user_project(db, current_user, project_id)
    return ok("Project retrieved successfully", ProjectResponse.model_validate(project))


@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a project.
    Only updates fields that are provided.
    """
    project = await _get_user_project(db, current_user, project_id)

    update_data = project_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(project, field, value)

    # Always update the timestamp
    project.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(project)

    logger.debug(f"Updated project {project_id} (fields: {list(update_data.keys())})")

    return ok("Project updated successfully", ProjectResponse.model_validate(project))


@router.delete("/{project_id}", response_model=ApiResponse[None])
async def delete_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await _get_user_project(db, current_user, project_id)

    await db.delete(project)
    await db.commit()

    logger.info(f"Deleted project {project_id} for user {current_user.id}")

    return ok("Project deleted successfully")
