"""
Pydantic schemas for projects, room uploads and visualization generation
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from schemas.common import CamelModel


class ProjectStatusEnum(str, Enum):
    """Project lifecycle status"""

    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Request schemas
class ProjectCreate(CamelModel):
    """Schema for creating a project"""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    style_description: str = Field(..., min_length=1, max_length=500)


class ProjectUpdate(CamelModel):
    """Schema for updating a project"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    style_description: Optional[str] = Field(None, min_length=1, max_length=500)


class FurnitureSelection(CamelModel):
    """A furniture reference picked in the frontend"""

    id: str
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)  # Path as known to the frontend bundle


class GenerateVisualizationRequest(CamelModel):
    """Schema for visualization generation"""

    room_image_id: str
    style_description: str = Field(..., max_length=500)
    furniture_items: List[FurnitureSelection] = Field(..., min_length=1)
    project_id: Optional[str] = None

    @field_validator("style_description")
    @classmethod
    def style_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Style description is required")
        return value.strip()


# Response schemas
class ProjectResponse(CamelModel):
    """Schema for full project response"""

    id: str
    name: str
    description: Optional[str] = None
    style_description: str
    original_image_url: Optional[str] = None
    generated_image_url: Optional[str] = None
    status: ProjectStatusEnum
    processing_started_at: Optional[datetime] = None
    processing_ended_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RoomUploadResponse(CamelModel):
    image_id: str
    filename: str
    size: int
    url: str


class VisualizationResponse(CamelModel):
    visualization_id: str
    url: str
    original_room_image: str
    generated_at: datetime
    style_description: str
    furniture_count: int
    source: str  # "ai" or "fallback"
    project_id: Optional[str] = None


class FurnitureSummary(CamelModel):
    id: str
    name: str


class FurnishedRoomResponse(CamelModel):
    """Payload of generate-furniture-room: echoes the selection and the image model"""

    visualization_id: str
    original_room_image: str
    furnished_room_image: str
    generated_at: datetime
    style_description: str
    furniture_count: int
    furniture_items: List[FurnitureSummary]
    model: str
    source: str
    project_id: Optional[str] = None
