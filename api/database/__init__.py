"""
Database module for Spacify
"""
from .models import (
    AnalyticsEvent,
    Base,
    FurnitureItem,
    Project,
    ProjectFurniture,
    ProjectStatus,
    RefreshToken,
    RoomImage,
    User,
)

__all__ = [
    "AnalyticsEvent",
    "Base",
    "FurnitureItem",
    "Project",
    "ProjectFurniture",
    "ProjectStatus",
    "RefreshToken",
    "RoomImage",
    "User",
]
