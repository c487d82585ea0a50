"""
FastAPI dependencies for the services built at startup
"""
from fastapi import Request

from core.config import Settings
from services.upload_service import UploadService
from services.visualization_service import VisualizationOrchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_orchestrator(request: Request) -> VisualizationOrchestrator:
    return request.app.state.orchestrator
