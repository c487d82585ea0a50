"""
FastAPI main application for Spacify
"""
import logging
import os
import re
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

# Add api directory to path for imports when run as a script
api_dir = os.path.dirname(os.path.abspath(__file__))
if api_dir not in sys.path:
    sys.path.insert(0, api_dir)

from core.config import Settings, settings as default_settings  # noqa: E402
from core.database import Database  # noqa: E402
from core.errors import register_exception_handlers  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from middleware import RequestLoggingMiddleware  # noqa: E402
from routers import auth, furniture, health, projects, uploads, users  # noqa: E402
from schemas.common import ok  # noqa: E402
from services.gemini_service import GeminiImageClient  # noqa: E402
from services.image_compositing_service import FallbackCompositor  # noqa: E402
from services.upload_service import UPLOAD_URL_PREFIX, UploadService  # noqa: E402
from services.visualization_service import VisualizationOrchestrator  # noqa: E402

logger = logging.getLogger(__name__)


def _log_environment(settings: Settings):
    logger.info("=" * 60)
    logger.info("ENVIRONMENT CHECK")
    logger.info("=" * 60)

    if settings.google_ai_api_key:
        key = settings.google_ai_api_key
        key_preview = f"{key[:7]}...{key[-4:]}" if len(key) > 11 else "***"
        logger.info(f"✅ GOOGLE_AI_API_KEY is set: {key_preview}")
    else:
        logger.warning("❌ GOOGLE_AI_API_KEY is NOT set - visualizations will use the fallback composite")

    sanitized = re.sub(r":\/\/[^:]*:[^@]*@", "://***:***@", settings.database_url)
    logger.info(f"DATABASE_URL: {sanitized}")
    logger.info(f"Uploads directory: {Path(settings.upload_path).resolve()}")
    logger.info(f"Frontend root: {Path(settings.frontend_root).resolve()}")
    logger.info("=" * 60)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    image_client: Optional[GeminiImageClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration, defaults to the environment-driven settings
        database: Pre-built database handle; created from settings on startup when omitted
        image_client: Gemini client; created from settings when omitted
    """
    settings = settings or default_settings
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info(f"Starting {settings.app_name}...")
        _log_environment(settings)

        if app.state.database is None:
            app.state.database = Database.from_settings(settings)
        await app.state.database.create_tables()

        logger.info("Application started")

        yield

        logger.info(f"Shutting down {settings.app_name}...")
        await app.state.database.dispose()
        logger.info("Application stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Room visualization API: upload a room, pick furniture, get it restyled",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )

    upload_dir = Path(settings.upload_path)
    upload_dir.mkdir(parents=True, exist_ok=True)

    app.state.settings = settings
    app.state.database = database
    app.state.upload_service = UploadService.from_settings(settings)
    app.state.orchestrator = VisualizationOrchestrator(
        image_client=image_client or GeminiImageClient.from_settings(settings),
        compositor=FallbackCompositor(upload_dir),
        output_dir=upload_dir,
        frontend_root=settings.frontend_root,
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
    app.include_router(furniture.router, prefix="/api/furniture", tags=["furniture"])
    app.include_router(uploads.router, prefix="/api/upload", tags=["upload"])

    # Uploaded rooms and generated visualizations
    app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return ok(
            f"{settings.app_name} is running",
            {
                "name": settings.app_name,
                "version": settings.version,
                "docs": "/docs" if settings.environment == "development" else None,
                "endpoints": {
                    "health": "/health",
                    "auth": "/api/auth",
                    "users": "/api/users",
                    "projects": "/api/projects",
                    "furniture": "/api/furniture",
                    "upload": "/api/upload",
                },
            },
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )
