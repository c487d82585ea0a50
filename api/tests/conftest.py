"""
Pytest configuration and fixtures for Spacify API tests.
"""
import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from PIL import Image

from core.config import Settings
from core.database import Database
from services.gemini_service import GeminiImageClient, GeminiUnavailableError

TEST_PASSWORD = "Sunlight42"

# Reference images the fake frontend bundle serves
SOFA_IMAGE = "/lovable-uploads/test-sofa.png"
CHAIR_IMAGE = "src/assets/furniture/test-chair.png"


def make_image_bytes(size=(100, 100), color=(200, 200, 200), fmt="JPEG", mode="RGB") -> bytes:
    """Encode a solid-colour image."""
    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def upload_dir(tmp_path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def frontend_root(tmp_path) -> Path:
    """A frontend tree holding two furniture references: a red sofa and a blue chair."""
    root = tmp_path / "frontend"
    sofa = root / "public" / SOFA_IMAGE.lstrip("/")
    chair = root / CHAIR_IMAGE
    sofa.parent.mkdir(parents=True)
    chair.parent.mkdir(parents=True)
    sofa.write_bytes(make_image_bytes((200, 100), (255, 0, 0, 255), fmt="PNG", mode="RGBA"))
    chair.write_bytes(make_image_bytes((200, 100), (0, 0, 255, 255), fmt="PNG", mode="RGBA"))
    return root


@pytest.fixture
def room_image_path(upload_dir) -> Path:
    path = upload_dir / "room-1700000000000-test.jpg"
    path.write_bytes(make_image_bytes((1920, 1080)))
    return path


@pytest.fixture
def furniture_selection():
    """Furniture items as the frontend sends them."""
    return [
        {"id": "sofa-1", "name": "Modern Sofa", "image": SOFA_IMAGE},
        {"id": "chair-1", "name": "Neutral Chair", "image": CHAIR_IMAGE},
    ]


@pytest.fixture
def test_settings(upload_dir, frontend_root) -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite:///:memory:",
        upload_path=str(upload_dir),
        frontend_root=str(frontend_root),
        google_ai_api_key="",
        log_format="console",
    )


@pytest.fixture
def mock_image_client():
    """Gemini client double; unavailable unless a test says otherwise."""
    client = MagicMock(spec=GeminiImageClient)
    client.generate_image.side_effect = GeminiUnavailableError("GOOGLE_AI_API_KEY is not configured")
    return client


@pytest.fixture
def app(test_settings, mock_image_client):
    from main import create_app

    return create_app(settings=test_settings, image_client=mock_image_client)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running, so tables exist."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Register a user and return its bearer header."""
    response = client.post(
        "/api/auth/register",
        json={"email": "jane@example.com", "password": TEST_PASSWORD, "firstName": "Jane", "lastName": "Doe"},
    )
    assert response.status_code == 201, response.text
    token = response.json()["data"]["tokens"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


def run_in_app(client: TestClient, fn, *args):
    """Run an async callable on the app's event loop."""
    return client.portal.call(fn, *args)


@pytest_asyncio.fixture
async def database():
    """Standalone in-memory database for service-level tests."""
    db = Database.from_settings(Settings(database_url="sqlite:///:memory:"))
    await db.create_tables()
    yield db
    await db.dispose()
