"""
Tests for upload validation and storage.
"""
import re

import pytest

from core.errors import InputError, NotFoundError
from services.upload_service import UploadService, public_url
from conftest import make_image_bytes

ALLOWED = ["image/jpeg", "image/png", "image/webp", "image/heic"]


@pytest.fixture
def upload_service(upload_dir):
    return UploadService(str(upload_dir), ALLOWED, max_file_size=1024 * 1024)


class TestValidation:
    def test_rejects_oversize_file_without_writing(self, upload_service, upload_dir):
        data = b"\xff\xd8\xff" + b"0" * (1024 * 1024)

        with pytest.raises(InputError) as exc_info:
            upload_service.save_image("big.jpg", "image/jpeg", data)

        assert exc_info.value.status_code == 413
        assert "File too large" in exc_info.value.message
        assert list(upload_dir.iterdir()) == []

    def test_rejects_disallowed_type_without_writing(self, upload_service, upload_dir):
        with pytest.raises(InputError) as exc_info:
            upload_service.save_image("anim.gif", "image/gif", make_image_bytes(fmt="GIF"))

        assert exc_info.value.message == "Invalid file type. Only JPG, PNG, WebP, and HEIC are allowed."
        assert exc_info.value.status_code == 400
        assert list(upload_dir.iterdir()) == []

    def test_rejects_missing_content_type(self, upload_service):
        with pytest.raises(InputError):
            upload_service.save_image("room.jpg", None, make_image_bytes())

    def test_rejects_empty_file(self, upload_service, upload_dir):
        with pytest.raises(InputError, match="No file provided"):
            upload_service.save_image("room.jpg", "image/jpeg", b"")
        assert list(upload_dir.iterdir()) == []

    def test_accepts_file_at_exact_limit(self, upload_service):
        upload_service.validate("image/png", 1024 * 1024)

    def test_content_type_is_case_insensitive(self, upload_service):
        upload_service.validate("IMAGE/JPEG", 10)


class TestStorage:
    def test_stores_file_under_generated_name(self, upload_service, upload_dir):
        data = make_image_bytes()
        stored = upload_service.save_image("Living Room.JPG", "image/jpeg", data)

        assert re.fullmatch(r"room-\d{13}-[0-9a-f\-]{36}\.jpg", stored.filename)
        assert stored.original_name == "Living Room.JPG"
        assert stored.size == len(data)
        assert stored.url == f"/uploads/{stored.filename}"
        assert (upload_dir / stored.filename).read_bytes() == data

    def test_names_are_unique(self, upload_service):
        first = upload_service.save_image("a.png", "image/png", make_image_bytes(fmt="PNG"))
        second = upload_service.save_image("a.png", "image/png", make_image_bytes(fmt="PNG"))
        assert first.filename != second.filename

    def test_creates_missing_upload_directory(self, tmp_path):
        service = UploadService(str(tmp_path / "nested" / "uploads"), ALLOWED, 1024 * 1024)
        stored = service.save_image("room.webp", "image/webp", make_image_bytes(fmt="WEBP"))
        assert stored.path.is_file()


class TestDelete:
    def test_deletes_stored_file(self, upload_service):
        stored = upload_service.save_image("room.jpg", "image/jpeg", make_image_bytes())
        upload_service.delete(stored.filename)
        assert not stored.path.exists()

    def test_unknown_file_raises_not_found(self, upload_service):
        with pytest.raises(NotFoundError):
            upload_service.delete("room-0-missing.jpg")

    def test_missing_ok(self, upload_service):
        assert upload_service.delete("room-0-missing.jpg", missing_ok=True) is False

    @pytest.mark.parametrize("filename", ["../secret.jpg", "nested/room.jpg", "..\\room.jpg", ".."])
    def test_rejects_path_traversal(self, upload_service, filename):
        with pytest.raises(InputError):
            upload_service.delete(filename)


def test_public_url():
    assert public_url("styled-room_1.jpg") == "/uploads/styled-room_1.jpg"
