"""
Upload handling for room photos.

Validates the declared MIME type and size of an uploaded image and stores it in
the shared uploads directory under a generated unique name.
"""
import logging
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from core.config import Settings
from core.errors import InputError, NotFoundError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"


@dataclass
class StoredUpload:
    """An image written to the uploads directory"""

    filename: str
    original_name: Optional[str]
    mime_type: str
    size: int
    path: Path
    url: str


class UploadService:
    """Service for validating and persisting uploaded images"""

    def __init__(self, upload_dir: str, allowed_types: Iterable[str], max_file_size: int):
        self.upload_dir = Path(upload_dir)
        self.allowed_types = [t.strip().lower() for t in allowed_types]
        self.max_file_size = max_file_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadService":
        return cls(settings.upload_path, settings.allowed_image_types, settings.max_file_size)

    def validate(self, content_type: Optional[str], size: int):
        """Raise InputError if the upload must be rejected"""
        if not content_type or content_type.lower() not in self.allowed_types:
            raise InputError("Invalid file type. Only JPG, PNG, WebP, and HEIC are allowed.")
        if size == 0:
            raise InputError("No file provided")
        if size > self.max_file_size:
            limit_mb = self.max_file_size / (1024 * 1024)
            raise InputError(f"File too large. Maximum size is {limit_mb:g}MB.", status_code=413)

    def generate_filename(self, original_name: Optional[str], prefix: str = "room") -> str:
        ext = os.path.splitext(original_name or "")[1].lower()
        return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4()}{ext}"

    def save_image(self, original_name: Optional[str], content_type: Optional[str], data: bytes) -> StoredUpload:
        """
        Validate and store one image.

        Nothing is written when validation fails.
        """
        self.validate(content_type, len(data))

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = self.generate_filename(original_name)
        path = self.upload_dir / filename
        path.write_bytes(data)

        logger.info(f"Stored upload {filename} ({len(data)} bytes, {content_type})")

        return StoredUpload(
            filename=filename,
            original_name=original_name,
            mime_type=content_type.lower(),
            size=len(data),
            path=path,
            url=public_url(filename),
        )

    def resolve(self, filename: str) -> Path:
        """Map a stored filename back to its path, refusing anything outside the uploads directory"""
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise InputError("Invalid filename")
        return self.upload_dir / filename

    def delete(self, filename: str, missing_ok: bool = False) -> bool:
        """Remove a stored upload; returns False when it was already gone and missing_ok is set"""
        path = self.resolve(filename)
        if not path.is_file():
            if missing_ok:
                return False
            raise NotFoundError("File not found")
        path.unlink()
        logger.info(f"Deleted upload {filename}")
        return True


def public_url(filename: str) -> str:
    return f"{UPLOAD_URL_PREFIX}/{filename}"


def write_unique(directory: Path, prefix: str, data: bytes, ext: str = ".jpg") -> Path:
    """
    Write data to ``<prefix>_<ms timestamp><ext>`` without overwriting an existing file.

    The timestamp is bumped one millisecond at a time until a free name is found.
    """
    directory.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time() * 1000)
    while True:
        path = directory / f"{prefix}_{stamp}{ext}"
        try:
            with open(path, "xb") as fh:
                fh.write(data)
            return path
        except FileExistsError:
            stamp += 1
