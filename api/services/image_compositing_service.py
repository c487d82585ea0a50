"""
Fallback compositing for room visualizations.

When the image model is unavailable, furniture reference images are shrunk to
thumbnails and pasted onto the room photo in a fixed three-column grid. Pure
Python/PIL implementation - no AI costs, and the same inputs always give the
same picture.

Layout for furniture index i on a W x H room:
    thumbnail box = floor(W * 0.15) x floor(H * 0.15), aspect preserved
    x = (i % 3) * floor(W / 3) + 50
    y = (i // 3) * floor(H / 3) + 100
"""
import io
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from PIL import Image

from services.upload_service import write_unique

logger = logging.getLogger(__name__)

GRID_COLUMNS = 3
GRID_ROWS = 3
GRID_OFFSET_X = 50
GRID_OFFSET_Y = 100
THUMBNAIL_SCALE = 0.15
OUTPUT_QUALITY = 85
OUTPUT_PREFIX = "fallback-composite"

PathLike = Union[str, Path]


@dataclass
class Placement:
    """Where one furniture overlay landed"""

    index: int
    x: int
    y: int
    width: int
    height: int


@dataclass
class CompositeResult:
    """Result from fallback compositing."""

    path: Path
    processing_time: float
    dimensions: Tuple[int, int]
    placements: List[Placement] = field(default_factory=list)

    @property
    def layers_composited(self) -> int:
        return len(self.placements)


def grid_position(index: int, width: int, height: int) -> Tuple[int, int]:
    """Top-left corner for the overlay at ``index`` on a ``width`` x ``height`` room."""
    column = index % GRID_COLUMNS
    row = index // GRID_COLUMNS
    return column * (width // GRID_COLUMNS) + GRID_OFFSET_X, row * (height // GRID_ROWS) + GRID_OFFSET_Y


def thumbnail_box(width: int, height: int) -> Tuple[int, int]:
    return max(1, int(width * THUMBNAIL_SCALE)), max(1, int(height * THUMBNAIL_SCALE))


def fit_inside(image: Image.Image, box_width: int, box_height: int) -> Image.Image:
    """
    Resize so the image fits inside the box, keeping its aspect ratio.

    Small images are enlarged as well.
    """
    scale = min(box_width / image.width, box_height / image.height)
    size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
    return image.resize(size, Image.Resampling.LANCZOS)


class FallbackCompositor:
    """Deterministic offline composer used when AI generation yields nothing."""

    def __init__(self, output_dir: PathLike, quality: int = OUTPUT_QUALITY):
        self.output_dir = Path(output_dir)
        self.quality = quality

    def composite(self, room_image_path: PathLike, furniture_paths: Sequence[Optional[PathLike]]) -> CompositeResult:
        """
        Overlay furniture thumbnails on the room image and save the JPEG.

        Args:
            room_image_path: Room photo on disk
            furniture_paths: Reference images in selection order. Unreadable
                or None entries are skipped but keep their grid slot.

        Returns:
            CompositeResult pointing at the written file
        """
        start_time = time.time()

        with Image.open(room_image_path) as room:
            room.load()
            canvas = room.convert("RGBA")
        width, height = canvas.size
        logger.info(f"[Fallback] Room size: {width}x{height}, {len(furniture_paths)} furniture items")

        box_width, box_height = thumbnail_box(width, height)
        placements: List[Placement] = []

        for index, furniture_path in enumerate(furniture_paths):
            if furniture_path is None:
                continue
            try:
                overlay = self._load_overlay(furniture_path, box_width, box_height)
            except (OSError, ValueError) as e:
                logger.warning(f"[Fallback] Skipping unreadable furniture image {furniture_path}: {e}")
                continue

            x, y = grid_position(index, width, height)
            canvas.paste(overlay, (x, y), overlay)
            placements.append(Placement(index=index, x=x, y=y, width=overlay.width, height=overlay.height))

        buffer = io.BytesIO()
        canvas.convert("RGB").save(buffer, format="JPEG", quality=self.quality)
        output_path = write_unique(self.output_dir, OUTPUT_PREFIX, buffer.getvalue())

        processing_time = time.time() - start_time
        logger.info(f"[Fallback] Composited {len(placements)} overlays in {processing_time:.2f}s -> {output_path.name}")

        return CompositeResult(
            path=output_path,
            processing_time=processing_time,
            dimensions=(width, height),
            placements=placements,
        )

    def _load_overlay(self, path: PathLike, box_width: int, box_height: int) -> Image.Image:
        with Image.open(path) as image:
            image.load()
            overlay = image.convert("RGBA")
        return fit_inside(overlay, box_width, box_height)
