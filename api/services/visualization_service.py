"""
Room visualization workflow.

Loads the room photo and the selected furniture reference images, asks the
Gemini image model for a restyled room and saves the first image it returns.
If the call raises or the reply carries no image, the deterministic fallback
composite is produced from the same inputs instead.
"""
import asyncio
import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image

from core.errors import GenerationError, InputError, NotFoundError
from services.furniture_catalog import resolve_reference_path
from services.gemini_service import GeminiImageClient, InlineImage
from services.image_compositing_service import FallbackCompositor
from services.upload_service import write_unique

logger = logging.getLogger(__name__)

STYLED_OUTPUT_PREFIX = "styled-room"
STYLED_OUTPUT_QUALITY = 95

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
}

STYLE_GUIDELINES = """- If "Modern Minimalist": Clean lines, neutral colors, uncluttered space, sleek furniture
- If "Mid-century Modern": Warm wood tones, geometric patterns, vintage accents
- If "Scandinavian": Light woods, whites and grays, cozy textures, natural light
- If "Industrial": Exposed brick/metal, dark colors, leather, raw materials
- If "Bohemian": Rich colors, layered textures, plants, eclectic mix"""


@dataclass
class FurnitureRequestItem:
    """A furniture piece to place; ``image`` is the frontend path of its reference picture"""

    id: str
    name: str
    image: str


@dataclass
class LoadedReference:
    item: FurnitureRequestItem
    path: Path
    data: bytes


@dataclass
class VisualizationOutcome:
    """Generated image on disk and which path produced it"""

    path: Path
    source: str  # "ai" or "fallback"
    furniture_used: int

    @property
    def filename(self) -> str:
        return self.path.name


def mime_type_for(path: Union[str, Path]) -> str:
    return MIME_TYPES.get(os.path.splitext(str(path))[1].lower(), "image/jpeg")


def build_prompt(style_description: str, furniture_names: Sequence[str]) -> str:
    """Instruction text sent ahead of the room image and the furniture references."""
    furniture_lines = "\n".join(
        f"{index + 1}. {name} (shown in reference image {index + 2})" for index, name in enumerate(furniture_names)
    )
    return f"""You are an expert interior designer. Generate a new image that shows the room in the first image completely transformed with furniture and styling.

TASK: Create a realistic, beautifully styled interior that incorporates the furniture pieces shown and applies the requested design style.

STYLE: {style_description}

FURNITURE TO INCLUDE:
{furniture_lines}

REQUIREMENTS:
1. Transform the room to match the "{style_description}" aesthetic
2. Naturally integrate all the furniture pieces into the room
3. Place furniture in realistic, functional positions
4. Ensure proper scale and proportions
5. Apply appropriate lighting and shadows
6. Modify wall colors, flooring, or decor elements to match the style
7. Make the room look lived-in and cohesive
8. Maintain the original room's architecture and layout

STYLE GUIDELINES:
{STYLE_GUIDELINES}

Generate a photorealistic image of the completely transformed and furnished room."""


def to_jpeg(image: InlineImage) -> bytes:
    """Generated images are stored as .jpg; re-encode anything that is not already JPEG."""
    if image.data.startswith(b"\xff\xd8\xff"):
        return image.data
    with Image.open(io.BytesIO(image.data)) as generated:
        buffer = io.BytesIO()
        generated.convert("RGB").save(buffer, format="JPEG", quality=STYLED_OUTPUT_QUALITY)
    return buffer.getvalue()


class VisualizationOrchestrator:
    """Runs one visualization request end to end"""

    def __init__(
        self,
        image_client: GeminiImageClient,
        compositor: FallbackCompositor,
        output_dir: Union[str, Path],
        frontend_root: Union[str, Path],
    ):
        self.image_client = image_client
        self.compositor = compositor
        self.output_dir = Path(output_dir)
        self.frontend_root = Path(frontend_root)

    def resolve_furniture_path(self, item: FurnitureRequestItem) -> Optional[Path]:
        try:
            return resolve_reference_path(item.image, self.frontend_root)
        except ValueError as e:
            logger.warning(f"Rejected furniture image path for {item.name}: {e}")
            return None

    def load_references(self, furniture_items: Sequence[FurnitureRequestItem]) -> List[LoadedReference]:
        """Read every furniture reference image, skipping the ones that cannot be read."""
        loaded = []
        for item in furniture_items:
            path = self.resolve_furniture_path(item)
            if path is None:
                continue
            try:
                loaded.append(LoadedReference(item=item, path=path, data=path.read_bytes()))
            except OSError as e:
                logger.warning(f"Failed to read furniture image {item.image} ({item.name}): {e}")
        return loaded

    async def generate(
        self,
        room_image_path: Union[str, Path],
        furniture_items: Sequence[FurnitureRequestItem],
        style_description: str,
    ) -> VisualizationOutcome:
        """
        Produce one visualization image.

        Args:
            room_image_path: Uploaded room photo
            furniture_items: Pieces to place, at least one
            style_description: Free-text target style

        Returns:
            VisualizationOutcome for the written file

        Raises:
            InputError: missing style, no furniture, or no readable furniture image
            NotFoundError: the room image file does not exist
            GenerationError: both the AI call and the fallback failed
        """
        if not style_description or not style_description.strip():
            raise InputError("Style description is required")
        if not furniture_items:
            raise InputError("At least one furniture item is required")

        room_path = Path(room_image_path)
        if not room_path.is_file():
            raise NotFoundError("Room image not found. Please upload a room image first.")

        logger.info(f"Processing room image: {room_path.name}")
        logger.info(f"Style description: {style_description}")
        logger.info(f"Number of furniture items: {len(furniture_items)}")

        room_bytes = room_path.read_bytes()
        references = self.load_references(furniture_items)
        logger.info(f"Successfully loaded {len(references)} furniture images")

        if not references:
            raise InputError("No furniture images could be loaded successfully")

        prompt = build_prompt(style_description, [ref.item.name for ref in references])
        images = [InlineImage(data=room_bytes, mime_type=mime_type_for(room_path))]
        images.extend(InlineImage(data=ref.data, mime_type=mime_type_for(ref.path)) for ref in references)

        loop = asyncio.get_running_loop()
        try:
            generated = await loop.run_in_executor(None, self.image_client.generate_image, prompt, images)
            if generated is None:
                raise GenerationError("Model returned no image")
            output_path = write_unique(self.output_dir, STYLED_OUTPUT_PREFIX, to_jpeg(generated))
        except Exception as e:
            logger.warning(f"AI generation unavailable, falling back to composite: {e}")
            return await self._fallback(room_path, furniture_items, e)

        logger.info(f"Generated image saved: {output_path.name} ({output_path.stat().st_size} bytes)")
        return VisualizationOutcome(path=output_path, source="ai", furniture_used=len(references))

    async def _fallback(
        self, room_path: Path, furniture_items: Sequence[FurnitureRequestItem], cause: Exception
    ) -> VisualizationOutcome:
        furniture_paths = [self.resolve_furniture_path(item) for item in furniture_items]
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.compositor.composite, room_path, furniture_paths)
        except Exception as fallback_error:
            logger.error(f"Fallback composite also failed: {fallback_error}", exc_info=True)
            raise GenerationError(
                f"Both AI generation and fallback composite failed. Original error: {cause}"
            ) from fallback_error

        return VisualizationOutcome(path=result.path, source="fallback", furniture_used=result.layers_composited)
