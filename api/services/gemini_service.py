"""
Google Gemini image generation client.

Sends a prompt plus inline reference images to a multimodal Gemini model that
answers with text and image parts, and pulls the first image out of the reply.
"""
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from core.config import Settings

logger = logging.getLogger(__name__)

# Magic numbers of the formats Gemini returns
IMAGE_SIGNATURES = (b"\x89PNG", b"\xff\xd8\xff", b"RIFF", b"GIF8")


class GeminiUnavailableError(RuntimeError):
    """Raised when no API key is configured"""


@dataclass
class InlineImage:
    """An image sent to or received from the model"""

    data: bytes
    mime_type: str = "image/jpeg"


class GeminiImageClient:
    """Service for Gemini image generation"""

    def __init__(self, api_key: str, model: str, client: Optional[Any] = None):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = genai.Client(api_key=api_key)
            if len(api_key) > 12:
                logger.info(f"Google AI API Key loaded: {api_key[:8]}...{api_key[-4:]}")
        if self.client is None:
            logger.warning("Google AI API key not configured - visualizations will use the fallback composite")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiImageClient":
        return cls(settings.google_ai_api_key, settings.google_ai_image_model)

    @property
    def configured(self) -> bool:
        return self.client is not None

    def generate_image(self, prompt: str, images: Sequence[InlineImage]) -> Optional[InlineImage]:
        """
        Run one generation request.

        Blocking; callers on the event loop should run it in an executor.

        Returns:
            The first inline image in the reply, or None when the model only
            answered with text
        """
        if not self.configured:
            raise GeminiUnavailableError("GOOGLE_AI_API_KEY is not configured")

        parts = [types.Part.from_text(text=prompt)]
        parts.extend(types.Part.from_bytes(data=image.data, mime_type=image.mime_type) for image in images)

        config = types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"])

        logger.info(f"Sending request to {self.model} with {len(images)} images")
        response = self.client.models.generate_content(
            model=self.model,
            contents=[types.Content(role="user", parts=parts)],
            config=config,
        )
        logger.info("Received response from Gemini model")

        return extract_inline_image(response)


def _response_parts(response: Any) -> List[Any]:
    parts: List[Any] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        if content and content.parts:
            parts.extend(content.parts)
    return parts


def decode_image_data(data: Any) -> bytes:
    """
    Normalise inline data to raw image bytes.

    The SDK may hand back raw bytes or base64 text (as str or bytes).
    """
    if isinstance(data, str):
        return base64.b64decode(data)
    if data.startswith(IMAGE_SIGNATURES):
        return bytes(data)
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return bytes(data)


def extract_inline_image(response: Any) -> Optional[InlineImage]:
    """Return the first inline image part of a generate_content response."""
    for part in _response_parts(response):
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and inline_data.data:
            return InlineImage(data=decode_image_data(inline_data.data), mime_type=inline_data.mime_type or "image/png")
        text = getattr(part, "text", None)
        if text:
            logger.info(f"Model commentary: {text[:200]}")
    return None
