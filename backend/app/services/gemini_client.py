"""Thin async wrapper around the Gemini layout and Imagen image models."""

from __future__ import annotations

import base64
import logging

from google import genai
from google.genai import types as genai_types

from app.services.layout_prompt import LAYOUT_RESPONSE_SCHEMA


logger = logging.getLogger(__name__)


class GeminiClientError(RuntimeError):
    """Base exception for generative service failures."""


class ImageGenerationError(GeminiClientError):
    """Raised when no illustration could be produced."""


class GeminiClient:
    def __init__(self, api_key: str, *, layout_model: str, image_model: str, timeout: float) -> None:
        if not api_key:
            raise ValueError("Gemini API key is required")

        self._client = genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._layout_model = layout_model
        self._image_model = image_model

    async def generate_layout_json(self, prompt: str) -> str:
        if not prompt:
            raise ValueError("Prompt must not be empty")

        try:
            response = await self._client.aio.models.generate_content(
                model=self._layout_model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=LAYOUT_RESPONSE_SCHEMA,
                ),
            )
        except Exception as exc:  # pragma: no cover - network failures
            logger.exception("Layout generation request failed")
            raise GeminiClientError(
                "Failed to generate UI layout from AI. The model may have returned an unexpected format."
            ) from exc

        usage = getattr(response, "usage_metadata", None)
        if usage:
            logger.debug(
                "Layout model %s used %s prompt / %s candidate tokens",
                self._layout_model,
                getattr(usage, "prompt_token_count", None),
                getattr(usage, "candidates_token_count", None),
            )
        return (response.text or "").strip()

    async def generate_image(self, prompt: str) -> str:
        """Return the generated illustration as a data URL."""
        try:
            response = await self._client.aio.models.generate_images(
                model=self._image_model,
                prompt=prompt,
                config=genai_types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type="image/jpeg",
                    aspect_ratio="1:1",
                ),
            )
        except Exception as exc:  # pragma: no cover - network failures
            raise ImageGenerationError("Failed to generate the weather visualization image.") from exc

        images = response.generated_images or []
        image = images[0].image if images else None
        if image is None or not image.image_bytes:
            raise ImageGenerationError("No image was generated.")
        encoded = base64.b64encode(image.image_bytes).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"
