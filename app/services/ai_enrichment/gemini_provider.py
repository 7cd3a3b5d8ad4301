"""
Gemini Provider for problem enrichment.

Uses the google-generativeai SDK. Text-only prompts go to the text model,
prompts with a photo go to the vision model.
"""

from app.services.ai_enrichment.base import EnrichmentProvider, ImageInput
from app.core.settings import settings
from typing import Dict, Optional
import logging

import google.generativeai as genai

logger = logging.getLogger(__name__)


class GeminiEnrichmentProvider(EnrichmentProvider):
    """
    Google Gemini provider.

    Requires GEMINI_API_KEY. Disabled (never called) without it.
    """

    MODEL_VERSION = "1.0"

    def __init__(
        self,
        api_key: Optional[str] = None,
        text_model: Optional[str] = None,
        vision_model: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.text_model = text_model or settings.GEMINI_TEXT_MODEL
        self.vision_model = vision_model or settings.GEMINI_VISION_MODEL
        self.timeout_seconds = timeout_seconds or settings.AI_TIMEOUT_SECONDS
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            genai.configure(api_key=self.api_key)
            logger.info(f"✅ Gemini Enrichment Provider initialized: {self.text_model} / {self.vision_model}")
        else:
            logger.info("⚠️ Gemini Enrichment Provider disabled: No API key configured")

    def is_enabled(self) -> bool:
        return self.enabled

    def get_model_info(self) -> Dict[str, str]:
        return {
            "name": self.text_model,
            "version": self.MODEL_VERSION
        }

    def generate(self, prompt: str, image: Optional[ImageInput] = None) -> str:
        if image is not None:
            model = genai.GenerativeModel(self.vision_model)
            content = [prompt, {"mime_type": image.mime_type, "data": image.data}]
        else:
            model = genai.GenerativeModel(self.text_model)
            content = prompt

        response = model.generate_content(
            content,
            request_options={"timeout": self.timeout_seconds}
        )
        return response.text
