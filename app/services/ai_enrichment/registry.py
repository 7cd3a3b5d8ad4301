"""
AI Enrichment Client

Races the provider call against a timeout and substitutes a fixed fallback
when the provider is disabled, fails or is too slow. Never raises.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from app.services.ai_enrichment.base import (
    EnrichmentProvider,
    EnrichmentResult,
    ImageInput,
    determine_severity,
)
from app.services.ai_enrichment.gemini_provider import GeminiEnrichmentProvider
from app.core.settings import settings
from typing import Dict, Optional
import base64
import binascii
import logging

logger = logging.getLogger(__name__)

QUICK_ANALYSIS_FALLBACK = """## Quick Analysis
- Severity: MEDIUM
- This issue requires attention based on the provided description.

### Recommended Actions
1. Document and assess the situation
2. Engage relevant stakeholders
3. Monitor for developments

### Long-term Considerations
- Implement preventive measures
- Regular monitoring and maintenance"""

PREVIEW_FALLBACK = (
    "AI analysis is currently unavailable. Please try again later "
    "or proceed with problem submission."
)

FALLBACK_SEVERITY = "MEDIUM"

# Calls that lose the race keep running here; their results are dropped.
_ai_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="ai-call")


def build_quick_prompt(fields: Dict) -> str:
    """Short prompt used when a problem is submitted or edited."""
    return f"""Quick analysis of community problem:
Title: {fields.get("title", "")}
Description: {fields.get("description", "")}
Category: {fields.get("category", "")}

Provide a brief:
1. Severity Assessment (HIGH/MEDIUM/LOW)
2. Quick Analysis (2-3 lines)
3. Immediate Actions (2-3 points)
4. Long-term Solutions (1-2 points)

Keep the response concise and actionable."""


def build_preview_prompt(fields: Dict) -> str:
    """Detailed prompt for the standalone suggestions preview."""
    return f"""Analyze this problem:
Title: "{fields.get("title", "")}"
Description: "{fields.get("description", "")}"
Category: "{fields.get("category", "")}"

Please provide:
1. Problem Analysis:
   - Quick assessment of the situation
   - Severity level (Low/Medium/High)
   - Potential immediate risks

2. Immediate Actions:
   - List 2-3 immediate steps that can be taken
   - Include any safety precautions if applicable

3. Long-term Solutions:
   - Provide 2-3 comprehensive solutions
   - Consider cost and implementation time
   - List potential challenges

4. Similar Cases & Success Stories:
   - Reference similar problems that were solved
   - Share successful approaches

5. Prevention Tips:
   - How to prevent similar issues
   - Maintenance recommendations

Format the response in a clear, structured way with bullet points and emphasis on critical information."""


def decode_image_base64(image_base64: Optional[str]) -> Optional[ImageInput]:
    """
    Decode a base64 image, with or without a data URL prefix.

    Returns None (text-only request) when the payload is missing or not valid base64.
    """
    if not image_base64:
        return None

    mime_type = "image/jpeg"
    payload = image_base64
    if image_base64.startswith("data:") and "," in image_base64:
        header, payload = image_base64.split(",", 1)
        declared = header[len("data:"):].split(";")[0]
        if declared.startswith("image/"):
            mime_type = declared

    try:
        return ImageInput(base64.b64decode(payload, validate=True), mime_type)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"⚠️ Ignoring undecodable image payload: {e}")
        return None


class EnrichmentClient:
    """
    Entry point for AI enrichment.

    suggest() and preview() always return an EnrichmentResult.
    """

    def __init__(self, provider: Optional[EnrichmentProvider] = None, timeout_seconds: Optional[float] = None):
        self.provider = provider
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.AI_TIMEOUT_SECONDS

    def suggest(self, fields: Dict, image: Optional[ImageInput] = None) -> EnrichmentResult:
        """Quick analysis for a stored problem (submission and edit paths)."""
        return self._race(build_quick_prompt(fields), image, QUICK_ANALYSIS_FALLBACK)

    def preview(self, fields: Dict, image: Optional[ImageInput] = None) -> EnrichmentResult:
        """Detailed analysis for the suggestions preview; nothing is persisted."""
        return self._race(build_preview_prompt(fields), image, PREVIEW_FALLBACK)

    def _fallback(self, text: str, error: Optional[str]) -> EnrichmentResult:
        return EnrichmentResult(
            text=text,
            severity=FALLBACK_SEVERITY,
            model_name="fallback",
            fallback=True,
            error=error
        )

    def _race(self, prompt: str, image: Optional[ImageInput], fallback_text: str) -> EnrichmentResult:
        if not settings.AI_ENABLED or self.provider is None or not self.provider.is_enabled():
            return self._fallback(fallback_text, "AI provider not available")

        model_name = self.provider.get_model_info().get("name", "")
        future = _ai_executor.submit(self.provider.generate, prompt, image)
        try:
            text = future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            # The call cannot be aborted; we only stop waiting for it.
            logger.warning(f"⚠️ AI suggestion timeout after {self.timeout_seconds}s ({model_name})")
            return self._fallback(fallback_text, "AI suggestion timeout")
        except Exception as e:
            logger.warning(f"⚠️ AI suggestion failed ({model_name}): {e}")
            return self._fallback(fallback_text, f"AI provider error: {e}")

        if not text or not text.strip():
            logger.warning(f"⚠️ AI provider returned empty text ({model_name})")
            return self._fallback(fallback_text, "Empty AI response")

        severity = determine_severity(text)
        logger.info(f"✅ AI suggestions received ({model_name}), severity={severity}")
        return EnrichmentResult(text=text, severity=severity, model_name=model_name)


# Global client instance (singleton)
_client: Optional[EnrichmentClient] = None


def get_enrichment_client() -> EnrichmentClient:
    """Get or create the EnrichmentClient singleton backed by Gemini."""
    global _client
    if _client is None:
        provider = None
        if settings.AI_ENABLED:
            try:
                provider = GeminiEnrichmentProvider()
            except Exception as e:
                logger.warning(f"⚠️ Failed to initialize Gemini provider: {e}")
        else:
            logger.info("⚠️ AI enrichment is disabled globally (AI_ENABLED=false)")
        _client = EnrichmentClient(provider)
    return _client
