"""
AI Enrichment Base Interface

Defines the contract for generative-AI providers and the result object
handed back to the problem lifecycle.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

HIGH_SEVERITY_KEYWORDS = ("critical", "severe", "urgent", "immediate", "dangerous")
LOW_SEVERITY_KEYWORDS = ("minor", "low", "minimal", "routine")


def determine_severity(text: str) -> str:
    """
    Derive a severity label from free-text AI output.

    HIGH keywords are checked first, so text mentioning both a HIGH and a LOW
    keyword is HIGH. Matching is by substring on the lowercased text.
    """
    lowered = (text or "").lower()
    if any(keyword in lowered for keyword in HIGH_SEVERITY_KEYWORDS):
        return "HIGH"
    if any(keyword in lowered for keyword in LOW_SEVERITY_KEYWORDS):
        return "LOW"
    return "MEDIUM"


class ImageInput:
    """Raw image bytes plus mime type, for image-capable model variants."""

    def __init__(self, data: bytes, mime_type: str = "image/jpeg"):
        self.data = data
        self.mime_type = mime_type or "image/jpeg"


class EnrichmentResult:
    """
    Outcome of one enrichment attempt.

    fallback=True means the provider was unavailable, failed or timed out and
    `text` is the fixed fallback text.
    """

    def __init__(
        self,
        text: str,
        severity: str,
        model_name: str = "",
        fallback: bool = False,
        error: Optional[str] = None,
        inference_timestamp: Optional[datetime] = None
    ):
        self.text = text
        self.severity = severity
        self.model_name = model_name
        self.fallback = fallback
        self.error = error
        self.inference_timestamp = inference_timestamp or datetime.now(timezone.utc)

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "severity": self.severity,
            "model_name": self.model_name,
            "fallback": self.fallback,
            "error": self.error,
            "inference_timestamp": self.inference_timestamp.isoformat(),
        }


class EnrichmentProvider(ABC):
    """
    Abstract base class for generative-AI providers.

    Providers only talk to the model. Timeouts, fallbacks and severity
    derivation are handled by EnrichmentClient, so generate() may block and
    may raise.
    """

    @abstractmethod
    def is_enabled(self) -> bool:
        """True if the provider is configured and can be called."""
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """Dict with 'name' and 'version' keys."""
        pass

    @abstractmethod
    def generate(self, prompt: str, image: Optional[ImageInput] = None) -> str:
        """
        Return the model's text for the prompt.

        When `image` is given the provider must use an image-capable model.
        """
        pass
