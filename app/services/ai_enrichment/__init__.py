"""
AI Enrichment Module

AI-generated suggestions and severity for problems.

Key principles:
- Runs after the problem is stored (or synchronously on edit)
- Timeout-bounded; a fixed fallback replaces any failure
- Never raises to the caller
"""

from app.services.ai_enrichment.base import (
    EnrichmentProvider,
    EnrichmentResult,
    ImageInput,
    determine_severity,
)
from app.services.ai_enrichment.registry import (
    EnrichmentClient,
    get_enrichment_client,
    decode_image_base64,
)

__all__ = [
    "EnrichmentProvider",
    "EnrichmentResult",
    "ImageInput",
    "determine_severity",
    "EnrichmentClient",
    "get_enrichment_client",
    "decode_image_base64",
]
