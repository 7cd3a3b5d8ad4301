"""
AI preview endpoint - detailed analysis of a problem before it is submitted.
Nothing is persisted.
"""

from fastapi import APIRouter, HTTPException, status
from app.models.problem import AISuggestionRequest, AISuggestionResponse
from app.services.ai_enrichment import decode_image_base64, get_enrichment_client
from app.utils.identifiers import generate_problem_id
from datetime import datetime, timezone
import asyncio
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-suggestions", tags=["AI"])


@router.post("", response_model=AISuggestionResponse)
async def get_ai_suggestions(body: AISuggestionRequest):
    """
    Analyze a draft problem (text plus optional base64 photo).

    Waits at most AI_TIMEOUT_SECONDS; on timeout or provider failure the
    response carries a fixed "unavailable" message and severity MEDIUM.
    """
    try:
        fields = {
            "title": body.title,
            "description": body.description,
            "category": body.category,
        }
        image = decode_image_base64(body.image_base64)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, get_enrichment_client().preview, fields, image)

        return AISuggestionResponse(
            problem_id=generate_problem_id(),
            suggestions=result.text,
            timestamp=datetime.now(timezone.utc),
            severity=result.severity,
        )

    except Exception as e:
        logger.error(f"❌ AI suggestion preview failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating AI suggestions"
        )
