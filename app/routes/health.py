"""
Health check endpoints for uptime monitors and deployment readiness.
"""

from fastapi import APIRouter, HTTPException, status
from app.config.firebase import get_db
from app.core.settings import settings
from app.services.ai_enrichment import get_enrichment_client
from app.services.problem_store import PROBLEMS_COLLECTION
from app.services.sms_service import get_sms_service
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def service_health():
    """
    Liveness plus which optional integrations are switched on.
    AI and SMS being off is not unhealthy; both degrade to fallbacks.
    """
    provider = get_enrichment_client().provider
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "ai_enabled": bool(settings.AI_ENABLED and provider is not None and provider.is_enabled()),
        "sms_enabled": get_sms_service().is_configured(),
        "timestamp": _now_iso()
    }


@router.get("/db")
async def database_health():
    """Reads the problems collection to prove the document store answers."""
    try:
        db = get_db()
        problems_count = sum(1 for _ in db.collection(PROBLEMS_COLLECTION).stream())
        return {
            "status": "healthy",
            "database": "mock" if settings.USE_MOCK_DB else "firestore",
            "connected": True,
            "collections": [c.id for c in db.collections()],
            "problems_count": problems_count,
            "timestamp": _now_iso()
        }
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {str(e)}"
        )
