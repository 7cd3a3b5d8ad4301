"""
Sample problems inserted into an empty database so the demo always has content.
"""

from app.core.settings import settings
from app.services.problem_store import ProblemStore, get_problem_store
from app.services.upload_service import ensure_upload_dir
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import logging
import os
import requests

logger = logging.getLogger(__name__)

SAMPLE_IMAGES = {
    "streetlight.jpg": "https://images.unsplash.com/photo-1542203519-615a6fb5a77f",
    "pipeline.jpg": "https://images.unsplash.com/photo-1584677626646-7c8f83690304",
    "garbage.jpg": "https://images.unsplash.com/photo-1605600659908-0ef719419d41",
}

SAMPLE_PROBLEMS: List[Dict] = [
    {
        "title": "Broken Street Light",
        "description": "Street light at the main intersection has been non-functional for several days, "
                       "creating safety concerns for pedestrians and drivers during night time.",
        "category": "INFRASTRUCTURE",
        "status": "Pending",
        "severity": "MEDIUM",
        "image": "/uploads/streetlight.jpg",
        "location": {"latitude": 28.6139, "longitude": 77.2090, "address": "Main Street Intersection"},
        "votes": 15,
        "problem_id": "PROB-LIGHT001",
    },
    {
        "title": "Water Pipeline Leakage",
        "description": "Major water pipeline leakage causing water wastage and creating puddles on the road. "
                       "Needs immediate attention to prevent water loss and road damage.",
        "category": "UTILITIES",
        "status": "In Progress",
        "severity": "HIGH",
        "image": "/uploads/pipeline.jpg",
        "location": {"latitude": 28.6129, "longitude": 77.2295, "address": "Park Road Junction"},
        "votes": 28,
        "problem_id": "PROB-WATER001",
    },
    {
        "title": "Garbage Dump Overflow",
        "description": "Community garbage dump is overflowing, causing hygiene issues and foul smell in the area. "
                       "Regular cleanup needed.",
        "category": "ENVIRONMENT",
        "status": "Pending",
        "severity": "HIGH",
        "image": "/uploads/garbage.jpg",
        "location": {"latitude": 28.6219, "longitude": 77.2190, "address": "Community Park Area"},
        "votes": 22,
        "problem_id": "PROB-GARB001",
    },
]


def download_sample_images(timeout: float = 10.0) -> int:
    """
    Fetch the sample images into the upload directory.

    Existing files are kept. Failures are logged and skipped.
    Returns the number of images downloaded.
    """
    upload_dir = ensure_upload_dir()
    downloaded = 0
    for filename, url in SAMPLE_IMAGES.items():
        path = os.path.join(upload_dir, filename)
        if os.path.exists(path):
            continue
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            with open(path, "wb") as f:
                f.write(response.content)
            downloaded += 1
        except requests.RequestException as e:
            logger.warning(f"Could not download sample image {filename}: {e}")
    return downloaded


def build_sample_documents(now: Optional[datetime] = None) -> List[Dict]:
    """Sample problems as store documents, oldest first."""
    now = now or datetime.now(timezone.utc)
    documents = []
    for offset, sample in enumerate(SAMPLE_PROBLEMS):
        documents.append({
            **sample,
            "ai_suggestions": None,
            "user_id": None,
            "comments": [],
            "solutions": [],
            "created_at": now - timedelta(minutes=len(SAMPLE_PROBLEMS) - offset),
        })
    return documents


def seed_sample_problems(store: Optional[ProblemStore] = None, download_images: bool = True) -> int:
    """
    Insert the sample problems if the problems collection is empty.

    Returns the number of problems inserted.
    """
    store = store or get_problem_store()
    if not store.is_empty():
        logger.info("[STARTUP] Problems already present, skipping sample data")
        return 0

    if download_images:
        download_sample_images()

    documents = build_sample_documents()
    for document in documents:
        store.create(document)
    logger.info(f"[STARTUP] Initialized {len(documents)} sample problems")
    return len(documents)


def seed_on_startup() -> None:
    """Startup hook. Failures are logged and never block the app."""
    if not settings.SEED_SAMPLE_DATA:
        return
    try:
        seed_sample_problems()
    except Exception as e:
        logger.error(f"Error initializing sample data: {e}", exc_info=True)
