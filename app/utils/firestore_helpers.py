"""
Firestore query and document helpers shared by the services.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

DESCENDING = "DESCENDING"
ASCENDING = "ASCENDING"


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Uses positional arguments, which work with both firebase_admin and the mock client.

    Usage:
        query = where_filter(collection, "problem_id", "==", "PROB-ABC123XYZ")
    """
    return query.where(field_path, op_string, value)


def to_datetime(value) -> Optional[datetime]:
    """
    Normalise a stored timestamp to a timezone-aware datetime.

    Handles datetime, Firestore DatetimeWithNanoseconds / Timestamp and ISO strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if hasattr(value, "to_datetime"):
        return to_datetime(value.to_datetime())
    if isinstance(value, str):
        try:
            return to_datetime(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            logger.warning(f"Unparseable timestamp: {value!r}")
            return None
    logger.warning(f"Unknown timestamp type: {type(value)}")
    return None


def snapshot_to_dict(doc) -> Optional[Dict]:
    """Document snapshot -> dict with its id, or None when the document is missing."""
    if not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data
