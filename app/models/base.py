"""
Shared response models.
"""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Plain acknowledgement body used by logout and other side-effect-only endpoints."""
    message: str
