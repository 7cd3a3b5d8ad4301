"""
User models for registration, login and session lookups.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class RegisterRequest(BaseModel):
    """Registration body. Field rules are checked in the service so all failures are reported together."""
    username: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class UserResponse(BaseModel):
    """User as returned to clients. Never includes the password hash."""
    id: str = Field(..., description="Firestore document ID")
    username: str
    email: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class AuthResponse(BaseModel):
    message: str
    user: Optional[UserResponse] = None
