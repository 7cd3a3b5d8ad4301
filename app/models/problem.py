"""
Pydantic models for community problems.

Documents are stored snake_case in Firestore; the API speaks camelCase
(problemId, aiSuggestions, createdAt, ...) through the alias generator.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Optional, List
from enum import Enum


class ProblemStatus(str, Enum):
    """Problem lifecycle status. Any value may follow any other."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    SOLVED = "Solved"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Location(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


class ProblemOwner(CamelModel):
    id: Optional[str] = None
    username: str = "Anonymous"


class CommentResponse(CamelModel):
    text: str
    user_id: Optional[str] = None
    username: Optional[str] = Field(None, description="Author name at the time of writing")
    created_at: Optional[datetime] = None


class SolutionResponse(CamelModel):
    description: str = ""
    user_id: Optional[str] = None
    votes: int = 0
    created_at: Optional[datetime] = None


class ProblemResponse(CamelModel):
    """What the API returns for a problem."""
    id: str = Field(..., description="Firestore document ID")
    problem_id: str = Field(..., description="Human-facing id, PROB-XXXXXXXXX")
    title: str
    description: str
    category: str
    status: str = ProblemStatus.PENDING.value
    severity: str = Severity.MEDIUM.value
    votes: int = 0
    location: Location = Field(default_factory=Location)
    image: Optional[str] = None
    ai_suggestions: Optional[str] = None
    user_id: Optional[str] = None
    owner: ProblemOwner = Field(default_factory=ProblemOwner)
    created_at: Optional[datetime] = None
    comments: List[CommentResponse] = Field(default_factory=list)
    solutions: List[SolutionResponse] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "b1c9f0e2a4d84f3e9a17",
                "problemId": "PROB-K3X9Q2M7A",
                "title": "Broken Street Light",
                "description": "Street light at the main intersection is out.",
                "category": "INFRASTRUCTURE",
                "status": "Pending",
                "severity": "MEDIUM",
                "votes": 3,
                "location": {"latitude": 28.6139, "longitude": 77.209, "address": "Main Street"},
                "image": "/uploads/1700000000000-light.jpg",
                "aiSuggestions": None,
                "userId": "u5f2c1d0e9a84b7c6d3e",
                "owner": {"id": "u5f2c1d0e9a84b7c6d3e", "username": "asha"},
                "comments": [],
                "solutions": [],
            }
        }


class ProblemCreatedResponse(ProblemResponse):
    message: str = "Problem submitted successfully"


class VoteRequest(CamelModel):
    vote: int = Field(..., description="Added to the vote counter, usually +1 or -1")


class CommentCreate(CamelModel):
    text: Optional[str] = None


class SolutionCreate(CamelModel):
    description: Optional[str] = None


class ProblemUpdate(CamelModel):
    """Editable fields. Anything else in the body is ignored."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None

    class Config:
        extra = "ignore"


class StatusUpdateRequest(CamelModel):
    status: Optional[str] = None


class BulkDeleteRequest(CamelModel):
    problem_ids: Any = Field(None, description="List of human-facing problem ids")


class DeleteResponse(CamelModel):
    message: str
    deleted_count: Optional[int] = None


class AISuggestionRequest(CamelModel):
    title: str = ""
    description: str = ""
    category: str = ""
    image_base64: Optional[str] = None


class AISuggestionResponse(CamelModel):
    problem_id: str
    suggestions: str
    timestamp: datetime
    severity: str
