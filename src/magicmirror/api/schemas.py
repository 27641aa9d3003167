"""Pydantic request/response schemas for the Magic Mirror API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field, StringConstraints

# Embeddings arrive as plain JSON values so the engine's validation gate,
# not pydantic coercion, decides what is a valid descriptor.

ProfileName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class EnrollmentSampleIn(BaseModel):
    """One photo captured during registration."""

    embedding: list[Any] | None = Field(default=None, description="Face descriptor, null if no face was found")
    face_detected: bool = True
    label: str | None = None
    captured_at: datetime | None = None


class EnrollRequest(BaseModel):
    name: ProfileName
    email: str | None = None
    samples: list[EnrollmentSampleIn]


class CreateUserRequest(BaseModel):
    """Register a user from an already averaged descriptor."""

    name: ProfileName
    email: str | None = None
    embedding: list[Any] | None = None


class UpdateUserRequest(BaseModel):
    """Change a profile's name or email; omitted fields stay as they are."""

    name: ProfileName | None = None
    email: str | None = None


class ReenrollRequest(BaseModel):
    samples: list[EnrollmentSampleIn]


class RecognizeRequest(BaseModel):
    embedding: list[Any] | None = None
    threshold: float | None = Field(default=None, description="Maximum match distance (0.0-1.0), default 0.6")


class PhotoOut(BaseModel):
    label: str | None = None
    captured_at: datetime | None = None


class ProfileSummary(BaseModel):
    id: str
    name: str
    email: str | None = None
    created_at: datetime
    updated_at: datetime
    photo_count: int


class ProfileDetail(ProfileSummary):
    photos: list[PhotoOut]
    embedding_dim: int


class EnrollResponse(ProfileSummary):
    sample_count: int


class ProfilesResponse(BaseModel):
    profiles: list[ProfileSummary]
    count: int


class MatchOut(BaseModel):
    profile_id: str
    name: str
    email: str | None = None
    distance: float
    confidence: float = Field(description="1 - distance; a display score, not a probability")
    timestamp: datetime


class RecognizeResponse(BaseModel):
    recognized: bool
    match: MatchOut | None
    threshold: float
    message: str


class SessionOut(BaseModel):
    id: str
    profile_id: str
    confidence: float
    timestamp: datetime


class RecentSessionOut(SessionOut):
    name: str
    email: str | None = None


class SessionsResponse(BaseModel):
    sessions: list[SessionOut]


class RecentSessionsResponse(BaseModel):
    sessions: list[RecentSessionOut]
    count: int


class StatsResponse(BaseModel):
    user_count: int
    session_count: int
    recent_sessions: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    embedding_dim: int
    profiles: int
    concurrent_requests: int
    queue_depth: int
    completed_requests: int
    rejected_requests: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    error: str | None = None
