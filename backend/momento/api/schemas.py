"""Pydantic schemas for API requests and responses."""
from typing import Any, List, Optional
from pydantic import BaseModel, Field


# =============================================================================
# Processing Schemas
# =============================================================================

class ClipResponse(BaseModel):
    """A generated clip."""
    index: int = Field(..., description="Position of the laughter moment in the transcript")
    url: str = Field(..., description="Path the clip can be fetched from")
    filename: str
    start: float
    duration: float


class ClipFailureResponse(BaseModel):
    """A laughter moment that did not produce a clip."""
    index: int
    start: float
    duration: float
    reason: str


class MomentResponse(BaseModel):
    """A detected laughter moment."""
    start: float
    end: float
    text: Optional[str] = None


class ProcessVideoResponse(BaseModel):
    """Result of processing an uploaded video."""
    success: bool = True
    request_id: str
    clips: List[ClipResponse]
    failed_clips: List[ClipFailureResponse] = Field(default_factory=list)
    moments: List[MomentResponse] = Field(default_factory=list)
    transcript: Any = None


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffmpeg_path: Optional[str] = None
    transcription_configured: bool
    message: Optional[str] = None
