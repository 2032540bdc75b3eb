"""
Pydantic models for API request/response validation
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from ..engine.models import Archetype, ProgressEvent, RunError, RunResult
from ..engine.validation import RunOptions
from ..learning.store import RankedConfiguration


# Run Models
class RunRequest(BaseModel):
    """Request to start a run; values are validated by the engine"""
    question: str
    processing_depth: Any = 3
    circuit_type: str = "sequential"
    enhanced_mode: bool = True
    archetype_ids: Optional[List[str]] = None
    custom_archetypes: Optional[List[Dict[str, Any]]] = None
    tension: Optional[Dict[str, Any]] = None
    output_style: str = "comprehensive"
    output_type: Optional[str] = None

    def to_options(self) -> RunOptions:
        return RunOptions(**self.model_dump(exclude={"question"}))


class RunStarted(BaseModel):
    """Response for a started run"""
    run_id: str
    status: str = "started"
    stream_url: str


class RunState(BaseModel):
    """Last known state of a run, for polling callers"""
    run_id: str
    done: bool
    last_event: Optional[ProgressEvent] = None
    result: Optional[RunResult] = None
    error: Optional[RunError] = None


# Archetype Models
class ArchetypeUpdate(BaseModel):
    """Request model for creating or editing an archetype"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    language_style: Optional[str] = None
    imagination: Optional[float] = None
    skepticism: Optional[float] = None
    aggression: Optional[float] = None
    emotionality: Optional[float] = None
    constraint: Optional[str] = Field(None, max_length=500)


class ArchetypeList(BaseModel):
    """List of archetypes"""
    archetypes: List[Archetype]
    active: List[str]
    total: int


# Learning Models
class BestConfigurations(BaseModel):
    """Ranked configurations for a domain"""
    domain: str
    configurations: List[RankedConfiguration]


# Streaming Models
class StreamProgress(BaseModel):
    """Progress update during streaming"""
    type: str = "progress"
    event: ProgressEvent


class StreamComplete(BaseModel):
    """Completion message for streaming"""
    type: str = "complete"
    result: RunResult


class StreamError(BaseModel):
    """Terminal error message for streaming"""
    type: str = "error"
    error: RunError


# Health Check
class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    services: Dict[str, str]
    version: str = "1.0.0"
