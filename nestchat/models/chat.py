"""
Request and Response models for the Chat API.

These Pydantic models define the contract between client and server.
They provide:
- Type validation
- Automatic documentation
- Request/response serialization
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatRequest(BaseModel):
    """
    Request model for the /chat endpoint.

    Attributes:
        message: The user's message.
        user_id: Identifier of the user the conversation belongs to.
        language: Requested reply language; unsupported codes fall back to English.
    """
    message: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="The user's message",
        examples=["I'm 20 weeks pregnant and I've had a headache since yesterday"]
    )
    user_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="User identifier; memory and history are kept per user"
    )
    language: str = Field(
        default="en",
        max_length=10,
        description="Reply language code, e.g. 'en' or 'es'"
    )


class WebSocketMessage(BaseModel):
    """One inbound frame on the chat WebSocket."""
    message: str = Field(..., min_length=1, max_length=4000)
    language: str = Field(default="en", max_length=10)


class ChatEvent(BaseModel):
    """
    A single event pushed to the client during a turn.

    type is one of: message, calendar_suggestion, error, done.
    """
    type: str
    content: Optional[str] = None
    suggestion: Optional[Dict[str, Any]] = None


class ChatResponse(BaseModel):
    """
    Response model for the /chat endpoint.

    Carries every event the engine emitted, in order, plus a summary
    of how the turn was handled.
    """
    user_id: str
    message: str = Field(
        ...,
        description="The assistant's full reply text"
    )
    events: List[ChatEvent] = Field(default_factory=list)
    intent: str
    confidence: float
    language: str
    used_fallback: bool = False
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthResponse(BaseModel):
    """Response model for the /health endpoint."""
    status: str = Field(default="healthy")
    version: str
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    message: str
    details: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)
