"""
Models module - Pydantic schemas for data validation.

This module defines:
- Request models: Input validation for API endpoints
- Response models: Output formatting for API responses
- Event models: What the transport pushes to clients during a turn
"""
from nestchat.models.chat import (
    ChatEvent,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    WebSocketMessage,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ChatEvent",
    "WebSocketMessage",
    "HealthResponse",
    "ErrorResponse",
]
