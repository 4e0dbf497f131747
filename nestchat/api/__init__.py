"""
API module - FastAPI routes and HTTP/WebSocket handling.

This module handles:
- Request validation and parsing
- Response formatting
- Error handling
- Route definitions
"""
from nestchat.api.main import app

__all__ = ["app"]
