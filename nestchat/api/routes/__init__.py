"""
API Routes module - Endpoint definitions.

Each file in this module defines routes for a specific domain:
- chat.py   : Conversational endpoints (REST and WebSocket)
- health.py : Health check endpoints
"""
from nestchat.api.routes.chat import router as chat_router
from nestchat.api.routes.health import router as health_router

__all__ = [
    "chat_router",
    "health_router",
]
