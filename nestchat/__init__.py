"""
Source code root package.

This package contains all application source code organized by responsibility:
- api/       : FastAPI routes and WebSocket handling
- core/      : Configuration, logging, resilience and cross-cutting utilities
- analysis/  : Rule-based intent, symptom, fact and calendar analysis
- memory/    : Short-term/long-term memory and conversation state
- llm/       : LLM providers and super-prompt construction
- services/  : Chat engine orchestration, languages and fallback replies
- database/  : Durable storage of messages, facts and symptoms
- models/    : Pydantic models for request/response schemas
"""

__version__ = "0.1.0"
