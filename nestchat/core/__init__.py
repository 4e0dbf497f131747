"""
Core module - Configuration and cross-cutting concerns.

This module provides:
- config.py          : Environment-based configuration management
- logging_config.py  : Centralized logging setup
- exceptions.py      : Application exception hierarchy
- validators.py      : Message sanitization and PII redaction
- rate_limiter.py    : Token-bucket limiters per IP, user and WebSocket
- circuit_breaker.py : Guard for the LLM dependency
"""
from nestchat.core.config import get_settings, Settings
from nestchat.core.logging_config import setup_logging, get_logger, LoggerMixin

__all__ = [
    "get_settings",
    "Settings",
    "setup_logging",
    "get_logger",
    "LoggerMixin",
]
