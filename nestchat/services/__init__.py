"""
Services module - Business logic and orchestration.

Services contain the core application logic:
- No HTTP concerns (those belong in api/)
- No database queries (those belong in database/)
- Orchestrate between classifier, memory, LLM and storage layers
"""
from nestchat.services.chat_service import (
    ChatEngine,
    CollectingResponder,
    ProcessResult,
    Responder,
    contains_new_topic,
    extract_primary_concern,
    get_chat_engine,
    reset_chat_engine,
)
from nestchat.services.language import LanguageInfo, LanguageManager, LanguageValidation

__all__ = [
    "ChatEngine",
    "CollectingResponder",
    "ProcessResult",
    "Responder",
    "contains_new_topic",
    "extract_primary_concern",
    "get_chat_engine",
    "reset_chat_engine",
    "LanguageInfo",
    "LanguageManager",
    "LanguageValidation",
]
